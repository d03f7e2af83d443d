"""
Derived values: fields computed asynchronously from other fields.

Each trigger takes a snapshot of the input fields and starts a
computation tagged with a sequence number. Only the result of the most
recent trigger is ever written back; anything older is discarded when
it arrives, regardless of arrival order.

Usage:
    value = DerivedValue(spec, debounce_sec=0)
    value.trigger(form_state)          # status -> PENDING
    await value.wait()                 # status -> READY or FAILED
    if value.is_fresh(form_state):
        quote = value.last_value
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from ridebooking.logging_context import get_session_logger
from ridebooking.utils import inputs_hash, is_blank

logger = get_session_logger(__name__)

Compute = Callable[[dict[str, Any]], Awaitable[Any]]


class DerivedStatus(str, Enum):
    """Lifecycle of a derived value."""

    IDLE = "idle"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class DerivedSpec:
    """Declaration of a derived value and the fields it is computed from."""

    name: str
    inputs: frozenset[str]
    compute: Compute
    label: str = ""
    # Skip computing until every input has a value
    requires_all_inputs: bool = True

    @property
    def display_name(self) -> str:
        return self.label or self.name


class DerivedValue:
    """Runtime state of one derived value within a wizard session."""

    def __init__(self, spec: DerivedSpec, debounce_sec: float = 0.0) -> None:
        self.spec = spec
        self.status = DerivedStatus.IDLE
        self.last_value: Any = None
        self.last_inputs_hash: Optional[str] = None
        self.error: Optional[str] = None
        self._debounce_sec = debounce_sec
        self._seq = 0
        self._closed = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def trigger(self, form_state: Mapping[str, Any]) -> None:
        """
        Start a recompute from the current inputs.

        Must be called from inside a running event loop. Any computation
        already in flight is superseded.
        """
        if self._closed:
            return
        snapshot = {name: form_state.get(name) for name in self.spec.inputs}

        if not self.needs_compute(snapshot):
            self._seq += 1
            self.status = DerivedStatus.IDLE
            self.error = None
            logger.debug("Derived '%s' waiting for inputs", self.name)
            return

        loop = asyncio.get_running_loop()
        self._seq += 1
        seq = self._seq
        digest = inputs_hash(snapshot, self.spec.inputs)
        self.status = DerivedStatus.PENDING
        self.error = None
        task = loop.create_task(self._run(seq, snapshot, digest))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Derived '%s' recompute #%d started", self.name, seq)

    def needs_compute(self, form_state: Mapping[str, Any]) -> bool:
        """True if triggering with ``form_state`` would start a computation."""
        if self._closed:
            return False
        if not self.spec.requires_all_inputs:
            return True
        return not any(is_blank(form_state.get(name)) for name in self.spec.inputs)

    async def _run(self, seq: int, snapshot: dict[str, Any], digest: str) -> None:
        if self._debounce_sec > 0:
            await asyncio.sleep(self._debounce_sec)
            if seq != self._seq:
                return

        try:
            value = await self.spec.compute(dict(snapshot))
        except Exception as exc:
            if not self._accepts(seq):
                logger.debug("Derived '%s' #%d failed after being superseded", self.name, seq)
                return
            self.status = DerivedStatus.FAILED
            self.error = str(exc) or type(exc).__name__
            logger.warning("Derived '%s' #%d failed: %s", self.name, seq, self.error)
            return

        if not self._accepts(seq):
            logger.debug("Derived '%s' #%d discarded as stale", self.name, seq)
            return
        self.last_value = value
        self.last_inputs_hash = digest
        self.status = DerivedStatus.READY
        logger.debug("Derived '%s' #%d ready", self.name, seq)

    def _accepts(self, seq: int) -> bool:
        return not self._closed and seq == self._seq

    def is_fresh(self, form_state: Mapping[str, Any]) -> bool:
        """True only if the value is ready and was computed from the current inputs."""
        if self.status != DerivedStatus.READY:
            return False
        return self.last_inputs_hash == inputs_hash(form_state, self.spec.inputs)

    async def wait(self) -> None:
        """Wait until no computation is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel outstanding work; later results are ignored."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
