"""
Wizard controller: the state machine behind a multi-step form.

Owns the step index, the form state, per-field errors and touched flags,
and the runtime derived values. Forward navigation is gated on the
current step's fields, its derived values, and its completion
predicate. Every user-caused problem comes back as data; nothing here
raises for bad input.

Updates that recompute a derived value start an asyncio task, so they
must run inside an event loop:

Usage:
    async def handle(wizard: WizardController) -> None:
        wizard.update_field("passengers", 0)
        result = wizard.next()
        if not result.ok:
            show(result.errors)
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ridebooking.config import settings
from ridebooking.logging_context import get_session_logger, set_session_id
from ridebooking.schemas.booking_schema import SchedulingConfirmation
from ridebooking.wizard.definition import UnknownFieldError, WizardDefinition
from ridebooking.wizard.derived import DerivedStatus, DerivedValue
from ridebooking.wizard.rules import ValidationResult, validate_field
from ridebooking.wizard.scheduling import parse_scheduling_message
from ridebooking.wizard.steps import GateIssue, IssueKind, StepResult

logger = get_session_logger(__name__)


class WizardStatus(str, Enum):
    """Lifecycle of a wizard session."""

    ACTIVE = "active"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"


@dataclass
class StepEntry:
    """Recorded history entry for a step visit."""

    step_index: int
    entered_at: datetime
    via: str


@dataclass
class WizardSession:
    """Aggregate state of one wizard run."""

    session_id: str
    current_step_index: int = 0
    highest_completed: int = -1
    form_state: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    touched: set[str] = field(default_factory=set)
    status: WizardStatus = WizardStatus.ACTIVE
    submission_error: Optional[str] = None
    booking_id: Optional[str] = None
    history: list[StepEntry] = field(default_factory=list)


class WizardController:
    """
    Sequencing, validation gating, and derived-state bookkeeping.

    The form state is only ever written here. Derived values are owned
    by their DerivedValue objects; the controller triggers them and reads
    their status.
    """

    def __init__(
        self,
        definition: WizardDefinition,
        initial_values: Optional[Mapping[str, Any]] = None,
        session_id: Optional[str] = None,
        debounce_sec: Optional[float] = None,
    ) -> None:
        self.definition = definition
        self.session = WizardSession(session_id=session_id or f"WIZ-{uuid.uuid4().hex[:8]}")
        set_session_id(self.session.session_id)

        for defn in definition.fields:
            self.session.form_state[defn.name] = defn.default
        for name, value in (initial_values or {}).items():
            if name not in definition.field_names:
                raise UnknownFieldError(name)
            self.session.form_state[name] = value

        if debounce_sec is None:
            debounce_sec = settings.wizard.pricing_debounce_ms / 1000
        self._derived: dict[str, DerivedValue] = {
            spec.name: DerivedValue(spec, debounce_sec) for spec in definition.derived
        }
        self._submission_task: Optional[asyncio.Task] = None
        self._record_entry("start")
        logger.info(
            "Wizard '%s' started (%d steps)", definition.name, len(definition.steps)
        )

    # ------------------------------------------------------------------ #
    # Read access
    # ------------------------------------------------------------------ #

    @property
    def current_step_index(self) -> int:
        return self.session.current_step_index

    @property
    def current_step(self):
        return self.definition.steps[self.session.current_step_index]

    @property
    def step_count(self) -> int:
        return len(self.definition.steps)

    @property
    def is_last_step(self) -> bool:
        return self.session.current_step_index == self.step_count - 1

    @property
    def form_state(self) -> Mapping[str, Any]:
        return MappingProxyType(self.session.form_state)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self.session.errors)

    @property
    def touched(self) -> frozenset[str]:
        return frozenset(self.session.touched)

    @property
    def status(self) -> WizardStatus:
        return self.session.status

    @property
    def is_active(self) -> bool:
        return self.session.status in (WizardStatus.ACTIVE, WizardStatus.SUBMITTING)

    def value(self, name: str) -> Any:
        self.definition.get_field(name)
        return self.session.form_state.get(name)

    def derived(self, name: str) -> DerivedValue:
        return self._derived[name]

    def derived_values(self) -> dict[str, DerivedValue]:
        return dict(self._derived)

    def any_derived_pending(self) -> bool:
        return any(d.status == DerivedStatus.PENDING for d in self._derived.values())

    # ------------------------------------------------------------------ #
    # Field updates
    # ------------------------------------------------------------------ #

    def update_field(self, name: str, value: Any) -> ValidationResult:
        """
        Set a field, validate it, and recompute derived values reading it.

        Raises:
            UnknownFieldError: ``name`` is not in the field registry.
            RuntimeError: A derived value must be recomputed and no event
                loop is running. Nothing is changed in that case.
        """
        defn = self.definition.get_field(name)
        if self.session.status != WizardStatus.ACTIVE:
            logger.debug("Ignoring update to '%s' on %s wizard", name, self.status.value)
            return ValidationResult(
                valid=False, message=f"This booking session is {self.status.value}"
            )
        self._require_loop_for({name: value})

        self.session.form_state[name] = value
        self.session.errors.pop(name, None)
        self.session.touched.add(name)
        result = self._validate_one(defn.name)
        self._revalidate_dependents(name)
        self._trigger_derived({name})
        logger.debug("Field '%s' updated (valid=%s)", name, result.valid)
        return result

    def blur_field(self, name: str) -> ValidationResult:
        """Mark a field touched and validate its current value."""
        self.definition.get_field(name)
        self.session.touched.add(name)
        return self._validate_one(name)

    def _validate_one(self, name: str) -> ValidationResult:
        defn = self.definition.get_field(name)
        if not defn.rules:
            return ValidationResult(valid=True)
        result = validate_field(
            defn, self.session.form_state.get(name), self.session.form_state,
            self.definition.checks,
        )
        if result.valid:
            self.session.errors.pop(name, None)
        else:
            self.session.errors[name] = result.message
        return result

    def _revalidate_dependents(self, name: str) -> None:
        for defn in self.definition.fields:
            if name in defn.depends_on and defn.name in self.session.touched:
                self._validate_one(defn.name)

    def _require_loop_for(self, changes: Mapping[str, Any]) -> None:
        candidate = {**self.session.form_state, **changes}
        for derived in self._derived.values():
            if derived.spec.inputs & set(changes) and derived.needs_compute(candidate):
                try:
                    asyncio.get_running_loop()
                except RuntimeError:
                    raise RuntimeError(
                        f"Recomputing '{derived.name}' needs a running event loop"
                    ) from None
                return

    def _trigger_derived(self, changed: set[str]) -> None:
        for derived in self._derived.values():
            if derived.spec.inputs & changed:
                derived.trigger(self.session.form_state)

    def retry_derived(self, name: str) -> None:
        """Re-run a derived computation on demand (never automatic)."""
        if self.session.status != WizardStatus.ACTIVE:
            return
        logger.info("Retrying derived '%s'", name)
        self._derived[name].trigger(self.session.form_state)

    async def settle(self) -> None:
        """Wait for every in-flight derived computation to finish."""
        for derived in self._derived.values():
            await derived.wait()

    # ------------------------------------------------------------------ #
    # External scheduling confirmation
    # ------------------------------------------------------------------ #

    def on_external_confirmed(self, confirmation: SchedulingConfirmation) -> bool:
        """
        Merge a scheduling confirmation into the reserved fields.

        Repeated events overwrite earlier ones; the latest start time wins.
        Returns False if the wizard cannot accept it.
        """
        binding = self.definition.scheduling
        if binding is None or self.session.status != WizardStatus.ACTIVE:
            return False

        values = binding.values_for(confirmation)
        self._require_loop_for(values)
        previous_ref = self.session.form_state.get(binding.ref_field)
        for name, value in values.items():
            self.session.form_state[name] = value
            self.session.errors.pop(name, None)
        if previous_ref == confirmation.external_ref:
            logger.info("Scheduling %s updated to %s", confirmation.external_ref,
                        confirmation.start_time)
        else:
            logger.info("Scheduling confirmed: %s at %s", confirmation.external_ref,
                        confirmation.start_time)
        self._trigger_derived(set(binding.fields))
        return True

    def receive_message(self, message: Any) -> bool:
        """Inbound port for widget messages. Unrelated messages are ignored."""
        confirmation = parse_scheduling_message(message)
        if confirmation is None:
            return False
        return self.on_external_confirmed(confirmation)

    # ------------------------------------------------------------------ #
    # Gating
    # ------------------------------------------------------------------ #

    def evaluate_step(self, index: int, record_errors: bool = True) -> StepResult:
        """Check whether step ``index`` is complete, without moving."""
        step = self.definition.steps[index]
        issues: list[GateIssue] = []
        state = self.session.form_state

        for name in sorted(step.owned_fields, key=self._field_order):
            defn = self.definition.get_field(name)
            if not defn.rules:
                continue
            result = validate_field(defn, state.get(name), state, self.definition.checks)
            if result.valid:
                if record_errors:
                    self.session.errors.pop(name, None)
                continue
            issues.append(GateIssue(IssueKind.FIELD, name, result.message))
            if record_errors:
                self.session.errors[name] = result.message
                self.session.touched.add(name)

        for name in sorted(step.requires):
            issue = self._derived_issue(self._derived[name])
            if issue is not None:
                issues.append(issue)

        if step.is_complete is not None and not step.is_complete(state):
            issues.append(GateIssue(IssueKind.INCOMPLETE, step.title, step.incomplete_message))

        return StepResult(ok=not issues, step_index=index, issues=issues)

    def _derived_issue(self, derived: DerivedValue) -> Optional[GateIssue]:
        label = derived.spec.display_name
        if derived.status == DerivedStatus.PENDING:
            return GateIssue(IssueKind.PENDING, derived.name, f"Still loading {label}...")
        if derived.status == DerivedStatus.FAILED:
            return GateIssue(
                IssueKind.DERIVED_FAILED, derived.name,
                f"Could not load {label}: {derived.error}", retryable=True,
            )
        if not derived.is_fresh(self.session.form_state):
            return GateIssue(
                IssueKind.DERIVED_MISSING, derived.name,
                f"{label.capitalize()} is not available yet. Please complete the earlier details.",
            )
        return None

    def _field_order(self, name: str) -> int:
        for position, defn in enumerate(self.definition.fields):
            if defn.name == name:
                return position
        return len(self.definition.fields)

    def validate_all(self) -> dict[str, str]:
        """Re-validate every field with rules; record and return failures."""
        failures: dict[str, str] = {}
        state = self.session.form_state
        for defn in self.definition.fields:
            if not defn.rules:
                continue
            result = validate_field(defn, state.get(defn.name), state, self.definition.checks)
            if result.valid:
                self.session.errors.pop(defn.name, None)
            else:
                failures[defn.name] = result.message
                self.session.errors[defn.name] = result.message
        return failures

    # ------------------------------------------------------------------ #
    # Navigation
    # ------------------------------------------------------------------ #

    def _inactive_result(self) -> StepResult:
        return StepResult(
            ok=False,
            step_index=self.session.current_step_index,
            issues=[GateIssue(IssueKind.NAVIGATION, "wizard",
                              f"This booking session is {self.status.value}")],
        )

    def next(self) -> StepResult:
        """Advance one step if the current step is complete."""
        if self.session.status != WizardStatus.ACTIVE:
            return self._inactive_result()
        index = self.session.current_step_index
        result = self.evaluate_step(index)
        if not result.ok:
            logger.debug("Step %d blocked: %s", index, result.messages())
            return result
        if self.is_last_step:
            return StepResult(
                ok=False, step_index=index,
                issues=[GateIssue(IssueKind.NAVIGATION, "wizard", "Already at the last step")],
            )

        self.session.highest_completed = max(self.session.highest_completed, index)
        self.session.current_step_index = index + 1
        self._record_entry("next")
        logger.info("Advanced to step %d (%s)", index + 1, self.current_step.title)
        return StepResult(ok=True, step_index=index + 1)

    def prev(self) -> int:
        """Go back one step. Never fails and never clears answers."""
        if (self.session.current_step_index > 0
                and self.session.status == WizardStatus.ACTIVE):
            self.session.current_step_index -= 1
            self._record_entry("prev")
        return self.session.current_step_index

    def jump_to(self, index: int) -> StepResult:
        """
        Move directly to ``index``.

        Backward jumps always succeed. Forward jumps are limited to one
        past the highest completed step, and every step in between must
        still pass its gate.
        """
        if self.session.status != WizardStatus.ACTIVE:
            return self._inactive_result()
        current = self.session.current_step_index
        if not 0 <= index < self.step_count:
            return StepResult(
                ok=False, step_index=current,
                issues=[GateIssue(IssueKind.NAVIGATION, "wizard", f"No step {index}")],
            )
        if index > self.session.highest_completed + 1:
            return StepResult(
                ok=False, step_index=current,
                issues=[GateIssue(IssueKind.NAVIGATION, "wizard",
                                  "Please complete the earlier steps first")],
            )

        for between in range(current, index):
            gate = self.evaluate_step(between)
            if not gate.ok:
                self.session.current_step_index = between
                if between != current:
                    self._record_entry("jump")
                return gate
            self.session.highest_completed = max(self.session.highest_completed, between)

        if index != current:
            self.session.current_step_index = index
            self._record_entry("jump")
        return StepResult(ok=True, step_index=index)

    def is_complete(self) -> bool:
        """True if every step passes its gate (errors are not recorded)."""
        return all(
            self.evaluate_step(i, record_errors=False).ok for i in range(self.step_count)
        )

    def _record_entry(self, via: str) -> None:
        self.session.history.append(StepEntry(
            step_index=self.session.current_step_index,
            entered_at=datetime.now(timezone.utc),
            via=via,
        ))

    def get_step_trace(self) -> list[int]:
        """Ordered list of step indices visited."""
        return [entry.step_index for entry in self.session.history]

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def begin_submission(self, task: Optional[asyncio.Task] = None) -> None:
        self.session.status = WizardStatus.SUBMITTING
        self.session.submission_error = None
        self._submission_task = task

    def fail_submission(self, message: str) -> None:
        """Stay on the current step with one top-level error; answers are kept."""
        if self.session.status == WizardStatus.SUBMITTING:
            self.session.status = WizardStatus.ACTIVE
        self.session.submission_error = message
        self._submission_task = None

    def complete_submission(self, booking_id: str) -> None:
        """Terminal success: the form state is discarded."""
        self.session.status = WizardStatus.SUBMITTED
        self.session.booking_id = booking_id
        self.session.submission_error = None
        self.session.form_state.clear()
        self.session.errors.clear()
        self._submission_task = None
        for derived in self._derived.values():
            derived.close()
        logger.info("Wizard '%s' submitted as %s", self.definition.name, booking_id)

    def abandon(self) -> None:
        """Tear down: cancel outstanding work and ignore anything that lands later."""
        if self.session.status in (WizardStatus.SUBMITTED, WizardStatus.ABANDONED):
            return
        self.session.status = WizardStatus.ABANDONED
        for derived in self._derived.values():
            derived.close()
        if self._submission_task is not None and not self._submission_task.done():
            self._submission_task.cancel()
        self._submission_task = None
        logger.info("Wizard '%s' abandoned at step %d", self.definition.name,
                    self.session.current_step_index)

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the session for rendering."""
        return {
            "session_id": self.session.session_id,
            "status": self.session.status.value,
            "current_step": self.session.current_step_index,
            "title": self.current_step.title,
            "values": dict(self.session.form_state),
            "errors": dict(self.session.errors),
            "touched": sorted(self.session.touched),
            "derived": {
                name: {
                    "status": d.status.value,
                    "value": d.last_value,
                    "fresh": d.is_fresh(self.session.form_state),
                    "error": d.error,
                }
                for name, d in self._derived.items()
            },
            "submission_error": self.session.submission_error,
            "booking_id": self.session.booking_id,
        }
