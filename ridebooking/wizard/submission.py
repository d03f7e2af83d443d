"""
Submission pipeline: final checks, payload projection, and the call to
the booking service.

Usage:
    pipeline = SubmissionPipeline(wizard, service, projection)
    result = await pipeline.submit()
    if result.ok:
        print(result.booking_id)
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from ridebooking.config import settings
from ridebooking.logging_context import get_session_logger
from ridebooking.tools.base import BookingService, BookingServiceError
from ridebooking.wizard.controller import WizardController, WizardStatus
from ridebooking.wizard.derived import DerivedStatus, DerivedValue
from ridebooking.wizard.steps import GateIssue

logger = get_session_logger(__name__)

# A projection source reads either a field or something derived from the whole state
Source = Union[str, Callable[[Mapping[str, Any], Mapping[str, Any]], Any]]


class SubmissionErrorKind(str, Enum):
    """Why a submission did not produce a booking."""

    INACTIVE = "inactive"
    IN_PROGRESS = "in_progress"
    PRECONDITION = "precondition"
    VALIDATION = "validation"
    NETWORK = "network"
    REJECTED = "rejected"
    ABANDONED = "abandoned"


@dataclass
class SubmissionResult:
    """Outcome of submit(). Errors are a single top-level message."""

    ok: bool
    booking_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[SubmissionErrorKind] = None
    issues: list[GateIssue] = field(default_factory=list)
    record: Any = None


@dataclass(frozen=True)
class PayloadProjection:
    """
    Declarative mapping from wire keys to form fields or derived values.

    A string source names a form field. A callable source receives
    ``(form_state, derived_values)`` where derived_values maps derived
    names to their last value.
    """

    mapping: tuple[tuple[str, Source], ...]
    constants: tuple[tuple[str, Any], ...] = ()

    def build(self, form_state: Mapping[str, Any], derived: Mapping[str, Any]) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.constants)
        for key, source in self.mapping:
            value = form_state.get(source) if isinstance(source, str) else source(form_state, derived)
            if value is not None:
                payload[key] = value
        return payload


class SubmissionPipeline:
    """Validates the finished wizard and creates the booking."""

    def __init__(
        self,
        wizard: WizardController,
        service: BookingService,
        projection: PayloadProjection,
        timeout: Optional[float] = None,
    ) -> None:
        self.wizard = wizard
        self.service = service
        self.projection = projection
        self.timeout = timeout if timeout is not None else settings.wizard.submit_timeout_sec

    def _reject(self, kind: SubmissionErrorKind, message: str,
                issues: Optional[list[GateIssue]] = None) -> SubmissionResult:
        if kind not in (SubmissionErrorKind.INACTIVE, SubmissionErrorKind.IN_PROGRESS,
                        SubmissionErrorKind.ABANDONED):
            self.wizard.fail_submission(message)
        logger.warning("Submission refused (%s): %s", kind.value, message)
        return SubmissionResult(ok=False, error=message, error_kind=kind, issues=issues or [])

    def _check_preconditions(self) -> Optional[SubmissionResult]:
        derived = self.wizard.derived_values()
        pending = [d for d in derived.values() if d.status == DerivedStatus.PENDING]
        if pending:
            names = ", ".join(d.spec.display_name for d in pending)
            return self._reject(
                SubmissionErrorKind.PRECONDITION, f"Please wait, still loading {names}."
            )
        not_ready = [d for d in derived.values() if not d.is_fresh(self.wizard.form_state)]
        if not_ready:
            names = ", ".join(d.spec.display_name for d in not_ready)
            return self._reject(
                SubmissionErrorKind.PRECONDITION, f"{names.capitalize()} is not available.",
            )

        issues: list[GateIssue] = []
        for index in range(self.wizard.step_count):
            issues.extend(self.wizard.evaluate_step(index).issues)
        if issues:
            return self._reject(
                SubmissionErrorKind.PRECONDITION,
                "Some booking details are incomplete. Please review each step.",
                issues,
            )
        return None

    async def submit(self) -> SubmissionResult:
        """
        Run the pipeline once.

        Never raises for service failures; every outcome is a SubmissionResult.
        The booking service is not called unless every local check passes.
        """
        status = self.wizard.status
        if status == WizardStatus.SUBMITTING:
            return self._reject(SubmissionErrorKind.IN_PROGRESS, "A submission is already running.")
        if status != WizardStatus.ACTIVE:
            return self._reject(SubmissionErrorKind.INACTIVE, f"This booking is {status.value}.")

        refused = self._check_preconditions()
        if refused is not None:
            return refused

        failures = self.wizard.validate_all()
        if failures:
            return self._reject(
                SubmissionErrorKind.VALIDATION,
                "Please correct the highlighted fields before booking.",
            )

        payload = self.projection.build(self.wizard.form_state, self._derived_snapshot())
        task = asyncio.ensure_future(
            asyncio.wait_for(self.service.create_booking(payload), timeout=self.timeout)
        )
        self.wizard.begin_submission(task)
        logger.info("Submitting booking for %s", payload.get("boatType", self.wizard.definition.name))

        try:
            response = await task
        except asyncio.CancelledError:
            if self.wizard.status == WizardStatus.ABANDONED:
                return SubmissionResult(
                    ok=False, error="Booking was abandoned.",
                    error_kind=SubmissionErrorKind.ABANDONED,
                )
            raise
        except asyncio.TimeoutError:
            return self._after_failure(
                SubmissionErrorKind.NETWORK, "The booking service did not respond in time."
            )
        except BookingServiceError as exc:
            return self._after_failure(SubmissionErrorKind.NETWORK, str(exc))
        except Exception as exc:
            logger.error("Booking service failed unexpectedly: %s", exc, exc_info=True)
            return self._after_failure(
                SubmissionErrorKind.NETWORK, "Could not create the booking. Please try again."
            )

        if self.wizard.status != WizardStatus.SUBMITTING:
            return SubmissionResult(
                ok=False, error="Booking was abandoned.", error_kind=SubmissionErrorKind.ABANDONED,
            )
        if not response.success or response.data is None:
            return self._after_failure(
                SubmissionErrorKind.REJECTED, response.message or "Failed to create booking."
            )

        booking_id = response.data.id
        self.wizard.complete_submission(booking_id)
        return SubmissionResult(ok=True, booking_id=booking_id, record=response.data)

    def _after_failure(self, kind: SubmissionErrorKind, message: str) -> SubmissionResult:
        if self.wizard.status != WizardStatus.SUBMITTING:
            return SubmissionResult(
                ok=False, error="Booking was abandoned.", error_kind=SubmissionErrorKind.ABANDONED,
            )
        return self._reject(kind, message)

    def _derived_snapshot(self) -> dict[str, Any]:
        values: dict[str, DerivedValue] = self.wizard.derived_values()
        return {name: d.last_value for name, d in values.items()}
