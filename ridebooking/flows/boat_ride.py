"""
Boat ride booking flow — the four-step wizard customers use to book a ride.

Steps:
    0. Ride Details               boat, journey, duration, passengers
    1. Pricing & Confirmation     waits for a fresh price quote
    2. Schedule Your Ride         waits for the scheduling widget
    3. Payment & Additional Info  contact details and special requests

Pricing is a derived value recomputed through the booking service
whenever any of its four inputs changes.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from ridebooking.config import settings
from ridebooking.logging_context import get_session_logger
from ridebooking.schemas.booking_schema import PricingCriteria, PricingQuote
from ridebooking.schemas.customer_schema import BookingContext
from ridebooking.tools.base import BookingService
from ridebooking.tools.catalog import (
    BOAT_CAPACITY,
    JOURNEY_TYPES,
    MAX_DURATION_HOURS,
    MIN_DURATION_HOURS,
    get_boat_capacity,
    is_valid_duration,
)
from ridebooking.utils import normalize_phone
from ridebooking.wizard.controller import WizardController
from ridebooking.wizard.definition import WizardDefinition
from ridebooking.wizard.derived import DerivedSpec
from ridebooking.wizard.rules import FieldDefinition, Rule
from ridebooking.wizard.scheduling import SchedulingBinding
from ridebooking.wizard.steps import StepSpec
from ridebooking.wizard.submission import (
    PayloadProjection,
    SubmissionPipeline,
    SubmissionResult,
)

logger = get_session_logger(__name__)

PRICING = "pricing"
PRICING_INPUTS = frozenset({"boat_type", "journey_type", "duration", "passengers"})

EMAIL_PATTERN = r"[^\s@]+@[^\s@]+\.[^\s@]+"
PHONE_PATTERN = r"[0-9]{10}"
PHONE_MESSAGE = "Please enter a valid 10-digit phone number"

SCHEDULING = SchedulingBinding()


class PricingUnavailableError(Exception):
    """The booking service declined to quote the ride."""


# ---------------------------------------------------------------------- #
# Cross-field checks
# ---------------------------------------------------------------------- #

def _within_boat_capacity(value: Any, form_state: Mapping[str, Any]) -> bool:
    capacity = get_boat_capacity(form_state.get("boat_type"))
    if capacity is None:
        return True
    try:
        return int(value) <= capacity
    except (TypeError, ValueError):
        return False


def _quarter_hour(value: Any, form_state: Mapping[str, Any]) -> bool:
    try:
        return is_valid_duration(float(value))
    except (TypeError, ValueError):
        return False


RIDE_CHECKS = {
    "within_boat_capacity": _within_boat_capacity,
    "quarter_hour": _quarter_hour,
}


# ---------------------------------------------------------------------- #
# Field registry and steps
# ---------------------------------------------------------------------- #

def build_fields(max_passengers: int, special_requests_max: int) -> tuple[FieldDefinition, ...]:
    return (
        FieldDefinition(
            name="boat_type",
            label="Boat type",
            rules=(
                Rule.required("Boat type is required"),
                Rule.choice(BOAT_CAPACITY, "Invalid boat type"),
            ),
        ),
        FieldDefinition(
            name="journey_type",
            label="Journey type",
            rules=(
                Rule.required("Journey type is required"),
                Rule.choice(JOURNEY_TYPES, "Invalid journey type"),
            ),
        ),
        FieldDefinition(
            name="duration",
            label="Duration",
            default=1,
            rules=(
                Rule.required("Duration is required"),
                Rule.range(MIN_DURATION_HOURS, MAX_DURATION_HOURS),
                Rule.custom("quarter_hour", "Duration must be in 15-minute steps"),
            ),
        ),
        FieldDefinition(
            name="passengers",
            label="Passengers",
            default=1,
            rules=(
                Rule.required("Number of passengers is required"),
                Rule.range(1, max_passengers),
                Rule.custom("within_boat_capacity", "Cannot exceed the boat's maximum capacity"),
            ),
            depends_on=frozenset({"boat_type"}),
        ),
        FieldDefinition(name=SCHEDULING.ref_field, label="Scheduling reference"),
        FieldDefinition(name=SCHEDULING.uri_field, label="Scheduling link"),
        FieldDefinition(name=SCHEDULING.start_field, label="Scheduled start"),
        FieldDefinition(name=SCHEDULING.confirmed_field, label="Scheduled", default=False),
        FieldDefinition(
            name="customer_name",
            label="Name",
            rules=(
                Rule.required("Name is required"),
                Rule.length(2, 50, "Name must be between 2 and 50 characters"),
            ),
        ),
        FieldDefinition(
            name="customer_email",
            label="Email",
            rules=(
                Rule.required("Email is required"),
                Rule.regex(EMAIL_PATTERN, "Please enter a valid email address"),
            ),
        ),
        FieldDefinition(
            name="customer_phone",
            label="Phone",
            rules=(
                Rule.required("Phone number is required"),
                Rule.regex(PHONE_PATTERN, PHONE_MESSAGE),
            ),
        ),
        FieldDefinition(
            name="emergency_contact",
            label="Emergency contact",
            rules=(Rule.regex(PHONE_PATTERN, PHONE_MESSAGE),),
        ),
        FieldDefinition(
            name="special_requests",
            label="Special requests",
            default="",
            rules=(
                Rule.length(
                    0, special_requests_max,
                    f"Special requests must be less than {special_requests_max} characters",
                ),
            ),
        ),
    )


RIDE_STEPS: tuple[StepSpec, ...] = (
    StepSpec(
        index=0,
        title="Ride Details",
        owned_fields=frozenset({"boat_type", "journey_type", "duration", "passengers"}),
    ),
    StepSpec(
        index=1,
        title="Pricing & Confirmation",
        requires=frozenset({PRICING}),
    ),
    StepSpec(
        index=2,
        title="Schedule Your Ride",
        owned_fields=SCHEDULING.fields,
        is_complete=SCHEDULING.is_confirmed,
        incomplete_message="Please schedule your ride time using the calendar",
    ),
    StepSpec(
        index=3,
        title="Payment & Additional Info",
        owned_fields=frozenset({
            "customer_name", "customer_email", "customer_phone",
            "emergency_contact", "special_requests",
        }),
    ),
)


def make_pricing_compute(service: BookingService):
    """Bind the pricing computation to a booking service."""

    async def compute(inputs: dict[str, Any]) -> PricingQuote:
        criteria = PricingCriteria(
            boat_type=inputs["boat_type"],
            journey_type=inputs["journey_type"],
            duration=float(inputs["duration"]),
            passengers=int(inputs["passengers"]),
        )
        response = await service.get_pricing(criteria)
        if not response.success or response.data is None:
            raise PricingUnavailableError(response.message or "Pricing unavailable")
        return response.data

    return compute


def build_ride_definition(
    service: BookingService,
    max_passengers: Optional[int] = None,
    special_requests_max: Optional[int] = None,
) -> WizardDefinition:
    """Assemble the ride booking wizard definition."""
    if max_passengers is None:
        max_passengers = settings.wizard.max_passengers
    if special_requests_max is None:
        special_requests_max = settings.wizard.special_requests_max_length
    return WizardDefinition(
        name="boat_ride",
        fields=build_fields(max_passengers, special_requests_max),
        steps=RIDE_STEPS,
        derived=(
            DerivedSpec(
                name=PRICING,
                inputs=PRICING_INPUTS,
                compute=make_pricing_compute(service),
                label="pricing information",
            ),
        ),
        checks=RIDE_CHECKS,
        scheduling=SCHEDULING,
    )


# ---------------------------------------------------------------------- #
# Payload projection
# ---------------------------------------------------------------------- #

def _scheduled(form_state: Mapping[str, Any]) -> Optional[datetime]:
    raw = form_state.get(SCHEDULING.start_field)
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None


def _ride_date(form_state: Mapping[str, Any], derived: Mapping[str, Any]) -> Optional[str]:
    start = _scheduled(form_state)
    return start.date().isoformat() if start else None


def _ride_time(form_state: Mapping[str, Any], derived: Mapping[str, Any]) -> Optional[str]:
    start = _scheduled(form_state)
    return start.strftime("%H:%M") if start else None


def _quote_attr(attr: str):
    def read(form_state: Mapping[str, Any], derived: Mapping[str, Any]) -> Any:
        quote = derived.get(PRICING)
        return getattr(quote, attr) if quote is not None else None
    return read


def _phone(name: str):
    def read(form_state: Mapping[str, Any], derived: Mapping[str, Any]) -> Optional[str]:
        value = form_state.get(name)
        return normalize_phone(str(value)) if value else None
    return read


def _number(name: str, cast):
    def read(form_state: Mapping[str, Any], derived: Mapping[str, Any]) -> Any:
        value = form_state.get(name)
        return cast(value) if value is not None else None
    return read


RIDE_PAYLOAD = PayloadProjection(
    mapping=(
        ("boatType", "boat_type"),
        ("journeyType", "journey_type"),
        ("duration", _number("duration", float)),
        ("passengers", _number("passengers", int)),
        ("basePrice", _quote_attr("base_price")),
        ("passengerPrice", _quote_attr("unit_price")),
        ("totalPrice", _quote_attr("total_price")),
        ("rideDate", _ride_date),
        ("rideTime", _ride_time),
        ("calendlyEventId", SCHEDULING.ref_field),
        ("calendlyEventUri", SCHEDULING.uri_field),
        ("scheduledDateTime", SCHEDULING.start_field),
        ("customerName", "customer_name"),
        ("customerEmail", "customer_email"),
        ("customerPhone", _phone("customer_phone")),
        ("emergencyContact", _phone("emergency_contact")),
        ("specialRequests", "special_requests"),
    ),
    constants=(("status", "pending"),),
)


# ---------------------------------------------------------------------- #
# Flow
# ---------------------------------------------------------------------- #

@dataclass
class RideBookingFlow:
    """A ride booking wizard wired to its submission pipeline."""

    wizard: WizardController
    pipeline: SubmissionPipeline

    async def submit(self) -> SubmissionResult:
        return await self.pipeline.submit()

    @property
    def quote(self) -> Optional[PricingQuote]:
        pricing = self.wizard.derived(PRICING)
        return pricing.last_value if pricing.is_fresh(self.wizard.form_state) else None


def build_ride_booking(
    service: BookingService,
    context: Optional[BookingContext] = None,
    debounce_sec: Optional[float] = None,
    submit_timeout: Optional[float] = None,
) -> RideBookingFlow:
    """Create a fresh ride booking session, pre-filled from the customer context."""
    context = context or BookingContext()
    wizard = WizardController(
        build_ride_definition(service),
        initial_values=context.prefill(),
        debounce_sec=debounce_sec,
    )
    pipeline = SubmissionPipeline(wizard, service, RIDE_PAYLOAD, timeout=submit_timeout)
    logger.debug("Ride booking flow ready (prefilled: %s)", sorted(context.prefill()))
    return RideBookingFlow(wizard=wizard, pipeline=pipeline)
