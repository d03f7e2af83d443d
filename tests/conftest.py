"""Shared test fixtures and helpers."""

import asyncio
from typing import Any, Optional

import pytest

from ridebooking.flows.boat_ride import build_ride_booking
from ridebooking.schemas.booking_schema import (
    BookingRecord,
    BookingResponse,
    PricingCriteria,
    PricingResponse,
)
from ridebooking.schemas.customer_schema import BookingContext
from ridebooking.tools.base import BookingService
from ridebooking.tools.booking import InMemoryBookingService, quote_price
from ridebooking.wizard.definition import WizardDefinition
from ridebooking.wizard.derived import DerivedSpec
from ridebooking.wizard.rules import FieldDefinition, Rule
from ridebooking.wizard.scheduling import SchedulingBinding
from ridebooking.wizard.steps import StepSpec

CUSTOMER = BookingContext(
    customer_name="Nimal Perera",
    customer_email="nimal@example.com",
    customer_phone="0771234567",
    auth_token="test-token",
)


class GatedCompute:
    """Async compute whose results are released by the test, in any order."""

    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], asyncio.Future]] = []

    async def __call__(self, inputs: dict[str, Any]) -> Any:
        future = asyncio.get_running_loop().create_future()
        self.calls.append((inputs, future))
        return await future

    def resolve(self, index: int, value: Any) -> None:
        self.calls[index][1].set_result(value)

    def fail(self, index: int, exc: Exception) -> None:
        self.calls[index][1].set_exception(exc)


class FakeBookingService(BookingService):
    """Booking service with scriptable answers and call recording."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []
        self.pricing_calls: list[PricingCriteria] = []
        self.create_result: Optional[BookingResponse] = None
        self.create_error: Optional[Exception] = None
        self.create_gate: Optional[asyncio.Event] = None

    async def get_pricing(self, criteria: PricingCriteria) -> PricingResponse:
        self.pricing_calls.append(criteria)
        quote = quote_price(
            criteria.boat_type, criteria.journey_type, criteria.duration, criteria.passengers,
            default_base_price=5000, passenger_rate=0.1,
        )
        return PricingResponse(success=True, data=quote)

    async def create_booking(self, payload: dict[str, Any]) -> BookingResponse:
        self.payloads.append(payload)
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        if self.create_result is not None:
            return self.create_result
        return BookingResponse(success=True, data=make_record(payload))


def make_record(payload: dict[str, Any], booking_id: str = "RIDE-TEST01") -> BookingRecord:
    return BookingRecord(
        id=booking_id,
        customer_name=payload.get("customerName", ""),
        customer_email=payload.get("customerEmail", ""),
        customer_phone=payload.get("customerPhone", ""),
        ride_date=payload.get("rideDate"),
        ride_time=payload.get("rideTime"),
        duration=payload.get("duration", 1),
        passengers=payload.get("passengers", 1),
        boat_type=payload.get("boatType", ""),
        journey_type=payload.get("journeyType", ""),
        base_price=payload.get("basePrice", 0),
        passenger_price=payload.get("passengerPrice", 0),
        total_price=payload.get("totalPrice", 0),
    )


async def drain(rounds: int = 5) -> None:
    """Let freshly scheduled tasks run up to their next await."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def scheduled_message(ref: str = "EVT123", start: str = "2030-01-15T16:00:00Z") -> dict:
    return {
        "event": "calendly.event_scheduled",
        "payload": {"event": {
            "uri": f"https://api.calendly.com/scheduled_events/{ref}",
            "start_time": start,
        }},
    }


async def fill_ride(flow, passengers: int = 12, start: str = "2030-01-15T16:00:00Z") -> None:
    """Walk a ride booking to the final step with valid answers."""
    wizard = flow.wizard
    wizard.update_field("boat_type", "Yacht")
    wizard.update_field("journey_type", "Sunset Tour")
    wizard.update_field("passengers", passengers)
    wizard.update_field("duration", 2)
    await wizard.settle()
    assert wizard.next().ok
    assert wizard.next().ok
    wizard.receive_message(scheduled_message("EVT123", start))
    assert wizard.next().ok


def make_definition(compute, inputs=("boatType", "duration")) -> WizardDefinition:
    """Small three-step wizard: details, price, schedule + notes."""
    binding = SchedulingBinding()
    return WizardDefinition(
        name="test_wizard",
        fields=(
            FieldDefinition("boatType", "Boat type", rules=(
                Rule.required("Boat type is required"),
                Rule.choice(["Yacht", "Speedboat"]),
            )),
            FieldDefinition("duration", "Duration", rules=(Rule.range(0.25, 6),)),
            FieldDefinition("passengers", "Passengers", rules=(Rule.range(1, 8),), default=1),
            FieldDefinition(binding.ref_field, "Reference"),
            FieldDefinition(binding.uri_field, "Link"),
            FieldDefinition(binding.start_field, "Start"),
            FieldDefinition(binding.confirmed_field, "Scheduled", default=False),
            FieldDefinition("notes", "Notes", rules=(Rule.length(0, 20),)),
        ),
        steps=(
            StepSpec(0, "Details", owned_fields=frozenset({"boatType", "duration", "passengers"})),
            StepSpec(1, "Price", requires=frozenset({"price"})),
            StepSpec(
                2, "Schedule",
                owned_fields=binding.fields | {"notes"},
                is_complete=binding.is_confirmed,
                incomplete_message="Please pick a time",
            ),
        ),
        derived=(DerivedSpec("price", frozenset(inputs), compute, label="price"),),
        scheduling=binding,
    )


async def yacht_rate(inputs: dict[str, Any]) -> dict[str, Any]:
    return {"totalPrice": 7000 * inputs["duration"]}


@pytest.fixture
def gated():
    return GatedCompute()


@pytest.fixture
def booking_service():
    return InMemoryBookingService()


@pytest.fixture
def fake_service():
    return FakeBookingService()


@pytest.fixture
def ride_flow(booking_service):
    return build_ride_booking(booking_service, CUSTOMER, debounce_sec=0, submit_timeout=1.0)
