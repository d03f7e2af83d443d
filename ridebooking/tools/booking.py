"""
In-memory booking service.

Mirrors the ride booking API's pricing and creation rules so the wizard
can run end to end in tests and the console demo. In production the
REST client in ``rest_client.py`` talks to the real backend instead.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from ridebooking.config import settings
from ridebooking.schemas.booking_schema import (
    BookingRecord,
    BookingResponse,
    PricingCriteria,
    PricingQuote,
    PricingResponse,
)
from ridebooking.tools.base import BookingService
from ridebooking.tools.catalog import get_base_price

logger = logging.getLogger(__name__)

REQUIRED_BOOKING_FIELDS = (
    "customerName", "customerEmail", "customerPhone", "rideDate", "rideTime",
    "duration", "passengers", "boatType", "journeyType", "basePrice", "passengerPrice",
)

ACTIVE_STATUSES = frozenset({"pending", "confirmed", "in-progress"})


def quote_price(
    boat_type: str,
    journey_type: str,
    duration: float,
    passengers: int,
    default_base_price: Optional[int] = None,
    passenger_rate: Optional[float] = None,
) -> PricingQuote:
    """Price a ride: base price plus a per-passenger, per-hour charge."""
    if default_base_price is None:
        default_base_price = settings.pricing.default_base_price
    if passenger_rate is None:
        passenger_rate = settings.pricing.passenger_rate

    base = get_base_price(boat_type, journey_type, default_base_price)
    unit = round(base * passenger_rate)
    total = base + unit * duration * passengers
    return PricingQuote(base_price=base, unit_price=unit, total_price=total)


class InMemoryBookingService(BookingService):
    """Booking service backed by a dict. Used by tests and the console demo."""

    def __init__(self) -> None:
        self._bookings: dict[str, BookingRecord] = {}
        self.pricing_calls = 0
        self.create_calls = 0

    async def get_pricing(self, criteria: PricingCriteria) -> PricingResponse:
        self.pricing_calls += 1
        if not (criteria.boat_type and criteria.journey_type
                and criteria.duration and criteria.passengers):
            return PricingResponse(
                success=False, message="All pricing parameters must be provided"
            )
        quote = quote_price(
            criteria.boat_type, criteria.journey_type, criteria.duration, criteria.passengers
        )
        logger.debug("Quoted %s for %s", quote.total_price, criteria.to_wire())
        return PricingResponse(success=True, data=quote)

    async def create_booking(self, payload: dict[str, Any]) -> BookingResponse:
        self.create_calls += 1
        missing = [key for key in REQUIRED_BOOKING_FIELDS if not payload.get(key)]
        if missing:
            return BookingResponse(
                success=False, message="All required fields must be provided"
            )

        for existing in self._bookings.values():
            if (
                existing.ride_date == payload["rideDate"]
                and existing.ride_time == payload["rideTime"]
                and existing.boat_type == payload["boatType"]
                and existing.status in ACTIVE_STATUSES
            ):
                return BookingResponse(
                    success=False,
                    message="A booking already exists for this date, time, and boat type",
                )

        ref = f"RIDE-{uuid.uuid4().hex[:6].upper()}"
        total = payload["basePrice"] + payload["passengers"] * payload["passengerPrice"]
        record = BookingRecord(
            id=ref,
            customer_name=payload["customerName"],
            customer_email=payload["customerEmail"],
            customer_phone=payload["customerPhone"],
            ride_date=payload["rideDate"],
            ride_time=payload["rideTime"],
            duration=payload["duration"],
            passengers=payload["passengers"],
            boat_type=payload["boatType"],
            journey_type=payload["journeyType"],
            base_price=payload["basePrice"],
            passenger_price=payload["passengerPrice"],
            total_price=total,
            special_requests=payload.get("specialRequests"),
            emergency_contact=payload.get("emergencyContact"),
            created_at=datetime.now(timezone.utc),
        )
        self._bookings[ref] = record
        logger.info(
            "Ride booked: %s (%s, %s at %s)",
            ref, record.boat_type, record.ride_date, record.ride_time,
        )
        return BookingResponse(
            success=True, data=record, message="Boat ride booking created successfully"
        )

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        """Retrieve a booking by id."""
        return self._bookings.get(booking_id)

    def cancel_booking(self, booking_id: str, reason: str = "") -> BookingResponse:
        """Cancel an existing booking, freeing its slot."""
        record = self._bookings.get(booking_id)
        if record is None:
            return BookingResponse(success=False, message=f"Booking {booking_id} not found.")
        cancelled = record.model_copy(update={"status": "cancelled"})
        self._bookings[booking_id] = cancelled
        logger.info("Ride cancelled: %s (%s)", booking_id, reason or "no reason given")
        return BookingResponse(success=True, data=cancelled, message="Booking cancelled")

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
        self.pricing_calls = 0
        self.create_calls = 0
