"""Booking, pricing, and scheduling data models.

Wire names follow the booking API (camelCase); attributes are snake_case.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for models exchanged with the booking API."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PricingCriteria(WireModel):
    """Inputs the pricing endpoint needs."""
    boat_type: str = Field(alias="boatType")
    journey_type: str = Field(alias="journeyType")
    duration: float
    passengers: int


class PricingQuote(WireModel):
    """Price breakdown for one set of criteria."""
    base_price: float = Field(alias="basePrice")
    unit_price: float = Field(alias="passengerPrice")
    total_price: float = Field(alias="totalPrice")


class PricingResponse(WireModel):
    """Pricing endpoint result."""
    success: bool
    data: Optional[PricingQuote] = None
    message: str = ""


class BookingRecord(WireModel):
    """Ride booking as stored by the booking service."""
    id: str = Field(alias="_id")
    customer_name: str = Field(alias="customerName")
    customer_email: str = Field(alias="customerEmail")
    customer_phone: str = Field(alias="customerPhone")
    ride_date: Optional[str] = Field(default=None, alias="rideDate")
    ride_time: Optional[str] = Field(default=None, alias="rideTime")
    duration: float
    passengers: int
    boat_type: str = Field(alias="boatType")
    journey_type: str = Field(alias="journeyType")
    base_price: float = Field(alias="basePrice")
    passenger_price: float = Field(alias="passengerPrice")
    total_price: float = Field(alias="totalPrice")
    special_requests: Optional[str] = Field(default=None, alias="specialRequests")
    emergency_contact: Optional[str] = Field(default=None, alias="emergencyContact")
    status: str = "pending"
    payment_status: str = Field(default="pending", alias="paymentStatus")
    payment_method: str = Field(default="manual", alias="paymentMethod")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class BookingResponse(WireModel):
    """Booking creation result."""
    success: bool
    data: Optional[BookingRecord] = None
    message: str = ""


class SchedulingConfirmation(WireModel):
    """Out-of-band confirmation delivered by the scheduling widget."""
    external_ref: str = Field(alias="externalRef", min_length=1)
    start_time: str = Field(alias="startTime", min_length=1)
    event_uri: Optional[str] = Field(default=None, alias="eventUri")
