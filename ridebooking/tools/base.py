"""
Base Booking Service — abstract interface for the external booking backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ridebooking.schemas.booking_schema import (
    BookingResponse,
    PricingCriteria,
    PricingResponse,
)


class BookingServiceError(Exception):
    """Raised when the booking service cannot be reached or answers garbage."""


class BookingService(ABC):
    """Collaborator the wizard talks to for pricing and booking creation.

    Business rejections come back as ``success=False`` responses.
    Transport failures raise :class:`BookingServiceError`.
    """

    @abstractmethod
    async def create_booking(self, payload: dict[str, Any]) -> BookingResponse:
        """
        Create a ride booking.

        Args:
            payload: Wire-shaped booking fields (camelCase keys).

        Returns:
            BookingResponse with the stored record on success.
        """

    @abstractmethod
    async def get_pricing(self, criteria: PricingCriteria) -> PricingResponse:
        """Quote a ride for the given criteria."""
