"""
REST Booking Service — talks to the ride booking API over HTTP.

Endpoints:
    POST {base_url}/api/boat-rides          create a ride booking
    POST {base_url}/api/boat-rides/pricing  quote a ride
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ridebooking.config import settings
from ridebooking.schemas.booking_schema import (
    BookingResponse,
    PricingCriteria,
    PricingResponse,
)
from ridebooking.schemas.customer_schema import BookingContext
from ridebooking.tools.base import BookingService, BookingServiceError

logger = logging.getLogger(__name__)

RIDES_PATH = "/api/boat-rides"
PRICING_PATH = "/api/boat-rides/pricing"


class RestBookingService(BookingService):
    """
    HTTP adapter for the booking API.

    Non-2xx answers are business rejections and come back as
    ``success=False`` with the server's message. Connection errors,
    timeouts, and unparseable bodies raise BookingServiceError.
    """

    def __init__(
        self,
        context: Optional[BookingContext] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.context = context or BookingContext()
        self.base_url: str = (base_url or settings.api.base_url).rstrip("/")
        self.timeout: float = timeout if timeout is not None else settings.api.request_timeout_sec

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.context.auth_token:
            headers["Authorization"] = f"Bearer {self.context.auth_token}"
        return headers

    async def _post(self, path: str, body: dict[str, Any]) -> tuple[int, dict]:
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    f"{self.base_url}{path}",
                    json=body,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
        except httpx.HTTPError as exc:
            logger.warning("Booking API unreachable (%s): %s", path, exc)
            raise BookingServiceError(f"Booking service unavailable: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if not resp.is_success:
            logger.warning("Booking API error on %s: %s", path, resp.status_code)
        return resp.status_code, data

    async def create_booking(self, payload: dict[str, Any]) -> BookingResponse:
        status, data = await self._post(RIDES_PATH, payload)
        if status >= 400 or not data.get("success"):
            return BookingResponse(
                success=False,
                message=data.get("message") or f"Failed to create ride booking ({status})",
            )
        body = data.get("data")
        record = body.get("booking") if isinstance(body, dict) else None
        if not isinstance(record, dict):
            raise BookingServiceError("Malformed booking response: no booking record")
        try:
            return BookingResponse(success=True, data=record, message=data.get("message", ""))
        except ValidationError as exc:
            raise BookingServiceError(f"Malformed booking record: {exc}") from exc

    async def get_pricing(self, criteria: PricingCriteria) -> PricingResponse:
        status, data = await self._post(PRICING_PATH, criteria.to_wire())
        if status >= 400 or not data.get("success"):
            return PricingResponse(
                success=False,
                message=data.get("message") or f"Failed to get pricing ({status})",
            )
        try:
            return PricingResponse(success=True, data=data.get("data"))
        except ValidationError as exc:
            raise BookingServiceError(f"Malformed pricing data: {exc}") from exc
