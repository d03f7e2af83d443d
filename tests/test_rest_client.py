"""Tests for the HTTP booking service adapter."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from ridebooking.schemas.booking_schema import PricingCriteria
from ridebooking.schemas.customer_schema import BookingContext
from ridebooking.tools.base import BookingServiceError
from ridebooking.tools.rest_client import RestBookingService

BOOKING = {
    "_id": "65f0c0ffee",
    "customerName": "Nimal Perera",
    "customerEmail": "nimal@example.com",
    "customerPhone": "0771234567",
    "rideDate": "2030-01-15",
    "rideTime": "16:00",
    "duration": 2,
    "passengers": 4,
    "boatType": "Speedboat",
    "journeyType": "Island Hopping",
    "basePrice": 7000,
    "passengerPrice": 700,
    "totalPrice": 9800,
    "status": "pending",
    "paymentStatus": "pending",
}

CRITERIA = PricingCriteria(
    boat_type="Speedboat", journey_type="Island Hopping", duration=1.5, passengers=4,
)


def _mock_client(response=None, error=None):
    mock_client = AsyncMock()
    if error is not None:
        mock_client.post = AsyncMock(side_effect=error)
    else:
        mock_client.post = AsyncMock(return_value=response)
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    return mock_client


@pytest.fixture
def service():
    return RestBookingService(
        context=BookingContext(auth_token="tok-123"),
        base_url="http://rides.test/",
        timeout=5,
    )


@pytest.mark.asyncio
async def test_create_booking_success(service):
    response = httpx.Response(201, json={
        "success": True,
        "message": "Boat ride booking created successfully",
        "data": {"booking": BOOKING},
    })
    mock_client = _mock_client(response)

    with patch("httpx.AsyncClient", return_value=mock_client):
        result = await service.create_booking({"boatType": "Speedboat"})

    assert result.success
    assert result.data.id == "65f0c0ffee"
    assert result.data.total_price == 9800
    args, kwargs = mock_client.post.call_args
    assert args[0] == "http://rides.test/api/boat-rides"
    assert kwargs["json"] == {"boatType": "Speedboat"}
    assert kwargs["headers"]["Authorization"] == "Bearer tok-123"
    assert kwargs["timeout"] == 5


@pytest.mark.asyncio
async def test_create_booking_conflict_returns_server_message(service):
    response = httpx.Response(409, json={
        "success": False,
        "message": "A booking already exists for this date, time, and boat type",
    })

    with patch("httpx.AsyncClient", return_value=_mock_client(response)):
        result = await service.create_booking({})

    assert not result.success
    assert result.message == "A booking already exists for this date, time, and boat type"


@pytest.mark.asyncio
async def test_create_booking_non_json_error(service):
    response = httpx.Response(502, text="<html>Bad gateway</html>")

    with patch("httpx.AsyncClient", return_value=_mock_client(response)):
        result = await service.create_booking({})

    assert not result.success
    assert "502" in result.message


@pytest.mark.asyncio
async def test_create_booking_malformed_record_raises(service):
    response = httpx.Response(201, json={"success": True, "data": {"booking": {"_id": "x"}}})

    with patch("httpx.AsyncClient", return_value=_mock_client(response)):
        with pytest.raises(BookingServiceError):
            await service.create_booking({})


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"success": True, "data": "ok"},
    {"success": True, "data": {"id": "65f0c0ffee"}},
    {"success": True},
])
async def test_create_booking_without_record_raises(service, body):
    response = httpx.Response(201, json=body)

    with patch("httpx.AsyncClient", return_value=_mock_client(response)):
        with pytest.raises(BookingServiceError, match="no booking record"):
            await service.create_booking({})


@pytest.mark.asyncio
async def test_connection_error_raises_service_error(service):
    error = httpx.ConnectError("connection refused")

    with patch("httpx.AsyncClient", return_value=_mock_client(error=error)):
        with pytest.raises(BookingServiceError, match="unavailable"):
            await service.create_booking({})


@pytest.mark.asyncio
async def test_get_pricing_success(service):
    response = httpx.Response(200, json={
        "success": True,
        "data": {"basePrice": 7000, "passengerPrice": 700, "totalPrice": 11200},
    })
    mock_client = _mock_client(response)

    with patch("httpx.AsyncClient", return_value=mock_client):
        result = await service.get_pricing(CRITERIA)

    assert result.success
    assert result.data.unit_price == 700
    args, kwargs = mock_client.post.call_args
    assert args[0] == "http://rides.test/api/boat-rides/pricing"
    assert kwargs["json"] == {
        "boatType": "Speedboat", "journeyType": "Island Hopping",
        "duration": 1.5, "passengers": 4,
    }


@pytest.mark.asyncio
async def test_get_pricing_rejection(service):
    response = httpx.Response(400, json={
        "success": False, "message": "All pricing parameters must be provided",
    })

    with patch("httpx.AsyncClient", return_value=_mock_client(response)):
        result = await service.get_pricing(CRITERIA)

    assert not result.success
    assert result.message == "All pricing parameters must be provided"


def test_no_token_no_auth_header():
    service = RestBookingService(base_url="http://rides.test")
    assert "Authorization" not in service._headers()
