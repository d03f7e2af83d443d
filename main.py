"""
Boat ride booking entry point.

Runs the booking wizard either fully offline against the in-memory
booking service, or against the configured booking API.

Usage:
    Offline demo:  python main.py console [--scenario booking]
    Live API:      python main.py remote
"""

import asyncio
import logging
import sys

from ridebooking.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode(scenario: str = "") -> None:
    """Start the offline console demo (no backend required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    if scenario:
        asyncio.run(session.run_scenario(scenario))
    else:
        asyncio.run(session.run())


def _run_remote_mode() -> None:
    """Drive the interactive wizard against the live booking API."""
    from console_demo import ConsoleSession
    from ridebooking.schemas.customer_schema import BookingContext
    from ridebooking.tools.rest_client import RestBookingService

    context = BookingContext(auth_token=settings.api.auth_token or None)
    service = RestBookingService(context=context)
    logger.info("Using booking API at %s", service.base_url)
    session = ConsoleSession(service=service, context=context)
    asyncio.run(session.run())


if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "console"
    if mode == "remote":
        _run_remote_mode()
    else:
        scenario = sys.argv[3] if len(sys.argv) > 3 and sys.argv[2] == "--scenario" else ""
        _run_console_mode(scenario)
