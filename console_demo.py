"""
Offline console demo — runs the boat ride booking wizard without a backend.

This drives the real wizard controller, pricing computation, scheduling
port, and submission pipeline against the in-memory booking service. No
network calls. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario race
    python console_demo.py --scenario failure
"""

import argparse
import asyncio
from typing import Any, Optional

from ridebooking.config import settings
from ridebooking.flows.boat_ride import PRICING, RideBookingFlow, build_ride_booking
from ridebooking.schemas.customer_schema import BookingContext
from ridebooking.tools.base import BookingService
from ridebooking.tools.booking import InMemoryBookingService
from ridebooking.tools.catalog import get_all_boats, match_boat_type

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_CUSTOMER = BookingContext(
    customer_name="Nimal Perera",
    customer_email="nimal@example.com",
    customer_phone="0771234567",
)


def _scheduled_message(ref: str, start_time: str) -> dict:
    return {
        "event": "calendly.event_scheduled",
        "payload": {"event": {
            "uri": f"https://api.calendly.com/scheduled_events/{ref}",
            "start_time": start_time,
        }},
    }


class ConsoleSession:
    """Walks one ride booking through the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[tuple]] = {
        "booking": [
            ("set", "boat_type", "Yacht"),
            ("set", "journey_type", "Sunset Tour"),
            ("set", "passengers", 12),
            ("set", "duration", 2),
            ("next",),
            ("wait",),
            ("next",),
            ("next",),
            ("message", _scheduled_message("RIDE1", "2030-01-15T16:00:00Z")),
            ("next",),
            ("set", "special_requests", "Vegetarian snacks please"),
            ("submit",),
        ],
        "race": [
            ("set", "boat_type", "Speedboat"),
            ("set", "journey_type", "Island Hopping"),
            ("set", "passengers", 4),
            ("set", "duration", 1),
            ("set", "duration", 3),
            ("next",),
            ("next",),
            ("wait",),
            ("next",),
        ],
        "failure": [
            ("set", "boat_type", "Jet Ski"),
            ("set", "journey_type", "Family Tour"),
            ("set", "passengers", 5),
            ("next",),
            ("set", "passengers", 2),
            ("next",),
            ("submit",),
        ],
    }

    def __init__(self, service: Optional[BookingService] = None,
                 context: Optional[BookingContext] = None) -> None:
        self.service = service or InMemoryBookingService()
        self.flow: RideBookingFlow = build_ride_booking(self.service, context or DEMO_CUSTOMER)

    @property
    def wizard(self):
        return self.flow.wizard

    def say(self, text: str, colour: str = GREEN) -> None:
        print(f"{colour}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _show_step(self) -> None:
        step = self.wizard.current_step
        self.say(f"{BOLD}Step {step.index + 1}/{self.wizard.step_count}: {step.title}", BLUE)

    def _show_pricing(self) -> None:
        pricing = self.wizard.derived(PRICING)
        quote = self.flow.quote
        if quote is not None:
            self.system_log(
                f"Pricing: base {quote.base_price:,.0f}, per passenger/hour "
                f"{quote.unit_price:,.0f}, total {quote.total_price:,.0f}"
            )
        else:
            self.system_log(f"Pricing: {pricing.status.value}"
                            + (f" ({pricing.error})" if pricing.error else ""))

    async def apply(self, action: tuple) -> None:
        kind = action[0]
        if kind == "set":
            _, name, value = action
            result = self.wizard.update_field(name, value)
            marker = "ok" if result.valid else f"{RED}{result.message}{RESET}"
            print(f"{YELLOW}[Customer]{RESET} {name} = {value!r}  ({marker})")
        elif kind == "next":
            result = self.wizard.next()
            if result.ok:
                self._show_step()
            else:
                for issue in result.issues:
                    self.say(f"  blocked: {issue.message}", RED)
        elif kind == "prev":
            self.wizard.prev()
            self._show_step()
        elif kind == "wait":
            await self.wizard.settle()
            self._show_pricing()
        elif kind == "message":
            accepted = self.wizard.receive_message(action[1])
            self.system_log(f"Scheduling widget event {'accepted' if accepted else 'ignored'}")
        elif kind == "submit":
            result = await self.flow.submit()
            if result.ok:
                self.say(f"Booking confirmed. Reference: {result.booking_id}")
            else:
                self.say(f"Booking failed ({result.error_kind.value}): {result.error}", RED)
                for issue in result.issues:
                    self.system_log(issue.message)
        else:
            self.say(f"Unknown action: {kind}", RED)

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        actions = self.SCENARIOS.get(scenario)
        if not actions:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        self._show_step()
        for action in actions:
            await self.apply(action)
        self._footer()

    async def run(self) -> None:
        self._banner("Interactive - type 'help' for commands")
        boats = ", ".join(f"{b['type']} ({b['capacity']})" for b in get_all_boats())
        self.system_log(f"Boats: {boats}")
        self._show_step()
        loop = asyncio.get_running_loop()
        while self.wizard.is_active:
            line = (await loop.run_in_executor(None, input, f"\n{BLUE}> {RESET}")).strip()
            if not line:
                continue
            if line in ("quit", "exit", "q"):
                self.wizard.abandon()
                print(f"\n{DIM}Session abandoned.{RESET}")
                return
            action = self._parse_command(line)
            if action is None:
                self.say("Commands: set <field> <value> | next | prev | wait | "
                         "schedule <ref> <iso-start> | submit | quit", DIM)
                continue
            await self.apply(action)
        self._footer()

    @staticmethod
    def _parse_command(line: str) -> Optional[tuple]:
        parts = line.split(maxsplit=2)
        command = parts[0].lower()
        if command == "set" and len(parts) == 3:
            if parts[1] == "boat_type":
                # Loose names like "jetski" or "speed boat"
                return ("set", parts[1], match_boat_type(parts[2]) or parts[2])
            return ("set", parts[1], _coerce(parts[2]))
        if command == "schedule" and len(parts) == 3:
            return ("message", _scheduled_message(parts[1], parts[2]))
        if command in ("next", "prev", "wait", "submit") and len(parts) == 1:
            return (command,)
        return None

    def _banner(self, subtitle: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOAT RIDE BOOKING - {subtitle}{RESET}")
        print(f"{BOLD}  App: {settings.app_name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _footer(self) -> None:
        snap = self.wizard.snapshot()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Session {snap['session_id']} is {snap['status']}.{RESET}")
        print(f"{DIM}  Step trace: {' -> '.join(str(i + 1) for i in self.wizard.get_step_trace())}{RESET}")
        if snap["errors"]:
            print(f"{DIM}  Open errors: {snap['errors']}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def _coerce(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
