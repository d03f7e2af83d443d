"""
Inbound port for the external scheduling widget.

The widget confirms a time slot out of band and posts a message. The
wizard never asks for these events; it only listens and merges them
into reserved fields.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from ridebooking.schemas.booking_schema import SchedulingConfirmation

logger = logging.getLogger(__name__)

SCHEDULED_EVENT = "calendly.event_scheduled"


@dataclass(frozen=True)
class SchedulingBinding:
    """Reserved form fields the confirmation is written to."""

    ref_field: str = "external_ref"
    start_field: str = "scheduled_start"
    uri_field: str = "event_uri"
    confirmed_field: str = "schedule_confirmed"

    @property
    def fields(self) -> frozenset[str]:
        return frozenset({self.ref_field, self.start_field, self.uri_field, self.confirmed_field})

    def values_for(self, confirmation: SchedulingConfirmation) -> dict[str, Any]:
        return {
            self.ref_field: confirmation.external_ref,
            self.start_field: confirmation.start_time,
            self.uri_field: confirmation.event_uri,
            self.confirmed_field: True,
        }

    def is_confirmed(self, form_state: Mapping[str, Any]) -> bool:
        return bool(form_state.get(self.confirmed_field)) and bool(form_state.get(self.start_field))


def parse_scheduling_message(message: Any) -> Optional[SchedulingConfirmation]:
    """
    Turn a widget postMessage payload into a confirmation.

    Expected shape::

        {"event": "calendly.event_scheduled",
         "payload": {"event": {"uri": ".../scheduled_events/ABC", "start_time": "..."}}}

    Returns None for any other message or a malformed payload.
    """
    if not isinstance(message, Mapping) or message.get("event") != SCHEDULED_EVENT:
        return None

    payload = message.get("payload")
    event = payload.get("event") if isinstance(payload, Mapping) else None
    if not isinstance(event, Mapping):
        logger.warning("Scheduling message without event details ignored")
        return None

    uri = str(event.get("uri") or "")
    ref = uri.rstrip("/").rsplit("/", 1)[-1]
    try:
        return SchedulingConfirmation(
            external_ref=ref, start_time=event.get("start_time") or "", event_uri=uri or None
        )
    except ValidationError:
        logger.warning("Malformed scheduling message ignored: %s", event)
        return None
