"""Tests for the scheduling widget message port."""

import pytest

from conftest import make_definition, scheduled_message, yacht_rate
from ridebooking.schemas.booking_schema import SchedulingConfirmation
from ridebooking.wizard.controller import WizardController
from ridebooking.wizard.scheduling import SchedulingBinding, parse_scheduling_message


@pytest.fixture
def wizard():
    return WizardController(make_definition(yacht_rate), debounce_sec=0)


class TestParseMessage:
    def test_scheduled_event(self):
        confirmation = parse_scheduling_message(scheduled_message("ABC123", "2030-01-15T16:00:00Z"))
        assert confirmation.external_ref == "ABC123"
        assert confirmation.start_time == "2030-01-15T16:00:00Z"
        assert confirmation.event_uri.endswith("/scheduled_events/ABC123")

    @pytest.mark.parametrize("message", [
        None,
        "calendly.event_scheduled",
        {"event": "calendly.profile_page_viewed"},
        {"event": "calendly.event_scheduled"},
        {"event": "calendly.event_scheduled", "payload": {"event": "nope"}},
        {"event": "calendly.event_scheduled", "payload": {"event": {"uri": "x/y"}}},
        {"event": "calendly.event_scheduled", "payload": {"event": {"start_time": "2030"}}},
    ])
    def test_unrelated_or_malformed_ignored(self, message):
        assert parse_scheduling_message(message) is None


class TestBinding:
    def test_values_for(self):
        binding = SchedulingBinding()
        values = binding.values_for(SchedulingConfirmation(
            external_ref="A1", start_time="2030-01-15T16:00:00Z",
        ))
        assert values == {
            "external_ref": "A1",
            "scheduled_start": "2030-01-15T16:00:00Z",
            "event_uri": None,
            "schedule_confirmed": True,
        }

    def test_is_confirmed_needs_start(self):
        binding = SchedulingBinding()
        assert not binding.is_confirmed({"schedule_confirmed": True})
        assert binding.is_confirmed({"schedule_confirmed": True, "scheduled_start": "2030"})


class TestReceiveMessage:
    def test_confirmation_fills_reserved_fields(self, wizard):
        assert wizard.receive_message(scheduled_message("EVT1"))
        assert wizard.value("external_ref") == "EVT1"
        assert wizard.value("schedule_confirmed") is True

    def test_repeated_confirmation_latest_start_wins(self, wizard):
        wizard.receive_message(scheduled_message("EVT1", "2030-01-15T16:00:00Z"))
        wizard.receive_message(scheduled_message("EVT1", "2030-01-15T18:30:00Z"))

        assert wizard.value("external_ref") == "EVT1"
        assert wizard.value("scheduled_start") == "2030-01-15T18:30:00Z"
        assert wizard.evaluate_step(2).ok

    def test_unrelated_message_ignored(self, wizard):
        assert not wizard.receive_message({"event": "calendly.date_and_time_selected"})
        assert wizard.value("schedule_confirmed") is False

    def test_ignored_after_abandon(self, wizard):
        wizard.abandon()
        assert not wizard.receive_message(scheduled_message())
        assert wizard.value("external_ref") is None

    def test_no_binding_rejects_confirmation(self):
        from ridebooking.wizard.definition import WizardDefinition
        from ridebooking.wizard.rules import FieldDefinition
        from ridebooking.wizard.steps import StepSpec

        plain = WizardController(WizardDefinition(
            "plain", fields=(FieldDefinition("a", "A"),), steps=(StepSpec(0, "One"),),
        ))
        assert not plain.receive_message(scheduled_message())
