"""Tests for declarative field rules and the validator."""

import pytest

from ridebooking.wizard.rules import (
    FieldDefinition,
    Rule,
    RuleKind,
    validate,
    validate_field,
)


class TestRequired:
    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_blank_values_fail(self, value):
        result = validate(Rule.required(), value)
        assert not result.valid
        assert result.message == "This field is required"

    @pytest.mark.parametrize("value", ["Yacht", 0, False, [1]])
    def test_present_values_pass(self, value):
        assert validate(Rule.required(), value).valid

    def test_custom_message(self):
        result = validate(Rule.required("Boat type is required"), "")
        assert result.message == "Boat type is required"


class TestRange:
    def test_below_min(self):
        result = validate(Rule.range(1, 8), 0)
        assert not result.valid
        assert result.message == "Value must be at least 1"

    def test_above_max(self):
        result = validate(Rule.range(1, 8), 9)
        assert result.message == "Value must be at most 8"

    def test_fractional_bound_kept(self):
        result = validate(Rule.range(0.25, 6), 0.1)
        assert result.message == "Value must be at least 0.25"

    def test_bounds_inclusive(self):
        assert validate(Rule.range(1, 8), 1).valid
        assert validate(Rule.range(1, 8), 8).valid

    def test_numeric_string_accepted(self):
        assert validate(Rule.range(1, 8), " 4 ").valid

    @pytest.mark.parametrize("value", ["four", True, float("nan"), object()])
    def test_non_numbers_rejected(self, value):
        result = validate(Rule.range(1, 8), value)
        assert result.message == "Please enter a valid number"

    def test_inverted_bounds_rejected_at_build(self):
        with pytest.raises(ValueError):
            Rule.range(8, 1)


class TestLength:
    def test_too_short(self):
        result = validate(Rule.length(2, 50), "A")
        assert result.message == "Must be at least 2 characters"

    def test_too_long(self):
        result = validate(Rule.length(0, 5), "abcdef")
        assert result.message == "Must be at most 5 characters"

    def test_open_ended_max(self):
        assert validate(Rule.length(1), "x" * 10_000).valid


class TestRegex:
    def test_whole_value_must_match(self):
        rule = Rule.regex(r"[0-9]{10}")
        assert validate(rule, "0771234567").valid
        assert not validate(rule, "07712345678").valid

    def test_default_message(self):
        assert validate(Rule.regex(r"\d+"), "abc").message == "Invalid format"

    def test_bad_pattern_rejected_at_build(self):
        with pytest.raises(Exception):
            Rule.regex("[unclosed")


class TestChoice:
    def test_member_passes(self):
        assert validate(Rule.choice(["Yacht", "Dinghy"]), "Yacht").valid

    def test_non_member_fails(self):
        result = validate(Rule.choice(["Yacht", "Dinghy"]), "Submarine")
        assert result.message == "Please choose one of the available options"


class TestCustom:
    def test_check_sees_form_state(self):
        def matches(value, state):
            return value == state.get("password")

        rule = Rule.custom("matches", "Passwords do not match")
        checks = {"matches": matches}
        assert validate(rule, "s3cret", {"password": "s3cret"}, checks).valid
        result = validate(rule, "other", {"password": "s3cret"}, checks)
        assert result.message == "Passwords do not match"

    def test_missing_check_raises(self):
        with pytest.raises(KeyError):
            validate(Rule.custom("nope"), "x", {}, {})


class TestPurity:
    def test_same_inputs_same_result(self):
        rule = Rule.range(1, 8)
        assert validate(rule, 0) == validate(rule, 0)

    def test_rules_are_hashable_data(self):
        assert Rule.range(1, 8) == Rule.range(1, 8)
        assert len({Rule.range(1, 8), Rule.range(1, 8)}) == 1

    def test_dict_form(self):
        rule = Rule.choice(["Yacht", "Dinghy"], "Pick a boat")
        data = rule.to_dict()
        assert data == {
            "kind": "choice",
            "params": {"message": "Pick a boat", "options": ["Yacht", "Dinghy"]},
        }
        assert Rule.from_dict(data) == rule


class TestValidateField:
    def test_required_wins_over_other_rules(self):
        defn = FieldDefinition("name", "Name", rules=(
            Rule.length(2, 50), Rule.required("Name is required"),
        ))
        assert validate_field(defn, "").message == "Name is required"

    def test_blank_optional_field_is_valid(self):
        defn = FieldDefinition("emergency", "Emergency", rules=(Rule.regex(r"[0-9]{10}"),))
        assert validate_field(defn, "").valid
        assert validate_field(defn, None).valid

    def test_blank_value_must_meet_positive_min_length(self):
        defn = FieldDefinition("nic", "NIC number", rules=(Rule.length(10, 12),))
        assert validate_field(defn, "").message == "Must be at least 10 characters"
        assert validate_field(defn, None).message == "Must be at least 10 characters"

    def test_blank_value_skips_zero_min_length(self):
        defn = FieldDefinition("notes", "Notes", rules=(Rule.length(0, 20),))
        assert validate_field(defn, "").valid

    def test_first_failure_reported(self):
        defn = FieldDefinition("code", "Code", rules=(
            Rule.length(3, 3, "Three characters"),
            Rule.regex(r"[A-Z]+", "Upper case only"),
        ))
        assert validate_field(defn, "ab").message == "Three characters"
        assert validate_field(defn, "abc").message == "Upper case only"
        assert validate_field(defn, "ABC").valid

    def test_is_required(self):
        assert FieldDefinition("a", "A", rules=(Rule.required(),)).is_required
        assert not FieldDefinition("a", "A", rules=(Rule.length(0, 3),)).is_required
        assert Rule.required().kind == RuleKind.REQUIRED
