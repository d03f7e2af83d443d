"""
Declarative field rules and the pure validator that evaluates them.

Rules are data (kind + params), never closures, so a wizard definition
can be serialized, diffed, and tested on its own. Cross-field checks
are referenced by name and resolved against a check registry passed in
by the caller.

Usage:
    rule = Rule.range(1, 8)
    result = validate(rule, 0)
    assert not result.valid and result.message == "Value must be at least 1"
"""

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from ridebooking.utils import is_blank

logger = logging.getLogger(__name__)

# Signature of a named cross-field check: (value, form_state) -> passed
CustomCheck = Callable[[Any, Mapping[str, Any]], bool]


class RuleKind(str, Enum):
    """Supported rule kinds."""

    REQUIRED = "required"
    RANGE = "range"
    LENGTH = "length"
    REGEX = "regex"
    CHOICE = "choice"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Rule:
    """Immutable constraint attached to a field."""

    kind: RuleKind
    params: tuple[tuple[str, Any], ...] = ()

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default

    @property
    def message(self) -> Optional[str]:
        return self.param("message")

    @classmethod
    def _build(cls, kind: RuleKind, message: Optional[str], **params: Any) -> "Rule":
        if message is not None:
            params["message"] = message
        return cls(kind=kind, params=tuple(sorted(params.items())))

    @classmethod
    def required(cls, message: Optional[str] = None) -> "Rule":
        return cls._build(RuleKind.REQUIRED, message)

    @classmethod
    def range(cls, min: float, max: float, message: Optional[str] = None) -> "Rule":
        if min > max:
            raise ValueError(f"range min {min} exceeds max {max}")
        return cls._build(RuleKind.RANGE, message, min=min, max=max)

    @classmethod
    def length(cls, min: int = 0, max: Optional[int] = None,
               message: Optional[str] = None) -> "Rule":
        if max is not None and min > max:
            raise ValueError(f"length min {min} exceeds max {max}")
        return cls._build(RuleKind.LENGTH, message, min=min, max=max)

    @classmethod
    def regex(cls, pattern: str, message: Optional[str] = None) -> "Rule":
        re.compile(pattern)
        return cls._build(RuleKind.REGEX, message, pattern=pattern)

    @classmethod
    def choice(cls, options: Any, message: Optional[str] = None) -> "Rule":
        return cls._build(RuleKind.CHOICE, message, options=tuple(options))

    @classmethod
    def custom(cls, check: str, message: Optional[str] = None) -> "Rule":
        return cls._build(RuleKind.CUSTOM, message, check=check)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain data."""
        params = {k: list(v) if isinstance(v, tuple) else v for k, v in self.params}
        return {"kind": self.kind.value, "params": params}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        params = {
            k: tuple(v) if isinstance(v, list) else v
            for k, v in dict(data.get("params") or {}).items()
        }
        return cls(kind=RuleKind(data["kind"]), params=tuple(sorted(params.items())))


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value against one or more rules."""

    valid: bool
    message: str = ""


VALID = ValidationResult(valid=True)


def _fail(rule: Rule, default: str) -> ValidationResult:
    return ValidationResult(valid=False, message=rule.message or default)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _check_range(rule: Rule, value: Any) -> ValidationResult:
    number = _as_number(value)
    if number is None:
        return _fail(rule, "Please enter a valid number")
    low, high = rule.param("min"), rule.param("max")
    if number < low:
        return _fail(rule, f"Value must be at least {_format_bound(low)}")
    if number > high:
        return _fail(rule, f"Value must be at most {_format_bound(high)}")
    return VALID


def _check_length(rule: Rule, value: Any) -> ValidationResult:
    text = "" if value is None else str(value)
    low, high = rule.param("min", 0), rule.param("max")
    if len(text) < low:
        return _fail(rule, f"Must be at least {low} characters")
    if high is not None and len(text) > high:
        return _fail(rule, f"Must be at most {high} characters")
    return VALID


def _check_regex(rule: Rule, value: Any) -> ValidationResult:
    text = "" if value is None else str(value)
    if re.fullmatch(rule.param("pattern"), text) is None:
        return _fail(rule, "Invalid format")
    return VALID


def validate(
    rule: Rule,
    value: Any,
    form_state: Optional[Mapping[str, Any]] = None,
    checks: Optional[Mapping[str, CustomCheck]] = None,
) -> ValidationResult:
    """
    Evaluate one rule against one value.

    Pure and deterministic: the same arguments always give the same
    result. ``form_state`` and ``checks`` are only consulted by custom
    rules.

    Raises:
        KeyError: A custom rule names a check missing from ``checks``.
    """
    if rule.kind == RuleKind.REQUIRED:
        return _fail(rule, "This field is required") if is_blank(value) else VALID
    if rule.kind == RuleKind.RANGE:
        return _check_range(rule, value)
    if rule.kind == RuleKind.LENGTH:
        return _check_length(rule, value)
    if rule.kind == RuleKind.REGEX:
        return _check_regex(rule, value)
    if rule.kind == RuleKind.CHOICE:
        if value not in rule.param("options", ()):
            return _fail(rule, "Please choose one of the available options")
        return VALID
    if rule.kind == RuleKind.CUSTOM:
        name = rule.param("check")
        check = (checks or {}).get(name)
        if check is None:
            raise KeyError(f"Unknown custom check: {name}")
        passed = check(value, form_state or {})
        return VALID if passed else _fail(rule, "Invalid value")
    raise ValueError(f"Unsupported rule kind: {rule.kind}")


@dataclass(frozen=True)
class FieldDefinition:
    """Registry entry for one wizard field."""

    name: str
    label: str
    rules: tuple[Rule, ...] = ()
    default: Any = None
    # Fields whose change can flip this field's cross-field rules
    depends_on: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_required(self) -> bool:
        return any(r.kind == RuleKind.REQUIRED for r in self.rules)


def _applies_to_blank(rule: Rule) -> bool:
    return rule.kind == RuleKind.LENGTH and (rule.param("min") or 0) > 0


def validate_field(
    definition: FieldDefinition,
    value: Any,
    form_state: Optional[Mapping[str, Any]] = None,
    checks: Optional[Mapping[str, CustomCheck]] = None,
) -> ValidationResult:
    """
    Apply a field's rules in order and return the first failure.

    ``required`` is evaluated first and wins over every other message.
    A blank value on a field without a ``required`` rule only has to
    satisfy a ``length`` rule with a positive minimum; all other rules
    are skipped.
    """
    blank = is_blank(value)
    if definition.is_required and blank:
        rule = next(r for r in definition.rules if r.kind == RuleKind.REQUIRED)
        return validate(rule, value)

    for rule in definition.rules:
        if rule.kind == RuleKind.REQUIRED:
            continue
        if blank and not _applies_to_blank(rule):
            continue
        result = validate(rule, value, form_state, checks)
        if not result.valid:
            logger.debug("Field '%s' failed %s rule", definition.name, rule.kind.value)
            return result
    return VALID
