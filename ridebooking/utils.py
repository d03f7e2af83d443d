"""Shared utilities used across the ride booking wizard."""

import hashlib
import json
import re
from typing import Any, Iterable, Mapping


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("077 123 4567")
        '0771234567'
        >>> normalize_phone("+94 (77) 123-4567")
        '+94771234567'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings, and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def inputs_hash(values: Mapping[str, Any], names: Iterable[str]) -> str:
    """Stable digest of the named subset of ``values``.

    Missing names hash the same as explicit ``None``.
    """
    subset = {name: values.get(name) for name in sorted(names)}
    encoded = json.dumps(subset, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:16]


def format_duration(hours: float) -> str:
    """Human label for a ride duration given in hours.

    Examples:
        >>> format_duration(0.75)
        '45 minutes'
        >>> format_duration(2.25)
        '2 hours 15 minutes'
    """
    total_minutes = int(round(hours * 60))
    whole_hours, minutes = divmod(total_minutes, 60)
    parts = []
    if whole_hours:
        parts.append(f"{whole_hours} hour" + ("s" if whole_hours > 1 else ""))
    if minutes:
        parts.append(f"{minutes} minutes")
    return " ".join(parts) or "0 minutes"
