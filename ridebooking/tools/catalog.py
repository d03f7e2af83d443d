"""Boat catalogue with capacities, journey types, base prices, and durations."""

import logging
from typing import Optional

from ridebooking.utils import format_duration

logger = logging.getLogger(__name__)

BOAT_CAPACITY: dict[str, int] = {
    "Speedboat": 8,
    "Yacht": 20,
    "Catamaran": 12,
    "Fishing Boat": 6,
    "Dinghy": 4,
    "Jet Ski": 2,
}

JOURNEY_TYPES: list[str] = [
    "Sunset Tour",
    "Adventure Tour",
    "Island Hopping",
    "Snorkeling Adventure",
    "Deep Sea Fishing",
    "Romantic Cruise",
    "Family Tour",
    "Corporate Event",
    "Birthday Party",
    "Wedding Proposal",
]

# Base price per (boat, journey), in rupees
BASE_PRICING: dict[str, dict[str, int]] = {
    "Speedboat": {
        "Sunset Tour": 5000, "Adventure Tour": 6000, "Island Hopping": 7000,
        "Snorkeling Adventure": 6500, "Deep Sea Fishing": 8000, "Romantic Cruise": 5500,
        "Family Tour": 4500, "Corporate Event": 10000, "Birthday Party": 6000,
        "Wedding Proposal": 8000,
    },
    "Yacht": {
        "Sunset Tour": 8000, "Adventure Tour": 10000, "Island Hopping": 12000,
        "Snorkeling Adventure": 11000, "Deep Sea Fishing": 15000, "Romantic Cruise": 9000,
        "Family Tour": 7000, "Corporate Event": 20000, "Birthday Party": 10000,
        "Wedding Proposal": 15000,
    },
    "Catamaran": {
        "Sunset Tour": 6000, "Adventure Tour": 7500, "Island Hopping": 9000,
        "Snorkeling Adventure": 8000, "Deep Sea Fishing": 10000, "Romantic Cruise": 7000,
        "Family Tour": 5500, "Corporate Event": 15000, "Birthday Party": 7500,
        "Wedding Proposal": 10000,
    },
    "Fishing Boat": {
        "Sunset Tour": 3000, "Adventure Tour": 4000, "Island Hopping": 5000,
        "Snorkeling Adventure": 4500, "Deep Sea Fishing": 6000, "Romantic Cruise": 3500,
        "Family Tour": 2500, "Corporate Event": 8000, "Birthday Party": 4000,
        "Wedding Proposal": 5000,
    },
    "Dinghy": {
        "Sunset Tour": 2000, "Adventure Tour": 2500, "Island Hopping": 3000,
        "Snorkeling Adventure": 2800, "Deep Sea Fishing": 3500, "Romantic Cruise": 2200,
        "Family Tour": 1800, "Corporate Event": 5000, "Birthday Party": 2500,
        "Wedding Proposal": 3000,
    },
    "Jet Ski": {
        "Sunset Tour": 1500, "Adventure Tour": 2000, "Island Hopping": 2500,
        "Snorkeling Adventure": 2200, "Deep Sea Fishing": 3000, "Romantic Cruise": 1800,
        "Family Tour": 1200, "Corporate Event": 4000, "Birthday Party": 2000,
        "Wedding Proposal": 2500,
    },
}

# 15-minute increments from 15 minutes to 6 hours
MIN_DURATION_HOURS = 0.25
MAX_DURATION_HOURS = 6.0
DURATION_OPTIONS: list[dict] = [
    {"value": step / 4, "label": format_duration(step / 4)}
    for step in range(1, int(MAX_DURATION_HOURS * 4) + 1)
]

BOAT_ALIASES: dict[str, str] = {
    "speed boat": "Speedboat", "speedboat": "Speedboat",
    "yacht": "Yacht", "cruiser": "Yacht",
    "catamaran": "Catamaran", "cat": "Catamaran",
    "fishing": "Fishing Boat", "trawler": "Fishing Boat",
    "dinghy": "Dinghy", "rowboat": "Dinghy",
    "jet ski": "Jet Ski", "jetski": "Jet Ski", "waverunner": "Jet Ski",
}


def get_all_boats() -> list[dict]:
    """Return all boat types with their capacity."""
    return [{"type": name, "capacity": cap} for name, cap in BOAT_CAPACITY.items()]


def get_boat_capacity(boat_type: Optional[str]) -> Optional[int]:
    """Seat limit for a boat type, or None when the type is unknown."""
    if not boat_type:
        return None
    return BOAT_CAPACITY.get(boat_type)


def get_base_price(boat_type: str, journey_type: str, default: int) -> int:
    """Look up the base price, falling back to ``default`` for unknown pairs."""
    return BASE_PRICING.get(boat_type, {}).get(journey_type, default)


def is_valid_duration(hours: float) -> bool:
    """True if ``hours`` is one of the bookable 15-minute increments."""
    return any(opt["value"] == hours for opt in DURATION_OPTIONS)


def match_boat_type(query: str) -> Optional[str]:
    """Match loose user text to a boat type. Returns None if no match."""
    normalized = query.lower().strip()
    if not normalized:
        return None
    for name in BOAT_CAPACITY:
        if name.lower() == normalized:
            return name
    # Longest alias first so "fishing boat" beats "cat" style partials
    for alias in sorted(BOAT_ALIASES, key=len, reverse=True):
        if alias in normalized:
            return BOAT_ALIASES[alias]
    return None
