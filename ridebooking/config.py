"""
Centralized configuration with environment variable overrides.

API endpoints, wizard timings, and pricing constants are configurable
here. Nothing is hardcoded in the wizard engine or service clients.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ApiConfig:
    """Booking API location and transport settings."""

    base_url: str = os.getenv("RIDE_API_URL", "http://localhost:5001")
    request_timeout_sec: float = _safe_float("REQUEST_TIMEOUT", "10.0")
    # Only read by entry points; the wizard gets it through BookingContext
    auth_token: str = os.getenv("RIDE_API_TOKEN", "")


@dataclass(frozen=True)
class WizardConfig:
    """Timings and limits for the booking wizard."""

    pricing_debounce_ms: int = _safe_int("PRICING_DEBOUNCE_MS", "300")
    submit_timeout_sec: float = _safe_float("SUBMIT_TIMEOUT", "15.0")
    max_passengers: int = _safe_int("MAX_PASSENGERS", "100")
    special_requests_max_length: int = _safe_int("SPECIAL_REQUESTS_MAX_LENGTH", "500")


@dataclass(frozen=True)
class PricingConfig:
    """Fallback pricing used by the in-memory booking service."""

    default_base_price: int = _safe_int("DEFAULT_BASE_PRICE", "5000")
    passenger_rate: float = _safe_float("PASSENGER_RATE", "0.1")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    api: ApiConfig = field(default_factory=ApiConfig)
    wizard: WizardConfig = field(default_factory=WizardConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "marina-ride-booking")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.api.base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"RIDE_API_URL must start with http:// or https://, got {config.api.base_url!r}"
        )
    if config.api.request_timeout_sec <= 0:
        raise ValueError(
            f"REQUEST_TIMEOUT must be > 0, got {config.api.request_timeout_sec}"
        )
    if config.wizard.pricing_debounce_ms < 0:
        raise ValueError(
            f"PRICING_DEBOUNCE_MS must be >= 0, got {config.wizard.pricing_debounce_ms}"
        )
    if config.wizard.submit_timeout_sec <= 0:
        raise ValueError(
            f"SUBMIT_TIMEOUT must be > 0, got {config.wizard.submit_timeout_sec}"
        )
    if config.wizard.max_passengers < 1:
        raise ValueError(
            f"MAX_PASSENGERS must be >= 1, got {config.wizard.max_passengers}"
        )
    if config.wizard.special_requests_max_length < 0:
        raise ValueError(
            "SPECIAL_REQUESTS_MAX_LENGTH must be >= 0, "
            f"got {config.wizard.special_requests_max_length}"
        )
    if config.pricing.default_base_price < 0:
        raise ValueError(
            f"DEFAULT_BASE_PRICE must be >= 0, got {config.pricing.default_base_price}"
        )
    if not 0.0 <= config.pricing.passenger_rate <= 1.0:
        raise ValueError(
            f"PASSENGER_RATE must be between 0.0 and 1.0, got {config.pricing.passenger_rate}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
