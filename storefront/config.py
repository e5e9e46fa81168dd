"""
Centralized configuration with environment variable overrides.

API location, booking defaults, and display settings are configurable
here. Nothing is hardcoded in the scheduling or submission logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from storefront.logging_context import attach_session_filter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(session_id)s]: %(message)s"


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
    """Location of the public storefront REST API."""

    base_url: str = os.getenv("STOREFRONT_API_URL", "http://0.0.0.0:8001")
    timeout_sec: float = _safe_float("API_TIMEOUT_SEC", "10.0")


@dataclass(frozen=True)
class BookingConfig:
    """Defaults for the public availability and booking screens."""

    default_party_size: int = _safe_int("DEFAULT_PARTY_SIZE", "1")
    max_party_size: int = _safe_int("MAX_PARTY_SIZE", "10")
    slot_increment_minutes: int = _safe_int("SLOT_INCREMENT_MINUTES", "15")
    cancellation_cutoff_minutes: int = _safe_int("CANCELLATION_CUTOFF_MINUTES", "60")
    default_locale: str = os.getenv("DEFAULT_LOCALE", "en-US")
    # Empty means the system's local timezone.
    viewer_timezone: str = os.getenv("VIEWER_TIMEZONE", "")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    api: ApiConfig = field(default_factory=ApiConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "reservation-storefront")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.api.base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"STOREFRONT_API_URL must be an http(s) URL, got {config.api.base_url!r}"
        )
    if config.api.timeout_sec <= 0:
        raise ValueError(
            f"API_TIMEOUT_SEC must be > 0, got {config.api.timeout_sec}"
        )
    if config.booking.default_party_size < 1:
        raise ValueError(
            f"DEFAULT_PARTY_SIZE must be >= 1, got {config.booking.default_party_size}"
        )
    if config.booking.max_party_size < config.booking.default_party_size:
        raise ValueError(
            "MAX_PARTY_SIZE must be >= DEFAULT_PARTY_SIZE, "
            f"got {config.booking.max_party_size}"
        )
    if config.booking.slot_increment_minutes < 1:
        raise ValueError(
            "SLOT_INCREMENT_MINUTES must be >= 1, "
            f"got {config.booking.slot_increment_minutes}"
        )
    if config.booking.cancellation_cutoff_minutes < 0:
        raise ValueError(
            "CANCELLATION_CUTOFF_MINUTES must be >= 0, "
            f"got {config.booking.cancellation_cutoff_minutes}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        attach_session_filter(handler)
    logger.info("Configuration loaded for API at '%s'", config.api.base_url)
    return config


# Singleton instance
settings = load_config()
