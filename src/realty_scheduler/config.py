"""Environment-based configuration for the scheduler."""

import logging
import os
from zoneinfo import ZoneInfoNotFoundError

from .scheduling.timezones import DEFAULT_TIMEZONE, get_zone

logger = logging.getLogger(__name__)


class Settings:
    """Scheduler configuration loaded from environment variables."""

    def __init__(self):
        self.api_url = os.getenv(
            "SCHEDULER_API_URL", "http://localhost:5000/api/external-seller"
        ).rstrip("/")
        api_root = self.api_url.rsplit("/", 1)[0]

        self.session_cookie = os.getenv("SCHEDULER_SESSION_COOKIE") or None
        self.cookie_name = os.getenv("SCHEDULER_COOKIE_NAME", "connect.sid")
        self.http_timeout = float(os.getenv("SCHEDULER_HTTP_TIMEOUT", "10"))

        # Reference data lives outside the seller namespace
        self.leads_url = os.getenv("SCHEDULER_LEADS_URL", f"{api_root}/external-leads")
        self.units_url = os.getenv("SCHEDULER_UNITS_URL", f"{api_root}/external-units")
        self.condominiums_url = os.getenv("SCHEDULER_CONDOS_URL", f"{api_root}/external-condominiums")

        self.timezone = os.getenv("SCHEDULER_TIMEZONE", DEFAULT_TIMEZONE)
        try:
            self.tz = get_zone(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise RuntimeError(f"SCHEDULER_TIMEZONE={self.timezone!r} is not a known time zone") from e

        self.language = os.getenv("SCHEDULER_LANGUAGE", "es").lower()
        if self.language not in ("es", "en"):
            logger.warning(f"Unsupported language {self.language!r}, using Spanish")
            self.language = "es"

        self.debug = os.getenv("SCHEDULER_ENV", "production") != "production"


_settings = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Drop cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Lazy proxy so settings aren't loaded until first access."""

    def __getattr__(self, name):
        return getattr(_get_settings(), name)


settings = _SettingsProxy()
