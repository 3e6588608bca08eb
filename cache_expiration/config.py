"""Cache expiration settings for far-future static resource headers."""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

# One year in seconds.
DEFAULT_CACHE_MAX_AGE = 365 * 24 * 60 * 60
DEFAULT_REGENERATE_HEADERS_INTERVAL = 1000


class InvalidConfiguration(ImproperlyConfigured):
    """Raised when cache expiration settings cannot be used."""


class CacheExpirationConfig:
    """Max age plus the precomputed Cache-Control value stamped on every cached response."""

    def __init__(
        self,
        max_age: int = DEFAULT_CACHE_MAX_AGE,
        regenerate_headers_interval: int = DEFAULT_REGENERATE_HEADERS_INTERVAL,
    ):
        self._max_age = DEFAULT_CACHE_MAX_AGE
        self.cache_control = _cache_control_value(DEFAULT_CACHE_MAX_AGE)
        # Accepted for compatibility with older deployments; headers are never regenerated.
        self.regenerate_headers_interval = regenerate_headers_interval
        self.set_max_age(max_age)

    @property
    def max_age(self) -> int:
        return self._max_age

    def set_max_age(self, seconds: int) -> None:
        """Store a new max age (seconds) and recompute the Cache-Control value."""
        if isinstance(seconds, bool) or not isinstance(seconds, int):
            raise InvalidConfiguration(f"CACHE_MAX_AGE must be an integer number of seconds ({seconds!r})")
        if seconds < 1:
            raise InvalidConfiguration(f"CACHE_MAX_AGE must be greater than 0 ({seconds})")
        self._max_age = seconds
        self.cache_control = _cache_control_value(seconds)

    @classmethod
    def from_settings(cls) -> "CacheExpirationConfig":
        """Build the config from Django settings, failing fast on bad values."""
        raw_max_age = getattr(settings, "CACHE_MAX_AGE", DEFAULT_CACHE_MAX_AGE)
        max_age = raw_max_age
        # Environment values arrive as strings; anything else goes to set_max_age as-is.
        if isinstance(raw_max_age, str):
            try:
                max_age = int(raw_max_age.strip())
            except ValueError as exc:
                raise InvalidConfiguration(f"CACHE_MAX_AGE must be an integer number of seconds ({raw_max_age!r})") from exc

        interval = getattr(settings, "CACHE_REGENERATE_HEADERS_INTERVAL", DEFAULT_REGENERATE_HEADERS_INTERVAL)
        if interval != DEFAULT_REGENERATE_HEADERS_INTERVAL:
            logger.debug("CACHE_REGENERATE_HEADERS_INTERVAL=%s is ignored; headers are computed once", interval)
        return cls(max_age=max_age, regenerate_headers_interval=interval)

    def __repr__(self):
        return f"<CacheExpirationConfig max_age={self._max_age}>"


def _cache_control_value(seconds: int) -> str:
    return f"public, max-age={seconds}"
