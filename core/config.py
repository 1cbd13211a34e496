"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Taskboard happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl -> SESSION_TTL). Type coercion and validation are built in.

Durations:
  session_ttl and session_sweep_interval accept duration strings such as
  "24h", "90m", "1h30m", "500ms" or a bare number. A bare number is read as
  hours, so SESSION_TTL=12 means twelve hours. JWT_EXPIRES_IN is accepted as
  a legacy alias for SESSION_TTL.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or tasks/.
"""

import logging
import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("taskboard.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent.parent / 'taskboard.db'}"

# Microseconds per unit. Parts are summed first and converted once.
_DURATION_UNITS: dict[str, float] = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_BARE_NUMBER = re.compile(r"^\d+(?:\.\d+)?$")


def parse_duration(value: str) -> timedelta:
    """Parse a duration string into a timedelta.

    "1h30m" -> 90 minutes, "250ms" -> 0.25 seconds, "12" -> 12 hours.
    Raises ValueError for empty, negative, or malformed input.
    """
    raw = value.strip()
    if not raw:
        raise ValueError("duration must not be empty")
    if _BARE_NUMBER.match(raw):
        return timedelta(hours=float(raw))

    micros = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(raw):
        if match.start() != pos:
            break
        number, unit = match.groups()
        micros += float(number) * _DURATION_UNITS[unit]
        pos = match.end()
    if pos != len(raw):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(microseconds=micros)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    app_env: str = "development"
    app_host: str = "0.0.0.0"  # noqa: S104 -- bind address for the container
    app_port: int = 8080
    log_level: str = "info"

    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    session_ttl: timedelta = Field(
        default=timedelta(hours=24),
        validation_alias=AliasChoices("session_ttl", "jwt_expires_in"),
    )
    session_sweep_interval: timedelta = timedelta(hours=1)
    # Older clients send "Authorization: Bearer <id>". Off by default: the
    # header value is the raw session id.
    accept_bearer_prefix: bool = False

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("session_ttl", "session_sweep_interval", mode="before")
    @classmethod
    def coerce_duration(cls, value):
        """Accept duration strings and bare numbers (hours) from the environment."""
        if isinstance(value, timedelta):
            return value
        if isinstance(value, (int, float)):
            return timedelta(hours=value)
        return parse_duration(str(value))

    @field_validator("session_ttl", "session_sweep_interval")
    @classmethod
    def require_positive(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("duration must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in ("debug", "info", "warn", "warning", "error"):
            logger.warning("Unknown LOG_LEVEL %r, falling back to info", value)
            return "info"
        return "warning" if level == "warn" else level

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
