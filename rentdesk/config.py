"""Policy settings, overridable through RENTDESK_* environment variables."""

import os
from dataclasses import dataclass, field, replace

import pytz
from dotenv import load_dotenv

from .utils.constants import RequestStatus


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name) or ""
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    min_lead_hours: int = 24
    max_rental_days: int = 90
    duplicate_window_hours: int = 1
    auto_expiry_days: int = 7
    deletable_statuses: frozenset = field(default_factory=lambda: frozenset({RequestStatus.PENDING}))
    request_id_prefix: str = "req"
    timezone: str = "Africa/Algiers"
    recent_limit: int = 5
    data_path: str | None = None
    admin_emails: tuple[str, ...] = ()
    log_level: str = "INFO"

    def __post_init__(self):
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {self.timezone!r}")
        if self.max_rental_days < 1:
            raise ValueError("max_rental_days must be at least 1")

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    def override(self, **changes) -> "Settings":
        return replace(self, **changes)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and a local .env file if present)."""
        load_dotenv()

        deletable = _env_list("RENTDESK_DELETABLE_STATUSES")
        try:
            deletable_statuses = (
                frozenset(RequestStatus(s.upper()) for s in deletable)
                if deletable else frozenset({RequestStatus.PENDING})
            )
        except ValueError as e:
            raise ValueError(f"RENTDESK_DELETABLE_STATUSES: {e}")

        return cls(
            min_lead_hours=_env_int("RENTDESK_MIN_LEAD_HOURS", 24),
            max_rental_days=_env_int("RENTDESK_MAX_RENTAL_DAYS", 90),
            duplicate_window_hours=_env_int("RENTDESK_DUPLICATE_WINDOW_HOURS", 1),
            auto_expiry_days=_env_int("RENTDESK_AUTO_EXPIRY_DAYS", 7),
            deletable_statuses=deletable_statuses,
            request_id_prefix=os.getenv("RENTDESK_REQUEST_ID_PREFIX", "req"),
            timezone=os.getenv("RENTDESK_TIMEZONE", "Africa/Algiers"),
            recent_limit=_env_int("RENTDESK_RECENT_LIMIT", 5),
            data_path=os.getenv("RENTDESK_DATA_PATH") or None,
            admin_emails=_env_list("RENTDESK_ADMIN_EMAILS"),
            log_level=os.getenv("RENTDESK_LOG_LEVEL", "INFO").upper(),
        )
