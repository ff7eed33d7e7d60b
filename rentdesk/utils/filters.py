"""Date formatting helpers for notification payloads and dashboards."""
from datetime import datetime, date, timezone

import pytz


def to_local(value: datetime, tz_name: str) -> datetime:
    """Convert a datetime to the business timezone; naive values are assumed UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(pytz.timezone(tz_name))


def fmt_date_local(value, tz_name: str = "UTC", with_time: bool = False) -> str:
    """
    Format a date/datetime (or its ISO string) for client-facing messages.
    Supports:
      - date objects and 'YYYY-MM-DD' -> '01/06/2025'
      - datetimes and ISO strings with 'T', 'Z' or offsets -> '01/06/2025 14:30'
        (converted to the business timezone)
    On parse error, returns the original value so messages never go blank.
    """
    if value is None:
        return ""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    else:
        s = str(value).strip()
        if not s:
            return ""
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        if len(s) == 10:
            try:
                return date.fromisoformat(s).strftime("%d/%m/%Y")
            except ValueError:
                return str(value)
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return str(value)

    local = to_local(dt, tz_name)
    if with_time:
        return local.strftime("%d/%m/%Y %H:%M")
    return local.strftime("%d/%m/%Y")
