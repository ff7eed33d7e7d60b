"""Input validation for rent-request payloads and list filters."""

import re

from .exceptions import ValidationError
from .services.common import as_date
from .services.status_machine import parse_status
from .utils.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SORT_FIELDS, SORT_ORDERS

# Compile once at module import
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 .-]{6,18}[0-9]$")

CREATE_FIELDS = {"client_name", "client_email", "client_phone", "vehicle_id",
                 "start_date", "end_date", "message"}
UPDATE_FIELDS = {"status", "admin_notes"}


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


def validate_create(data: dict) -> dict:
    """
    Check field shapes of a public submission and return a cleaned copy.
    Policy checks (lead time, duration, duplicates) happen in the service.
    """
    errors: dict[str, list[str]] = {}

    unknown = set(data) - CREATE_FIELDS
    if unknown:
        errors["_unknown"] = [f"unexpected field(s): {', '.join(sorted(unknown))}"]

    name = _text(data, "client_name")
    if not 2 <= len(name) <= 255:
        errors["client_name"] = ["must be 2-255 characters"]

    email = _text(data, "client_email").lower()
    if not EMAIL_PATTERN.match(email):
        errors["client_email"] = ["must be a valid e-mail address"]

    phone = _text(data, "client_phone")
    if not PHONE_PATTERN.match(phone):
        errors["client_phone"] = ["must be a valid phone number"]

    vehicle_id = data.get("vehicle_id")
    if vehicle_id is None or str(vehicle_id).strip() == "":
        errors["vehicle_id"] = ["is required"]

    message = data.get("message")
    if message is not None and not isinstance(message, str):
        errors["message"] = ["must be text"]
    elif message and len(message.strip()) > 1000:
        errors["message"] = ["must be at most 1000 characters"]

    dates = {}
    for key in ("start_date", "end_date"):
        try:
            dates[key] = as_date(data.get(key), key)
        except ValidationError:
            errors[key] = ["must be a date (YYYY-MM-DD)"]

    if errors:
        raise ValidationError("Invalid rent request", errors)

    return {
        "client_name": name,
        "client_email": email,
        "client_phone": phone,
        "vehicle_id": str(vehicle_id).strip(),
        "start_date": dates["start_date"],
        "end_date": dates["end_date"],
        "message": (message or "").strip() or None,
    }


def validate_update(data: dict) -> dict:
    unknown = set(data) - UPDATE_FIELDS
    if unknown:
        raise ValidationError(
            "Only status and admin_notes can be updated",
            {"_unknown": [f"unexpected field(s): {', '.join(sorted(unknown))}"]},
        )
    if not data:
        raise ValidationError("Nothing to update", {"_body": ["status or admin_notes is required"]})

    out = {}
    if data.get("status") is not None:
        out["status"] = parse_status(data["status"])
    if "admin_notes" in data:
        notes = data["admin_notes"]
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("Invalid admin notes", {"admin_notes": ["must be text"]})
        if notes and len(notes) > 2000:
            raise ValidationError("Invalid admin notes", {"admin_notes": ["must be at most 2000 characters"]})
        out["admin_notes"] = notes.strip() if notes else None
    return out


def _int(filters: dict, key: str, default: int, lo: int, hi: int | None = None) -> int:
    raw = filters.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {key}", {key: ["must be an integer"]})
    if value < lo or (hi is not None and value > hi):
        bound = f"between {lo} and {hi}" if hi is not None else f"at least {lo}"
        raise ValidationError(f"Invalid {key}", {key: [f"must be {bound}"]})
    return value


def validate_filters(filters: dict | None) -> dict:
    """Normalize listing filters; unknown values raise ValidationError."""
    filters = {k: v for k, v in (filters or {}).items() if v is not None and v != ""}
    out = {
        "status": parse_status(filters["status"]) if "status" in filters else None,
        "client_email": str(filters["client_email"]).strip().lower() if "client_email" in filters else None,
        "vehicle_id": str(filters["vehicle_id"]) if "vehicle_id" in filters else None,
        "start_date": as_date(filters["start_date"], "start_date") if "start_date" in filters else None,
        "end_date": as_date(filters["end_date"], "end_date") if "end_date" in filters else None,
        "limit": _int(filters, "limit", DEFAULT_PAGE_SIZE, 1, MAX_PAGE_SIZE),
        "offset": _int(filters, "offset", 0, 0),
        "sort_by": filters.get("sort_by", "created_at"),
        "sort_order": str(filters.get("sort_order", "desc")).lower(),
    }
    if out["sort_by"] not in SORT_FIELDS:
        raise ValidationError("Invalid sort_by", {"sort_by": [f"must be one of {', '.join(SORT_FIELDS)}"]})
    if out["sort_order"] not in SORT_ORDERS:
        raise ValidationError("Invalid sort_order", {"sort_order": ["must be asc or desc"]})
    return out
