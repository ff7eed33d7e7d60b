"""Shared service helpers and dict -> model mappers."""

import time
from datetime import datetime, date, timezone
from typing import Optional

from ..exceptions import OperationTimeoutError, ValidationError
from ..models.booking import Booking
from ..models.rent_request import RentRequest, StatusHistoryEntry
from ..models.vehicle import Vehicle
from ..utils.constants import BookingKind, RequestStatus


# -------- date & time helpers --------
def utcnow() -> datetime:
    """Aware UTC now; services take this as their default clock."""
    return datetime.now(timezone.utc)


def as_date(x, field: str = "date") -> date:
    """Coerce any date-like to a naive date (supports 'YYYY-MM-DD' or ISO with T)."""
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    if isinstance(x, str) and x.strip():
        base = x.split("T", 1)[0].strip()
        try:
            return date.fromisoformat(base)
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field} (YYYY-MM-DD)", {field: [f"Unsupported date: {x!r}"]})


def as_datetime(x) -> Optional[datetime]:
    """Parse a stored ISO timestamp; naive values are taken as UTC."""
    if x is None or x == "":
        return None
    dt = x if isinstance(x, datetime) else datetime.fromisoformat(str(x))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Check overlap between [a_start, a_end) and [b_start, b_end).
    End date is exclusive: booking 2025-10-22 -> 2025-10-23 occupies the night of 22 only.
    Overlap rule: a_start < b_end and b_start < a_end
    """
    return a_start < b_end and b_start < a_end


def _lc(s):
    """Safe lowercase for case-insensitive compare."""
    return (s or "").strip().lower()


class Deadline:
    """Caller-supplied time budget (seconds) for one operation; None means unbounded."""

    def __init__(self, seconds: float | None, monotonic=time.monotonic):
        self._monotonic = monotonic
        self._expires = None if seconds is None else monotonic() + seconds

    def remaining(self) -> float | None:
        if self._expires is None:
            return None
        return max(self._expires - self._monotonic(), 0.0)

    def check(self, step: str):
        if self._expires is not None and self._monotonic() >= self._expires:
            raise OperationTimeoutError(f"Error: deadline exceeded before {step}", {"step": step})


# -------- dict -> rich model mappers --------
def vehicle_from_dict(d: Optional[dict]) -> Optional[Vehicle]:
    """Map a stored vehicle dict to a Vehicle."""
    if not d:
        return None
    return Vehicle(
        vehicle_id=d.get("vehicle_id") or d.get("id"),
        make=d.get("make") or "",
        model=d.get("model") or "",
        year=d.get("year"),
        price_per_day=float(d.get("price_per_day") or 0.0),
        currency=d.get("currency") or "DZD",
        is_active=bool(d.get("is_active", True)),
    )


def booking_from_contract(d: dict) -> Booking:
    return Booking(
        kind=BookingKind.CONTRACT,
        id=d["id"],
        identifier=d.get("contract_number") or d["id"],
        vehicle_id=str(d.get("vehicle_id")),
        start_date=as_date(d["start_date"]),
        end_date=as_date(d["end_date"]),
        status=str(d.get("status") or ""),
        client_name=d.get("client_name") or "",
    )


def booking_from_request(d: dict) -> Booking:
    return Booking(
        kind=BookingKind.RENT_REQUEST,
        id=d["id"],
        identifier=d.get("request_id") or d["id"],
        vehicle_id=str(d.get("vehicle_id")),
        start_date=as_date(d["start_date"]),
        end_date=as_date(d["end_date"]),
        status=str(d.get("status") or ""),
        client_name=d.get("client_name") or "",
    )


def history_from_dict(d: dict) -> StatusHistoryEntry:
    old = d.get("old_status")
    return StatusHistoryEntry(
        id=d["id"],
        rent_request_id=d["rent_request_id"],
        old_status=RequestStatus(old) if old else None,
        new_status=RequestStatus(d["new_status"]),
        changed_by=d.get("changed_by"),
        notes=d.get("notes"),
        changed_at=as_datetime(d["changed_at"]),
    )


def request_from_dict(d: Optional[dict]) -> Optional[RentRequest]:
    """Map a stored rent-request dict to a RentRequest (computed fields left empty)."""
    if not d:
        return None
    return RentRequest(
        id=d["id"],
        request_id=d["request_id"],
        client_name=d.get("client_name") or "",
        client_email=d.get("client_email") or "",
        client_phone=d.get("client_phone") or "",
        vehicle_id=str(d.get("vehicle_id")),
        start_date=as_date(d["start_date"]),
        end_date=as_date(d["end_date"]),
        status=RequestStatus(d["status"]),
        created_at=as_datetime(d["created_at"]),
        updated_at=as_datetime(d.get("updated_at") or d["created_at"]),
        message=d.get("message"),
        admin_notes=d.get("admin_notes"),
        reviewed_by=d.get("reviewed_by"),
        reviewed_at=as_datetime(d.get("reviewed_at")),
    )
