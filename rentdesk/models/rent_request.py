from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..utils.constants import RequestStatus
from .booking import Booking


def _iso(value):
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class StatusHistoryEntry:
    """One append-only audit row: who moved a request from which status to which."""
    id: str
    rent_request_id: str
    old_status: Optional[RequestStatus]
    new_status: RequestStatus
    changed_by: Optional[str]
    notes: Optional[str]
    changed_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "old_status": self.old_status.value if self.old_status else None,
            "new_status": self.new_status.value,
            "changed_by": self.changed_by,
            "notes": self.notes,
            "changed_at": _iso(self.changed_at),
        }


@dataclass
class RentRequest:
    """
    A client inquiry to rent a vehicle over [start_date, end_date).
    The Store keeps raw dicts; services wrap them into this model.
    ``is_approvable`` and ``conflicting_bookings`` are computed, never stored.
    """
    id: str
    request_id: str
    client_name: str
    client_email: str
    client_phone: str
    vehicle_id: str
    start_date: date
    end_date: date
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    message: Optional[str] = None
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    is_approvable: Optional[bool] = None
    conflicting_bookings: tuple[Booking, ...] = ()
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    vehicle_label: Optional[str] = None

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "vehicle_id": self.vehicle_id,
            "vehicle_label": self.vehicle_label,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days": self.days,
            "message": self.message,
            "status": self.status.value,
            "admin_notes": self.admin_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": _iso(self.reviewed_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "is_approvable": self.is_approvable,
            "conflicting_bookings": [b.to_dict() for b in self.conflicting_bookings],
            "status_history": [h.to_dict() for h in self.status_history],
        }
