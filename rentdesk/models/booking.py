from dataclasses import dataclass, field
from datetime import date

from ..utils.constants import BookingKind


@dataclass(frozen=True)
class Booking:
    """
    A calendar occupation of a vehicle, either a contract or a rent request.
    The conflict detector only ever compares Bookings, whatever their origin.
    """
    kind: BookingKind
    id: str
    identifier: str  # contract number or human-facing request id
    vehicle_id: str
    start_date: date
    end_date: date  # exclusive
    status: str
    client_name: str

    @property
    def sort_key(self):
        return (self.start_date, self.identifier)

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "id": self.id,
            "identifier": self.identifier,
            "vehicle_id": self.vehicle_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status,
            "client_name": self.client_name,
        }


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    conflicting_bookings: tuple[Booking, ...] = field(default_factory=tuple)

    @classmethod
    def from_conflicts(cls, conflicts) -> "AvailabilityResult":
        ordered = tuple(sorted(conflicts, key=lambda b: b.sort_key))
        return cls(is_available=not ordered, conflicting_bookings=ordered)

    def to_dict(self) -> dict:
        return {
            "is_available": self.is_available,
            "conflicting_bookings": [b.to_dict() for b in self.conflicting_bookings],
        }
