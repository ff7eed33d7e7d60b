"""Rent-request status transitions and their recorded side effects."""

import logging
import uuid

from ..exceptions import InvalidTransitionError, RentRequestNotFoundError, ValidationError
from ..models.rent_request import RentRequest
from ..models.store import Store
from ..utils.constants import RequestStatus
from .common import request_from_dict, utcnow

logger = logging.getLogger(__name__)

S = RequestStatus

VALID_STATUS_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    S.PENDING: frozenset({S.REVIEWED, S.APPROVED, S.REJECTED, S.CONTACTED}),
    S.REVIEWED: frozenset({S.PENDING, S.APPROVED, S.REJECTED, S.CONTACTED}),
    S.APPROVED: frozenset({S.CONFIRMED, S.CONTACTED, S.REJECTED}),
    S.REJECTED: frozenset({S.PENDING, S.REVIEWED}),
    S.CONTACTED: frozenset({S.CONFIRMED, S.APPROVED, S.REJECTED}),
    S.CONFIRMED: frozenset(),  # terminal
}

_missing = set(RequestStatus) - set(VALID_STATUS_TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table has no row for: {sorted(s.value for s in _missing)}")

TERMINAL_STATES = frozenset(s for s, targets in VALID_STATUS_TRANSITIONS.items() if not targets)


def parse_status(value) -> RequestStatus:
    """Accept a RequestStatus or its (case-insensitive) name."""
    if isinstance(value, RequestStatus):
        return value
    try:
        return RequestStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(
            f"Unknown status: {value!r}",
            {"status": [f"must be one of {', '.join(s.value for s in RequestStatus)}"]},
        )


def can_transition(current: RequestStatus, new: RequestStatus) -> bool:
    return new in VALID_STATUS_TRANSITIONS[current]


def validate_transition(current: RequestStatus, new: RequestStatus) -> None:
    if not can_transition(current, new):
        raise InvalidTransitionError(current, new)


def history_entry(rent_request_id: str, old_status, new_status, changed_by, notes, changed_at) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "rent_request_id": rent_request_id,
        "old_status": old_status.value if old_status else None,
        "new_status": new_status.value,
        "changed_by": changed_by,
        "notes": notes,
        "changed_at": changed_at.isoformat(),
    }


class StatusMachine:
    """
    Applies validated transitions. A transition sets the status, stamps
    ``reviewed_at``/``reviewed_by`` and appends one history entry; the store
    commits all of it as a unit or not at all.
    """

    def __init__(self, store: Store, clock=utcnow):
        self.store = store
        self.clock = clock

    def transition(self, record: RentRequest, new_status, actor: str | None,
                   notes: str | None = None, extra_updates: dict | None = None) -> RentRequest:
        new_status = parse_status(new_status)
        validate_transition(record.status, new_status)

        now = self.clock()
        updates = {
            **(extra_updates or {}),
            "status": new_status.value,
            "reviewed_at": now.isoformat(),
            "reviewed_by": actor,
            "updated_at": now.isoformat(),
        }
        entry = history_entry(record.id, record.status, new_status, actor, notes, now)

        stored = self.store.commit_transition(record.id, updates, entry)
        if stored is None:
            raise RentRequestNotFoundError(f"Error: rent request '{record.id}' not found")

        logger.info(
            "Rent request %s status %s -> %s by %s",
            record.request_id, record.status.value, new_status.value, actor or "anonymous",
        )
        return request_from_dict(stored)
