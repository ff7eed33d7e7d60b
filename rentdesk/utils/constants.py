# rentdesk/utils/constants.py

"""
Global constants for statuses and booking kinds.
These constants are imported by both models and services.
"""

from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONTACTED = "CONTACTED"
    CONFIRMED = "CONFIRMED"


class ContractStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BookingKind(str, Enum):
    CONTRACT = "CONTRACT"
    RENT_REQUEST = "RENT_REQUEST"


STATUS_DISPLAY_NAMES = {
    RequestStatus.PENDING: "Pending",
    RequestStatus.REVIEWED: "Reviewed",
    RequestStatus.APPROVED: "Approved",
    RequestStatus.REJECTED: "Rejected",
    RequestStatus.CONTACTED: "Client contacted",
    RequestStatus.CONFIRMED: "Confirmed",
}

# --- Occupancy ---
# Informational scan: anything not rejected holds the slot provisionally.
OCCUPYING_REQUEST_STATES = frozenset(s for s in RequestStatus if s is not RequestStatus.REJECTED)
# Approval re-check: only committed requests block.
BLOCKING_REQUEST_STATES = frozenset({RequestStatus.APPROVED, RequestStatus.CONFIRMED})
OCCUPYING_CONTRACT_STATES = frozenset(s for s in ContractStatus if s is not ContractStatus.CANCELLED)

# Statuses from which APPROVED is still reachable
APPROVABLE_STATES = frozenset({RequestStatus.PENDING, RequestStatus.REVIEWED, RequestStatus.CONTACTED})
# Targets that must not double-book
BOOKING_STATES = frozenset({RequestStatus.APPROVED, RequestStatus.CONFIRMED})
# Targets that trigger a client e-mail
NOTIFY_STATES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CONTACTED})
# Open requests take part in duplicate suppression
OPEN_REQUEST_STATES = frozenset(
    s for s in RequestStatus if s not in (RequestStatus.REJECTED, RequestStatus.CONFIRMED)
)

SYSTEM_ACTOR = "system"

# --- Listing ---
SORT_FIELDS = ("created_at", "updated_at", "start_date", "end_date")
SORT_ORDERS = ("asc", "desc")
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
