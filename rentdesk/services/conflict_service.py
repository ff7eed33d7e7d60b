"""Vehicle availability and booking-conflict detection."""

import logging
from collections import defaultdict
from typing import Iterable

from ..exceptions import ValidationError, VehicleNotFoundError
from ..models.booking import AvailabilityResult, Booking
from ..models.store import Store
from ..utils.constants import (
    APPROVABLE_STATES,
    BLOCKING_REQUEST_STATES,
    OCCUPYING_CONTRACT_STATES,
    OCCUPYING_REQUEST_STATES,
    BookingKind,
)
from .common import as_date, booking_from_contract, booking_from_request, overlap

logger = logging.getLogger(__name__)


class ConflictDetector:
    """
    Scans contracts and rent requests occupying a vehicle's calendar.

    Two scopes:
      - informational (default): every non-cancelled contract and every
        request that is not REJECTED. Used at creation and for the
        ``is_approvable`` flag, so two pending requests for the same window
        are both flagged.
      - blocking (``blocking_only=True``): non-cancelled contracts and
        APPROVED/CONFIRMED requests. Used to refuse an approval that would
        double-book the vehicle.
    """

    def __init__(self, store: Store):
        self.store = store

    def _bookings_for(self, vehicle_id: str, blocking_only: bool) -> list[Booking]:
        request_states = BLOCKING_REQUEST_STATES if blocking_only else OCCUPYING_REQUEST_STATES
        contract_values = {s.value for s in OCCUPYING_CONTRACT_STATES}
        request_values = {s.value for s in request_states}

        bookings = [
            booking_from_contract(c)
            for c in self.store.contracts_for_vehicle(vehicle_id)
            if str(c.get("status") or "").upper() in contract_values
        ]
        bookings.extend(
            booking_from_request(r)
            for r in self.store.rent_requests_for_vehicle(vehicle_id)
            if str(r.get("status") or "") in request_values
        )
        return bookings

    @staticmethod
    def _scan(bookings: Iterable[Booking], start, end, exclude_request_id=None) -> AvailabilityResult:
        conflicts = [
            b for b in bookings
            if not (b.kind is BookingKind.RENT_REQUEST and b.id == exclude_request_id)
            and overlap(start, end, b.start_date, b.end_date)
        ]
        return AvailabilityResult.from_conflicts(conflicts)

    def check_availability(self, vehicle_id, start_date, end_date,
                           exclude_request_id: str | None = None,
                           blocking_only: bool = False) -> AvailabilityResult:
        """
        Report every booking of ``vehicle_id`` overlapping [start_date, end_date).
        Pure read; raises VehicleNotFoundError for unknown vehicles.
        """
        start = as_date(start_date, "start_date")
        end = as_date(end_date, "end_date")
        if not start < end:
            raise ValidationError(
                "End date must be after start date",
                {"end_date": ["must be after start_date"]},
            )

        vid = str(vehicle_id)
        if self.store.get_vehicle(vid) is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vid}' not found")

        result = self._scan(self._bookings_for(vid, blocking_only), start, end, exclude_request_id)
        logger.debug(
            "Availability vehicle=%s %s..%s blocking_only=%s -> available=%s conflicts=%s",
            vid, start, end, blocking_only, result.is_available,
            [b.identifier for b in result.conflicting_bookings],
        )
        return result

    def approvability(self, records: list[dict]) -> dict[str, AvailabilityResult]:
        """
        Bulk approvability for a page of request dicts: one booking scan per
        vehicle instead of one per request. Requests that can no longer reach
        APPROVED are reported as not approvable with no conflicts.
        """
        out: dict[str, AvailabilityResult] = {}
        approvable_values = {s.value for s in APPROVABLE_STATES}
        by_vehicle: dict[str, list[dict]] = defaultdict(list)
        for r in records:
            if r.get("status") in approvable_values:
                by_vehicle[str(r.get("vehicle_id"))].append(r)
            else:
                out[r["id"]] = AvailabilityResult(is_available=False)

        for vid, reqs in by_vehicle.items():
            bookings = self._bookings_for(vid, blocking_only=False)
            for r in reqs:
                out[r["id"]] = self._scan(
                    bookings, as_date(r["start_date"]), as_date(r["end_date"]), exclude_request_id=r["id"],
                )

        logger.debug(
            "Bulk approvability: %d requests, %d approvable",
            len(records), sum(1 for v in out.values() if v.is_available),
        )
        return out

    @staticmethod
    def conflict_message(conflicts: Iterable[Booking]) -> str:
        """User-facing summary of the bookings that block a request."""
        details = []
        for b in conflicts:
            label = "Contract" if b.kind is BookingKind.CONTRACT else "Request"
            name = f" ({b.client_name})" if b.client_name else ""
            details.append(f"{label} {b.identifier}{name}")
        if not details:
            return ""
        return (
            "Booking conflict: this vehicle is already booked for part of the selected period. "
            "Conflicting bookings: " + ", ".join(details)
        )
