"""Rent-request lifecycle: create, read, list, update, delete, expire."""

import logging
import math
import uuid
from datetime import datetime, time, timedelta

from ..config import Settings
from ..exceptions import (
    BookingConflictError,
    DuplicateRequestError,
    ForbiddenError,
    RentRequestNotFoundError,
    ValidationError,
    VehicleNotFoundError,
)
from ..models.rent_request import RentRequest
from ..models.store import Store
from ..utils.constants import (
    BOOKING_STATES,
    NOTIFY_STATES,
    OPEN_REQUEST_STATES,
    STATUS_DISPLAY_NAMES,
    SYSTEM_ACTOR,
    RequestStatus,
)
from ..utils.filters import fmt_date_local
from ..validators import validate_create, validate_filters, validate_update
from .common import (
    Deadline,
    _lc,
    as_date,
    as_datetime,
    history_from_dict,
    overlap,
    request_from_dict,
    utcnow,
    vehicle_from_dict,
)
from .conflict_service import ConflictDetector
from .notification_service import LogNotificationService, NotificationDispatcher
from .status_machine import TERMINAL_STATES, StatusMachine, history_entry, validate_transition

logger = logging.getLogger(__name__)


class RentRequestService:
    """
    Orchestrates the life of a rent request.

    Every check-then-act sequence (duplicate/conflict check followed by a
    write) runs under the store's per-vehicle lock, so two concurrent
    approvals for the same vehicle cannot both pass the conflict re-check.
    Notifications go out after the write has been committed.
    """

    def __init__(self, store: Store, settings: Settings | None = None,
                 notifier: NotificationDispatcher | None = None, clock=utcnow):
        self.store = store
        self.settings = settings or Settings()
        self.notifier = notifier or NotificationDispatcher(LogNotificationService(self.settings.admin_emails))
        self.clock = clock
        self.detector = ConflictDetector(store)
        self.machine = StatusMachine(store, clock)

    # ---------- helpers ----------
    def _load(self, pk: str) -> dict:
        d = self.store.get_rent_request(str(pk))
        if d is None:
            raise RentRequestNotFoundError(f"Error: rent request '{pk}' not found")
        return d

    def _active_vehicle(self, vehicle_id: str):
        v = vehicle_from_dict(self.store.get_vehicle(vehicle_id))
        if v is None or not v.is_active:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found or not available")
        return v

    def _vehicle_label(self, vehicle_id: str) -> str | None:
        v = vehicle_from_dict(self.store.get_vehicle(vehicle_id))
        return v.label if v else None

    def _new_request_id(self) -> str:
        day = self.clock().strftime("%Y%m%d")
        while True:
            rid = f"{self.settings.request_id_prefix}_{day}_{uuid.uuid4().hex[:8]}"
            if not self.store.request_id_exists(rid):
                return rid

    def _check_policy(self, start, end, now: datetime):
        if not start < end:
            raise ValidationError("End date must be after start date", {"end_date": ["must be after start_date"]})

        tz = self.settings.tz
        start_at = tz.localize(datetime.combine(start, time.min))
        if start_at - now < timedelta(hours=self.settings.min_lead_hours):
            raise ValidationError(
                f"Bookings must be made at least {self.settings.min_lead_hours} hours in advance",
                {"start_date": [f"must be at least {self.settings.min_lead_hours}h ahead"]},
            )

        days = (end - start).days
        if days > self.settings.max_rental_days:
            raise ValidationError(
                f"Rental duration cannot exceed {self.settings.max_rental_days} days",
                {"end_date": [f"rental spans {days} days"]},
            )

    def _find_duplicate(self, data: dict, now: datetime) -> dict | None:
        since = now - timedelta(hours=self.settings.duplicate_window_hours)
        open_values = {s.value for s in OPEN_REQUEST_STATES}
        for r in self.store.rent_requests_for_vehicle(data["vehicle_id"]):
            if _lc(r.get("client_email")) != data["client_email"]:
                continue
            if r.get("status") not in open_values:
                continue
            if as_datetime(r["created_at"]) < since:
                continue
            if overlap(data["start_date"], data["end_date"], as_date(r["start_date"]), as_date(r["end_date"])):
                return r
        return None

    def _payload(self, req: RentRequest) -> dict:
        """Notification payload for the e-mail collaborator."""
        v = vehicle_from_dict(self.store.get_vehicle(req.vehicle_id))
        tz = self.settings.timezone
        return {
            "request_id": req.request_id,
            "client_name": req.client_name,
            "client_email": req.client_email,
            "client_phone": req.client_phone,
            "vehicle": v.label if v else req.vehicle_id,
            "start_date": fmt_date_local(req.start_date, tz),
            "end_date": fmt_date_local(req.end_date, tz),
            "days": req.days,
            "price_per_day": v.price_per_day if v else None,
            "currency": v.currency if v else None,
            "message": req.message,
            "admin_notes": req.admin_notes,
            "status": req.status.value,
            "status_label": STATUS_DISPLAY_NAMES[req.status],
        }

    def _enrich(self, req: RentRequest, with_history: bool = False) -> RentRequest:
        result = self.detector.approvability([self._load(req.id)])[req.id]
        req.is_approvable = result.is_available
        req.conflicting_bookings = result.conflicting_bookings
        req.vehicle_label = self._vehicle_label(req.vehicle_id)
        if with_history:
            req.status_history = [history_from_dict(h) for h in self.store.history_for(req.id)]
        return req

    # ---------- queries ----------
    def check_availability(self, vehicle_id, start_date, end_date, exclude_request_id=None):
        return self.detector.check_availability(vehicle_id, start_date, end_date, exclude_request_id)

    def get(self, pk: str) -> RentRequest:
        return self._enrich(request_from_dict(self._load(pk)), with_history=True)

    def get_by_request_id(self, request_id: str) -> RentRequest:
        d = self.store.find_by_request_id(request_id)
        if d is None:
            raise RentRequestNotFoundError(f"Error: rent request '{request_id}' not found")
        return self._enrich(request_from_dict(d), with_history=True)

    def list_requests(self, filters: dict | None = None) -> dict:
        """Filter, sort and paginate requests; each row carries its approvability."""
        f = validate_filters(filters)
        logger.debug("Listing rent requests with filters %s", f)

        records = {d["id"]: d for d in self.store.all_rent_requests()}
        rows = [request_from_dict(d) for d in records.values()]
        if f["status"] is not None:
            rows = [r for r in rows if r.status is f["status"]]
        if f["client_email"]:
            rows = [r for r in rows if f["client_email"] in _lc(r.client_email)]
        if f["vehicle_id"]:
            rows = [r for r in rows if r.vehicle_id == f["vehicle_id"]]
        if f["start_date"]:
            rows = [r for r in rows if r.start_date >= f["start_date"]]
        if f["end_date"]:
            rows = [r for r in rows if r.end_date <= f["end_date"]]

        rows.sort(key=lambda r: (getattr(r, f["sort_by"]), r.request_id), reverse=f["sort_order"] == "desc")

        total = len(rows)
        limit, offset = f["limit"], f["offset"]
        page_rows = rows[offset:offset + limit]

        flags = self.detector.approvability([records[r.id] for r in page_rows])
        for r in page_rows:
            r.is_approvable = flags[r.id].is_available
            r.conflicting_bookings = flags[r.id].conflicting_bookings
            r.vehicle_label = self._vehicle_label(r.vehicle_id)

        page = offset // limit + 1
        total_pages = math.ceil(total / limit) if total else 0
        return {
            "requests": page_rows,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_previous": page > 1,
            },
        }

    # ---------- mutations ----------
    def create(self, data: dict, deadline: float | None = None) -> RentRequest:
        """
        Create a PENDING request from a public submission.
        Conflicts do not block creation; they only clear ``is_approvable``.
        """
        dl = Deadline(deadline)
        clean = validate_create(data)
        now = self.clock()
        self._check_policy(clean["start_date"], clean["end_date"], now)
        self._active_vehicle(clean["vehicle_id"])

        logger.info(
            "Creating rent request client=%s vehicle=%s %s..%s",
            clean["client_email"], clean["vehicle_id"], clean["start_date"], clean["end_date"],
        )

        with self.store.vehicle_lock(clean["vehicle_id"], timeout=dl.remaining()):
            dup = self._find_duplicate(clean, now)
            if dup is not None:
                raise DuplicateRequestError(
                    "A similar request was submitted recently",
                    {"request_id": dup["request_id"]},
                )

            availability = self.detector.check_availability(
                clean["vehicle_id"], clean["start_date"], clean["end_date"],
            )

            pk = str(uuid.uuid4())
            record = {
                "id": pk,
                "request_id": self._new_request_id(),
                "client_name": clean["client_name"],
                "client_email": clean["client_email"],
                "client_phone": clean["client_phone"],
                "vehicle_id": clean["vehicle_id"],
                "start_date": clean["start_date"].isoformat(),
                "end_date": clean["end_date"].isoformat(),
                "message": clean["message"],
                "status": RequestStatus.PENDING.value,
                "admin_notes": None,
                "reviewed_by": None,
                "reviewed_at": None,
                "created_at": now.isoformat(),
                "updated_at": now.isoformat(),
            }
            entry = history_entry(pk, None, RequestStatus.PENDING, None, None, now)

            dl.check("create")
            stored = self.store.insert_rent_request(record, entry)

        req = request_from_dict(stored)
        req.is_approvable = availability.is_available
        req.conflicting_bookings = availability.conflicting_bookings
        req.vehicle_label = self._vehicle_label(req.vehicle_id)
        req.status_history = [history_from_dict(entry)]

        logger.info(
            "Rent request %s created (approvable=%s, conflicts=%d)",
            req.request_id, req.is_approvable, len(req.conflicting_bookings),
        )
        self.notifier.new_request(self._payload(req))
        return req

    def update(self, pk: str, data: dict, actor: str | None, deadline: float | None = None) -> RentRequest:
        """
        Change status and/or admin notes. A status change is validated against
        the transition table and, for APPROVED/CONFIRMED targets, re-checked
        for conflicts before anything is written.
        """
        dl = Deadline(deadline)
        clean = validate_update(data)
        current = request_from_dict(self._load(pk))
        new_status = clean.get("status")

        logger.info("Updating rent request %s by %s: %s", current.request_id, actor, clean)

        if new_status is None or new_status is current.status:
            if "admin_notes" not in clean:
                return self.get(pk)
            with self.store.vehicle_lock(current.vehicle_id, timeout=dl.remaining()):
                current = request_from_dict(self._load(pk))
                if current.status in TERMINAL_STATES:
                    raise ForbiddenError(
                        f"Request {current.request_id} is {current.status.value} and can no longer be changed",
                        {"status": current.status.value},
                    )
                dl.check("notes update")
                stored = self.store.update_rent_request(current.id, {
                    "admin_notes": clean["admin_notes"],
                    "updated_at": self.clock().isoformat(),
                })
            if stored is None:
                raise RentRequestNotFoundError(f"Error: rent request '{pk}' not found")
            return self.get(pk)

        with self.store.vehicle_lock(current.vehicle_id, timeout=dl.remaining()):
            # re-read under the lock: another writer may have moved it meanwhile
            current = request_from_dict(self._load(pk))
            validate_transition(current.status, new_status)

            if new_status in BOOKING_STATES:
                result = self.detector.check_availability(
                    current.vehicle_id, current.start_date, current.end_date,
                    exclude_request_id=current.id, blocking_only=True,
                )
                if not result.is_available:
                    logger.warning(
                        "Refusing %s of %s: conflicts %s", new_status.value, current.request_id,
                        [b.identifier for b in result.conflicting_bookings],
                    )
                    raise BookingConflictError(
                        result.conflicting_bookings,
                        self.detector.conflict_message(result.conflicting_bookings),
                    )

            extra = {"admin_notes": clean["admin_notes"]} if "admin_notes" in clean else None
            dl.check("status change")
            self.machine.transition(current, new_status, actor, notes=clean.get("admin_notes"),
                                    extra_updates=extra)

        updated = self.get(pk)
        if new_status in NOTIFY_STATES:
            self.notifier.status_update(self._payload(updated))
        return updated

    def delete(self, pk: str, deadline: float | None = None) -> None:
        """Delete a request that has not been acted upon yet."""
        dl = Deadline(deadline)
        current = request_from_dict(self._load(pk))
        with self.store.vehicle_lock(current.vehicle_id, timeout=dl.remaining()):
            current = request_from_dict(self._load(pk))
            if current.status not in self.settings.deletable_statuses:
                allowed = ", ".join(sorted(s.value for s in self.settings.deletable_statuses))
                raise ForbiddenError(
                    f"Only requests in an early state ({allowed}) may be deleted",
                    {"status": current.status.value},
                )
            dl.check("delete")
            self.store.delete_rent_request(current.id)
        logger.info("Rent request %s deleted (status %s)", current.request_id, current.status.value)

    def expire_pending(self, now: datetime | None = None) -> int:
        """Reject PENDING requests older than the auto-expiry window; returns the count."""
        now = now or self.clock()
        cutoff = now - timedelta(days=self.settings.auto_expiry_days)
        note = f"Automatically expired after {self.settings.auto_expiry_days} days without review"

        stale = [
            d for d in self.store.all_rent_requests()
            if d.get("status") == RequestStatus.PENDING.value and as_datetime(d["created_at"]) < cutoff
        ]
        expired = 0
        for d in stale:
            with self.store.vehicle_lock(d["vehicle_id"]):
                fresh = self.store.get_rent_request(d["id"])
                if fresh is None or fresh.get("status") != RequestStatus.PENDING.value:
                    continue
                self.machine.transition(request_from_dict(fresh), RequestStatus.REJECTED, SYSTEM_ACTOR,
                                        notes=note, extra_updates={"admin_notes": note})
                expired += 1

        logger.info("Auto-expiry completed: %d request(s) expired (cutoff %s)", expired, cutoff.isoformat())
        return expired
