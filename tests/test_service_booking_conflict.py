"""
Cross-booking (overlap) tests for the conflict detector. A vehicle's calendar
is made of its contracts and its rent requests; cancelled contracts and
rejected requests never occupy it.
"""

import uuid

import pytest

from conftest import NOW, seed_contract, seed_vehicle
from rentdesk.exceptions import ValidationError, VehicleNotFoundError
from rentdesk.services.conflict_service import ConflictDetector
from rentdesk.services.status_machine import history_entry
from rentdesk.utils.constants import BookingKind, RequestStatus


def seed_request(store, vehicle_id, start, end, status="PENDING", request_id=None, client="Sofia"):
    pk = str(uuid.uuid4())
    record = {
        "id": pk,
        "request_id": request_id or f"req_{pk[:8]}",
        "client_name": client,
        "client_email": "sofia@example.com",
        "client_phone": "0661234567",
        "vehicle_id": vehicle_id,
        "start_date": start,
        "end_date": end,
        "message": None,
        "status": status,
        "admin_notes": None,
        "reviewed_by": None,
        "reviewed_at": None,
        "created_at": NOW.isoformat(),
        "updated_at": NOW.isoformat(),
    }
    store.insert_rent_request(record, history_entry(pk, None, RequestStatus.PENDING, None, None, NOW))
    return pk


@pytest.fixture
def detector(store):
    return ConflictDetector(store)


def test_contract_overlap_is_reported(store, detector, vehicle):
    seed_contract(store, vehicle, "2025-06-01", "2025-06-05", number="CTR-100")

    result = detector.check_availability(vehicle, "2025-06-03", "2025-06-07")

    assert not result.is_available
    [b] = result.conflicting_bookings
    assert b.kind is BookingKind.CONTRACT
    assert b.identifier == "CTR-100"


def test_back_to_back_booking_is_available(store, detector, vehicle):
    seed_contract(store, vehicle, "2025-06-01", "2025-06-05")

    assert detector.check_availability(vehicle, "2025-06-05", "2025-06-08").is_available
    assert detector.check_availability(vehicle, "2025-05-28", "2025-06-01").is_available


def test_pending_request_occupies_but_rejected_does_not(store, detector, vehicle):
    seed_request(store, vehicle, "2025-06-01", "2025-06-05", status="PENDING", request_id="req_pending")
    seed_request(store, vehicle, "2025-06-01", "2025-06-05", status="REJECTED", request_id="req_rejected")

    result = detector.check_availability(vehicle, "2025-06-02", "2025-06-03")

    assert [b.identifier for b in result.conflicting_bookings] == ["req_pending"]


def test_cancelled_contract_is_ignored(store, detector, vehicle):
    seed_contract(store, vehicle, "2025-06-01", "2025-06-05", status="CANCELLED")
    assert detector.check_availability(vehicle, "2025-06-01", "2025-06-05").is_available


@pytest.mark.parametrize("status", ["PENDING", "CONFIRMED", "ACTIVE", "COMPLETED"])
def test_every_other_contract_status_occupies(store, detector, vehicle, status):
    seed_contract(store, vehicle, "2025-06-01", "2025-06-05", status=status)
    assert not detector.check_availability(vehicle, "2025-06-01", "2025-06-05").is_available


def test_excluded_request_does_not_conflict_with_itself(store, detector, vehicle):
    pk = seed_request(store, vehicle, "2025-06-01", "2025-06-05")

    assert not detector.check_availability(vehicle, "2025-06-01", "2025-06-05").is_available
    assert detector.check_availability(vehicle, "2025-06-01", "2025-06-05", exclude_request_id=pk).is_available


def test_other_vehicles_are_not_considered(store, detector, vehicle):
    other = seed_vehicle(store, "veh-2")
    seed_contract(store, other, "2025-06-01", "2025-06-05")
    assert detector.check_availability(vehicle, "2025-06-01", "2025-06-05").is_available


def test_unknown_vehicle_raises(detector):
    with pytest.raises(VehicleNotFoundError):
        detector.check_availability("nope", "2025-06-01", "2025-06-05")


@pytest.mark.parametrize("start, end", [("2025-06-05", "2025-06-05"), ("2025-06-05", "2025-06-01")])
def test_empty_or_inverted_range_is_invalid(detector, vehicle, start, end):
    with pytest.raises(ValidationError):
        detector.check_availability(vehicle, start, end)


def test_all_conflicts_reported_in_start_date_order(store, detector, vehicle):
    seed_request(store, vehicle, "2025-06-08", "2025-06-12", request_id="req_late")
    seed_contract(store, vehicle, "2025-06-01", "2025-06-04", number="CTR-early")
    seed_request(store, vehicle, "2025-06-04", "2025-06-06", request_id="req_mid")

    result = detector.check_availability(vehicle, "2025-06-02", "2025-06-10")

    assert [b.identifier for b in result.conflicting_bookings] == ["CTR-early", "req_mid", "req_late"]


def test_blocking_scope_only_counts_committed_requests(store, detector, vehicle):
    seed_request(store, vehicle, "2025-06-01", "2025-06-05", status="PENDING", request_id="req_p")
    seed_request(store, vehicle, "2025-06-01", "2025-06-05", status="CONTACTED", request_id="req_c")
    assert detector.check_availability(vehicle, "2025-06-02", "2025-06-04", blocking_only=True).is_available

    seed_request(store, vehicle, "2025-06-03", "2025-06-06", status="APPROVED", request_id="req_a")
    result = detector.check_availability(vehicle, "2025-06-02", "2025-06-04", blocking_only=True)
    assert [b.identifier for b in result.conflicting_bookings] == ["req_a"]


def test_bulk_approvability(store, detector, vehicle):
    a = seed_request(store, vehicle, "2025-06-01", "2025-06-05", request_id="req_a")
    b = seed_request(store, vehicle, "2025-06-04", "2025-06-08", request_id="req_b")
    c = seed_request(store, vehicle, "2025-07-01", "2025-07-05", request_id="req_c")
    done = seed_request(store, vehicle, "2025-08-01", "2025-08-05", status="CONFIRMED", request_id="req_d")

    flags = detector.approvability([store.get_rent_request(pk) for pk in (a, b, c, done)])

    assert [x.identifier for x in flags[a].conflicting_bookings] == ["req_b"]
    assert [x.identifier for x in flags[b].conflicting_bookings] == ["req_a"]
    assert flags[c].is_available
    assert flags[done].is_available is False
    assert flags[done].conflicting_bookings == ()


def test_conflict_message_lists_each_booking(store, detector, vehicle):
    seed_contract(store, vehicle, "2025-06-01", "2025-06-04", number="CTR-7", client="Amina")
    seed_request(store, vehicle, "2025-06-03", "2025-06-06", request_id="req_x", client="Sofia")

    result = detector.check_availability(vehicle, "2025-06-01", "2025-06-06")
    msg = ConflictDetector.conflict_message(result.conflicting_bookings)

    assert msg.startswith("Booking conflict")
    assert "Contract CTR-7 (Amina)" in msg
    assert "Request req_x (Sofia)" in msg
    assert ConflictDetector.conflict_message([]) == ""
