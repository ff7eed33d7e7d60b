"""
Admin listing: filters, sorting and pagination over rent requests.
"""

import pytest

from conftest import request_payload, seed_vehicle
from rentdesk.exceptions import ValidationError
from rentdesk.utils.constants import RequestStatus as S


@pytest.fixture
def populated(service, store, clock, vehicle):
    seed_vehicle(store, "veh-2")
    made = []
    for i in range(5):
        made.append(service.create(request_payload(
            "veh-1" if i % 2 == 0 else "veh-2",
            f"2025-0{6 + i % 3}-0{1 + i}", f"2025-0{6 + i % 3}-1{i}",
            client_email=f"client{i}@example.com",
        )))
        clock.advance(minutes=10)
    service.update(made[0].id, {"status": "APPROVED"}, actor="admin-1")
    return made


def test_default_listing_newest_first(service, populated):
    page = service.list_requests()

    assert [r.id for r in page["requests"]] == [r.id for r in reversed(populated)]
    assert page["pagination"] == {
        "total": 5, "page": 1, "limit": 20, "total_pages": 1,
        "has_next": False, "has_previous": False,
    }


def test_rows_carry_approvability_and_label(service, populated):
    rows = {r.id: r for r in service.list_requests()["requests"]}

    assert rows[populated[0].id].is_approvable is False  # already APPROVED
    assert rows[populated[1].id].vehicle_label == "Renault Clio 2022"
    assert all(r.is_approvable is not None for r in rows.values())


def test_filters(service, populated):
    assert [r.id for r in service.list_requests({"status": "approved"})["requests"]] == [populated[0].id]
    assert {r.vehicle_id for r in service.list_requests({"vehicle_id": "veh-2"})["requests"]} == {"veh-2"}
    assert [r.id for r in service.list_requests({"client_email": "CLIENT3@"})["requests"]] == [populated[3].id]

    later = service.list_requests({"start_date": "2025-07-01"})["requests"]
    assert all(r.start_date.isoformat() >= "2025-07-01" for r in later)
    early = service.list_requests({"end_date": "2025-06-30"})["requests"]
    assert all(r.end_date.isoformat() <= "2025-06-30" for r in early)
    assert len(later) + len(early) == 5


def test_sort_by_start_date_ascending(service, populated):
    rows = service.list_requests({"sort_by": "start_date", "sort_order": "asc"})["requests"]
    starts = [r.start_date for r in rows]
    assert starts == sorted(starts)


def test_pagination(service, populated):
    first = service.list_requests({"limit": "2"})
    third = service.list_requests({"limit": 2, "offset": 4})

    assert len(first["requests"]) == 2
    assert first["pagination"]["total_pages"] == 3
    assert first["pagination"]["has_next"] is True
    assert [r.id for r in third["requests"]] == [populated[0].id]
    assert third["pagination"]["page"] == 3
    assert third["pagination"]["has_next"] is False
    assert third["pagination"]["has_previous"] is True


def test_empty_result(service, vehicle):
    page = service.list_requests({"status": S.CONFIRMED.value})
    assert page["requests"] == []
    assert page["pagination"]["total"] == 0
    assert page["pagination"]["total_pages"] == 0


@pytest.mark.parametrize("filters", [
    {"status": "ARCHIVED"},
    {"limit": "0"},
    {"limit": "101"},
    {"limit": "ten"},
    {"offset": "-1"},
    {"sort_by": "client_name"},
    {"sort_order": "up"},
    {"start_date": "June"},
])
def test_malformed_filters_are_rejected(service, filters):
    with pytest.raises(ValidationError):
        service.list_requests(filters)
