"""Demo data seeding."""

from seeds import seed_demo_data
from rentdesk.services.request_service import RentRequestService


def test_seed_populates_empty_store(store, clock):
    counts = seed_demo_data(store, clock=clock)

    assert counts == {"vehicles": 3, "contracts": 1, "requests": 2}
    assert len(store.vehicles) == 3
    assert len(store.rent_requests) == 2
    assert all(len(store.history_for(pk)) == 1 for pk in store.rent_requests)


def test_seeded_request_overlapping_contract_is_not_approvable(store, clock):
    seed_demo_data(store, clock=clock)
    page = RentRequestService(store, clock=clock).list_requests({"sort_by": "start_date", "sort_order": "asc"})

    flags = {r.client_name: r.is_approvable for r in page["requests"]}
    assert flags == {"Sofia Meziane": True, "Karim Haddad": False}


def test_seed_is_idempotent(store, clock):
    seed_demo_data(store, clock=clock)
    assert seed_demo_data(store, clock=clock) == {"vehicles": 0, "contracts": 0, "requests": 0}
    assert len(store.rent_requests) == 2
