"""
Concurrent admin actions on the same vehicle: the conflict re-check and the
status write happen under one per-vehicle lock, so overlapping approvals can
never both succeed.
"""

import threading

from conftest import request_payload
from rentdesk.exceptions import BookingConflictError, DuplicateRequestError
from rentdesk.utils.constants import RequestStatus as S


def _race(fn, args_list):
    barrier = threading.Barrier(len(args_list))
    outcomes = [None] * len(args_list)

    def worker(i, args):
        barrier.wait()
        try:
            outcomes[i] = fn(*args)
        except BookingConflictError as e:
            outcomes[i] = e

    threads = [threading.Thread(target=worker, args=(i, a)) for i, a in enumerate(args_list)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return outcomes


def test_overlapping_approvals_exactly_one_wins(service, vehicle):
    a = service.create(request_payload(start="2025-06-01", end="2025-06-05"))
    b = service.create(request_payload(start="2025-06-04", end="2025-06-08", client_email="b@example.com"))

    outcomes = _race(
        lambda pk, actor: service.update(pk, {"status": "APPROVED"}, actor=actor),
        [(a.id, "admin-1"), (b.id, "admin-2")],
    )

    errors = [o for o in outcomes if isinstance(o, BookingConflictError)]
    winners = [o for o in outcomes if not isinstance(o, BookingConflictError)]
    assert len(errors) == 1
    assert len(winners) == 1

    statuses = sorted(service.get(pk).status.value for pk in (a.id, b.id))
    assert statuses == [S.APPROVED.value, S.PENDING.value]


def test_repeated_races_never_double_book(service, vehicle):
    for month in ("07", "08", "09", "10"):
        reqs = [
            service.create(request_payload(start=f"2025-{month}-01", end=f"2025-{month}-05",
                                           client_email=f"c{i}@example.com"))
            for i in range(4)
        ]
        _race(
            lambda pk: service.update(pk, {"status": "APPROVED"}, actor="admin"),
            [(r.id,) for r in reqs],
        )
        approved = [r for r in reqs if service.get(r.id).status is S.APPROVED]
        assert len(approved) == 1


def test_concurrent_duplicate_submissions_store_one_request(service, vehicle):
    barrier = threading.Barrier(3)
    results = []

    def submit():
        barrier.wait()
        try:
            results.append(service.create(request_payload()))
        except DuplicateRequestError as e:
            results.append(e)

    threads = [threading.Thread(target=submit) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(service.store.all_rent_requests()) == 1
    assert sum(isinstance(r, DuplicateRequestError) for r in results) == 2
