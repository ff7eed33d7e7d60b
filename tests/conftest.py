import sys, pathlib
from datetime import datetime, timedelta, timezone

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest

from rentdesk import create_app
from rentdesk.config import Settings
from rentdesk.models.store import Store
from rentdesk.services.notification_service import NotificationDispatcher, NotificationService
from rentdesk.services.request_service import RentRequestService

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock the tests can move forward by hand."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(NotificationService):
    def __init__(self):
        self.sent = []

    def send_client_confirmation(self, payload):
        self.sent.append(("client_confirmation", payload))

    def send_admin_notification(self, payload):
        self.sent.append(("admin_notification", payload))

    def send_status_update(self, payload):
        self.sent.append(("status_update", payload))

    def kinds(self):
        return [k for k, _ in self.sent]


class FailingNotifier(NotificationService):
    def send_client_confirmation(self, payload):
        raise ConnectionError("smtp down")

    def send_admin_notification(self, payload):
        raise ConnectionError("smtp down")

    def send_status_update(self, payload):
        raise ConnectionError("smtp down")


def seed_vehicle(store, vid="veh-1", **extra):
    data = {"vehicle_id": vid, "make": "Renault", "model": "Clio", "year": 2022, "price_per_day": 4500}
    data.update(extra)
    return store.create_vehicle(data)


def seed_contract(store, vehicle_id, start, end, status="CONFIRMED", number="CTR-001", client="Amina"):
    return store.create_contract({
        "contract_number": number,
        "vehicle_id": vehicle_id,
        "client_name": client,
        "start_date": start,
        "end_date": end,
        "status": status,
    })


def request_payload(vehicle_id="veh-1", start="2025-06-01", end="2025-06-05", **extra):
    data = {
        "client_name": "Karim Haddad",
        "client_email": "karim@example.com",
        "client_phone": "+213555123456",
        "vehicle_id": vehicle_id,
        "start_date": start,
        "end_date": end,
    }
    data.update(extra)
    return data


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def store():
    """Fresh in-memory store per test."""
    return Store()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(store, settings, notifier, clock):
    return RentRequestService(store, settings, NotificationDispatcher(notifier), clock)


@pytest.fixture
def vehicle(store):
    return seed_vehicle(store)


@pytest.fixture
def app(store, notifier, clock):
    app = create_app(store=store, settings=Settings(), notifier=notifier, clock=clock)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c
