from datetime import timedelta

from rentdesk.config import Settings
from rentdesk.models.store import Store
from rentdesk.services.common import utcnow
from rentdesk.services.notification_service import LogNotificationService, NotificationDispatcher
from rentdesk.services.request_service import RentRequestService

DEMO_VEHICLES = [
    {"make": "Renault", "model": "Clio", "year": 2022, "price_per_day": 4500},
    {"make": "Dacia", "model": "Duster", "year": 2023, "price_per_day": 6000},
    {"make": "Hyundai", "model": "i10", "year": 2021, "price_per_day": 3500},
]


def seed_demo_data(store: Store, settings: Settings | None = None, clock=utcnow) -> dict:
    """
    Populate an empty store with demo vehicles, one confirmed contract and two
    rent requests. Idempotent: does nothing when vehicles already exist.
    """
    if store.vehicles:
        return {"vehicles": 0, "contracts": 0, "requests": 0}

    settings = settings or Settings()
    vids = [store.create_vehicle(v) for v in DEMO_VEHICLES]

    start = (clock() + timedelta(days=10)).date()
    store.create_contract({
        "contract_number": "CTR-0001",
        "vehicle_id": vids[0],
        "client_name": "Amina Benali",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=5)).isoformat(),
        "status": "CONFIRMED",
    })

    # Notifications are only logged while seeding
    service = RentRequestService(
        store, settings, NotificationDispatcher(LogNotificationService()), clock,
    )
    service.create({
        "client_name": "Karim Haddad",
        "client_email": "karim@example.com",
        "client_phone": "+213555123456",
        "vehicle_id": vids[0],
        "start_date": (start + timedelta(days=3)).isoformat(),
        "end_date": (start + timedelta(days=7)).isoformat(),
        "message": "Airport pickup if possible",
    })
    service.create({
        "client_name": "Sofia Meziane",
        "client_email": "sofia@example.com",
        "client_phone": "0661234567",
        "vehicle_id": vids[1],
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=2)).isoformat(),
    })
    return {"vehicles": len(vids), "contracts": 1, "requests": 2}


def main():
    settings = Settings.from_env()
    store = Store(settings.data_path)
    counts = seed_demo_data(store, settings)
    store.save()
    print(f"Seed complete: {counts}")


if __name__ == "__main__":
    main()
