import logging

from flask import Flask

from .config import Settings
from .controllers.rent_requests import bp as rent_requests_bp
from .models.store import Store
from .services.analytics_service import StatisticsService
from .services.common import utcnow
from .services.notification_service import LogNotificationService, NotificationDispatcher
from .services.request_service import RentRequestService


def create_app(store=None, settings=None, notifier=None, clock=None):
    """
    Build the Flask app around explicitly constructed services.
    Anything not passed in is built from ``Settings.from_env()``.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    store = store if store is not None else Store(settings.data_path)
    clock = clock or utcnow
    dispatcher = NotificationDispatcher(notifier or LogNotificationService(settings.admin_emails))

    app = Flask(__name__)
    app.extensions["rentdesk"] = {
        "store": store,
        "settings": settings,
        "requests": RentRequestService(store, settings, dispatcher, clock),
        "statistics": StatisticsService(store, settings, clock),
    }
    app.register_blueprint(rent_requests_bp)

    return app
