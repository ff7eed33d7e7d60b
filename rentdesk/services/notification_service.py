"""
Client/admin notifications for rent requests.

Delivery itself is an external collaborator: ``NotificationService`` is the
interface the lifecycle calls, ``LogNotificationService`` is the default
implementation (it only logs), and ``NotificationDispatcher`` makes sure a
failing or slow notifier never affects the request mutation that triggered it.
"""

import logging
from concurrent.futures import Executor

logger = logging.getLogger(__name__)


class NotificationService:
    """Interface for the e-mail collaborator. Payloads are plain dicts."""

    def send_client_confirmation(self, payload: dict) -> None:
        raise NotImplementedError

    def send_admin_notification(self, payload: dict) -> None:
        raise NotImplementedError

    def send_status_update(self, payload: dict) -> None:
        raise NotImplementedError


class LogNotificationService(NotificationService):
    def __init__(self, admin_emails=()):
        self.admin_emails = tuple(admin_emails)

    def send_client_confirmation(self, payload: dict) -> None:
        logger.info("Client confirmation for %s to %s", payload["request_id"], payload["client_email"])

    def send_admin_notification(self, payload: dict) -> None:
        if not self.admin_emails:
            logger.warning("No admin e-mails configured, skipping admin notification")
            return
        logger.info("Admin notification for %s to %s", payload["request_id"], ", ".join(self.admin_emails))

    def send_status_update(self, payload: dict) -> None:
        logger.info(
            "Status update for %s to %s: %s",
            payload["request_id"], payload["client_email"], payload.get("status"),
        )


class NotificationDispatcher:
    """
    Fire-and-forget wrapper. Runs notifications inline, or on ``executor``
    when one is given; every exception is caught and logged as a warning.
    """

    def __init__(self, service: NotificationService, executor: Executor | None = None):
        self.service = service
        self.executor = executor

    def _run(self, kinds: tuple[str, ...], payload: dict) -> None:
        for kind in kinds:
            try:
                getattr(self.service, kind)(payload)
            except Exception as e:
                logger.warning(
                    "Notification %s failed for %s: %s", kind, payload.get("request_id"), e,
                )

    def dispatch(self, payload: dict, *kinds: str) -> None:
        if self.executor is None:
            self._run(kinds, payload)
            return
        try:
            self.executor.submit(self._run, kinds, payload)
        except RuntimeError as e:  # executor shut down
            logger.warning("Notification %s not queued for %s: %s", kinds, payload.get("request_id"), e)

    def new_request(self, payload: dict) -> None:
        self.dispatch(payload, "send_client_confirmation", "send_admin_notification")

    def status_update(self, payload: dict) -> None:
        self.dispatch(payload, "send_status_update")
