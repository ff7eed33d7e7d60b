from .analytics_service import StatisticsService
from .conflict_service import ConflictDetector
from .notification_service import LogNotificationService, NotificationDispatcher, NotificationService
from .request_service import RentRequestService
from .status_machine import StatusMachine

__all__ = [
    "RentRequestService",
    "ConflictDetector",
    "StatusMachine",
    "StatisticsService",
    "NotificationService",
    "LogNotificationService",
    "NotificationDispatcher",
]
