"""Fire-and-forget notification sink."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class NotificationType(Enum):
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    CALENDAR_CONFLICT = "calendar_conflict"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    EVENT_CANCELLED = "event_cancelled"


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    context: dict[str, Any] = field(default_factory=dict, hash=False)


class Notifier(ABC):
    """Notification sink. Implementations must never raise."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        ...


class SignalNotifier(Notifier):
    """Dispatches notifications through the ``scheduling_notification`` signal."""

    def notify(self, notification: Notification) -> None:
        from scheduling.signals import scheduling_notification

        try:
            responses = scheduling_notification.send_robust(
                sender=self.__class__, notification=notification
            )
        except Exception:
            logger.exception("Failed to dispatch %s notification", notification.type.value)
            return
        for handler, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "Notification handler %s failed for %s: %s",
                    getattr(handler, "__name__", handler),
                    notification.type.value,
                    response,
                )
