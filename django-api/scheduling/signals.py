"""Django signals carrying scheduling notifications.

Delivery (email, Slack) hooks in by connecting receivers to
``scheduling_notification``. The receiver below only logs.
"""

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent with ``notification=<Notification>``.
scheduling_notification = Signal()


@receiver(scheduling_notification)
def log_notification(sender, notification, **kwargs):
    """Record every notification in the application log."""
    logger.info(
        "Notification %s: %s", notification.type.value, notification.context
    )
