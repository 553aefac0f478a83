import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction

from .tasks import send_escrow_notification, send_pending_reminder

logger = logging.getLogger(__name__)


class EscrowNotificationDispatcher:
    """
    Fire-and-forget notification hand-off.

    Work is queued only once the surrounding transaction commits, and a
    failure to queue is logged and dropped: it never undoes the escrow change
    that triggered it.
    """

    def dispatch(self, escrow, event, amount=None):
        escrow_id, escrow_code = escrow.pk, escrow.code

        def _send():
            try:
                send_escrow_notification.delay(escrow_id, event, amount)
            except Exception:
                logger.error(
                    "Failed to queue escrow notification",
                    extra={'escrow_id': escrow_id, 'escrow_code': escrow_code, 'event': event},
                    exc_info=True,
                )

        transaction.on_commit(_send)

    def schedule_pending_reminder(self, escrow):
        escrow_id, escrow_code = escrow.pk, escrow.code
        eta = escrow.created_at + timedelta(hours=settings.ESCROW_PENDING_REMINDER_HOURS)

        def _schedule():
            try:
                send_pending_reminder.apply_async(args=[escrow_id], eta=eta)
            except Exception:
                logger.error(
                    "Failed to schedule escrow pending reminder",
                    extra={'escrow_id': escrow_id, 'escrow_code': escrow_code},
                    exc_info=True,
                )

        transaction.on_commit(_schedule)
