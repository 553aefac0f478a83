import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from .models import Escrow
from .transitions import EscrowStatus

logger = logging.getLogger(__name__)

SUBJECTS = {
    'created': "Escrow {code} created",
    'held': "Deposit confirmed for escrow {code}",
    'partially_released': "Partial release on escrow {code}",
    'released': "Escrow {code} fully released",
    'refunded': "Escrow {code} refunded",
    'disputed': "Escrow {code} is under dispute",
    'dispute_resolved': "Dispute on escrow {code} resolved",
    'cancelled': "Escrow {code} cancelled",
}

# Events only the depositing homeowner needs to hear about.
HOMEOWNER_ONLY_EVENTS = {'created', 'held', 'cancelled'}


def _load(escrow_id):
    return (
        Escrow.objects.select_related('project', 'homeowner', 'bid__contractor')
        .filter(pk=escrow_id)
        .first()
    )


def _recipients(escrow, event):
    emails = [escrow.homeowner.email]
    if event not in HOMEOWNER_ONLY_EVENTS:
        emails.append(escrow.bid.contractor.email)
    return [email for i, email in enumerate(emails) if email and email not in emails[:i]]


@shared_task
def send_escrow_notification(escrow_id, event, amount=None):
    escrow = _load(escrow_id)
    if escrow is None:
        logger.warning(f"Escrow {escrow_id} not found, skipping '{event}' notification")
        return False

    subject = SUBJECTS.get(event, "Escrow {code} updated").format(code=escrow.code)
    amount_line = f"Amount: {amount:,} {escrow.currency}\n" if amount else ""
    message = f"""
    Hello,

    Escrow {escrow.code} for the project "{escrow.project.title}" is now {escrow.get_status_display()}.

    {amount_line}Released so far: {escrow.released_amount:,} of {escrow.amount:,} {escrow.currency}

    The {settings.SITE_NAME} Team
    """

    send_mail(
        subject=subject,
        message=message.strip(),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=_recipients(escrow, event),
        fail_silently=False,
    )
    return True


@shared_task
def send_pending_reminder(escrow_id):
    """Remind the homeowner to pay a deposit that is still awaiting confirmation."""
    escrow = _load(escrow_id)
    if escrow is None or escrow.status != EscrowStatus.PENDING:
        return False

    message = f"""
    Hello {escrow.homeowner.get_full_name() or escrow.homeowner.email},

    The deposit of {escrow.amount:,} {escrow.currency} for escrow {escrow.code}
    on "{escrow.project.title}" has not been confirmed yet.

    Please complete the deposit so the contractor can start work.

    The {settings.SITE_NAME} Team
    """

    send_mail(
        subject=f"Reminder: deposit pending for escrow {escrow.code}",
        message=message.strip(),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[escrow.homeowner.email],
        fail_silently=False,
    )
    return True
