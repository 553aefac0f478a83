import pytest

from escrow.tasks import send_escrow_notification, send_pending_reminder


@pytest.mark.django_db
class TestSendEscrowNotification:

    def test_release_mails_both_parties(self, held_escrow, mailoutbox):
        assert send_escrow_notification(held_escrow.pk, 'partially_released', 10_000_000) is True

        assert len(mailoutbox) == 1
        mail = mailoutbox[0]
        assert mail.subject == f"Partial release on escrow {held_escrow.code}"
        assert set(mail.to) == {"homeowner@example.com", "contractor@example.com"}
        assert "10,000,000 VND" in mail.body
        assert "Kitchen remodel" in mail.body

    def test_homeowner_only_events(self, pending_escrow, mailoutbox):
        send_escrow_notification(pending_escrow.pk, 'created', pending_escrow.amount)

        assert mailoutbox[0].to == ["homeowner@example.com"]

    def test_missing_escrow_is_skipped(self, db, mailoutbox):
        assert send_escrow_notification(424242, 'released') is False
        assert mailoutbox == []


@pytest.mark.django_db
class TestSendPendingReminder:

    def test_reminds_homeowner_while_pending(self, pending_escrow, mailoutbox):
        assert send_pending_reminder(pending_escrow.pk) is True

        assert mailoutbox[0].to == ["homeowner@example.com"]
        assert pending_escrow.code in mailoutbox[0].subject

    def test_no_reminder_once_confirmed(self, held_escrow, mailoutbox):
        assert send_pending_reminder(held_escrow.pk) is False
        assert mailoutbox == []
