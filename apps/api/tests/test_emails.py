"""
Tests for order notification emails.

Business Rules:
- Doctor gets a confirmation, every active lab admin of the lab gets a notice
- Urgent orders get an [URGENTE] subject prefix for lab admins
- ORDER_EMAILS_ENABLED=False sends nothing
- SMTP failures are logged, never raised
"""
from smtplib import SMTPException
from unittest.mock import patch

import pytest

from apps.notifications.emails import (
    doctor_submitted_subject,
    lab_admin_new_order_subject,
    send_order_submitted_notifications,
)
from apps.notifications.tasks import send_order_submitted_emails
from apps.orders.models import OrderStatusChoices


@pytest.fixture
def submitted_order(make_order):
    return make_order(status=OrderStatusChoices.PENDING_REVIEW, teeth=('11', '21'))


@pytest.mark.django_db
class TestOrderSubmittedNotifications:

    def test_sends_to_doctor_and_lab_admins(self, submitted_order, lab_admin, other_lab_admin, mailoutbox):
        sent = send_order_submitted_notifications(submitted_order)

        assert sent == 2
        recipients = sorted(message.to[0] for message in mailoutbox)
        assert recipients == ['doctor@test.com', 'labadmin@test.com']
        html = mailoutbox[0].alternatives[0]
        assert html[1] == 'text/html'

    def test_inactive_lab_admin_skipped(self, submitted_order, lab_admin, mailoutbox):
        lab_admin.is_active = False
        lab_admin.save()

        assert send_order_submitted_notifications(submitted_order) == 1

    def test_urgent_subject_prefix(self, make_order):
        order = make_order(is_urgent=True)

        assert lab_admin_new_order_subject(order) == (
            f'[URGENTE] Nueva orden #{order.order_number} de Smile Dental Clinic'
        )
        assert doctor_submitted_subject(order) == f'Orden #{order.order_number} enviada para revisión'

    def test_disabled(self, submitted_order, lab_admin, mailoutbox, settings):
        settings.ORDER_EMAILS_ENABLED = False

        assert send_order_submitted_notifications(submitted_order) == 0
        assert mailoutbox == []

    def test_smtp_failure_is_not_raised(self, submitted_order, lab_admin):
        with patch('apps.notifications.emails.EmailMultiAlternatives.send', side_effect=SMTPException('down')):
            assert send_order_submitted_notifications(submitted_order) == 0


@pytest.mark.django_db
class TestSendOrderSubmittedEmailsTask:

    def test_task_sends(self, submitted_order, lab_admin, mailoutbox):
        assert send_order_submitted_emails(str(submitted_order.id)) == 2

    def test_missing_order(self, db, mailoutbox):
        assert send_order_submitted_emails('00000000-0000-0000-0000-000000000000') == 0
        assert mailoutbox == []
