"""
Order notification emails.

Sending is non-blocking for the caller: every failure is logged and
counted, never raised. Nothing is sent when ORDER_EMAILS_ENABLED is off.
"""
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from apps.authz.models import RoleChoices, User
from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.metrics import metrics

logger = get_sanitized_logger(__name__)

TEMPLATE_DIR = 'notifications/email'


def doctor_submitted_subject(order):
    return f'Orden #{order.order_number} enviada para revisión'


def lab_admin_new_order_subject(order):
    prefix = '[URGENTE] ' if order.is_urgent else ''
    return f'{prefix}Nueva orden #{order.order_number} de {order.clinic.name}'


def _order_url(order, audience):
    base = settings.APP_BASE_URL.rstrip('/')
    return f'{base}/{audience}/orders/{order.id}'


def _send(template, subject, recipient, context):
    """Render the txt/html pair and send one message. Returns True on success."""
    text_body = render_to_string(f'{TEMPLATE_DIR}/{template}.txt', context)
    html_body = render_to_string(f'{TEMPLATE_DIR}/{template}.html', context)
    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[recipient],
    )
    message.attach_alternative(html_body, 'text/html')
    try:
        message.send()
    except (SMTPException, OSError) as e:
        metrics.emails_sent_total.labels(template=template, result='failure').inc()
        logger.error(
            'Notification email failed',
            extra={'event': 'email_failed', 'template': template, 'error': str(e)}
        )
        return False
    metrics.emails_sent_total.labels(template=template, result='success').inc()
    return True


def send_order_submitted_notifications(order):
    """
    Confirmation to the doctor plus a new-order notice to each active lab
    admin of the order's laboratory.

    Returns:
        Number of emails sent
    """
    if not settings.ORDER_EMAILS_ENABLED:
        logger.info(
            'Order emails disabled, skipping',
            extra={'event': 'email_skipped', 'order_id': str(order.id)}
        )
        return 0

    doctor = order.doctor
    base_context = {
        'order': order,
        'clinic_name': order.clinic.name,
        'doctor_name': doctor.name or doctor.email,
        'teeth_count': order.teeth.count(),
    }

    sent = 0
    if doctor.email:
        context = dict(base_context, order_url=_order_url(order, 'doctor'))
        sent += _send('order_submitted_doctor', doctor_submitted_subject(order), doctor.email, context)

    lab_admins = User.objects.filter(
        role=RoleChoices.LAB_ADMIN,
        laboratory_id=order.clinic.laboratory_id,
        is_active=True,
    ).exclude(email='')
    subject = lab_admin_new_order_subject(order)
    for admin in lab_admins:
        context = dict(
            base_context,
            recipient_name=admin.name or admin.email,
            order_url=_order_url(order, 'lab-admin'),
        )
        sent += _send('new_order_lab_admin', subject, admin.email, context)

    return sent
