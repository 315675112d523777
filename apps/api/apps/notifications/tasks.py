"""
Celery tasks for notification delivery.
"""
from celery import shared_task

from apps.core.observability.logging import get_sanitized_logger

logger = get_sanitized_logger(__name__)


@shared_task(name='apps.notifications.tasks.send_order_submitted_emails')
def send_order_submitted_emails(order_id):
    """
    Send the submit confirmation and lab-admin notices for an order.

    Args:
        order_id: Order UUID (as string)
    """
    from apps.notifications.emails import send_order_submitted_notifications
    from apps.orders.models import Order

    try:
        order = Order.objects.select_related('clinic', 'doctor').get(id=order_id)
    except Order.DoesNotExist:
        logger.warning(
            'Submitted order vanished before emails were sent',
            extra={'event': 'email_skipped', 'order_id': str(order_id)}
        )
        return 0
    return send_order_submitted_notifications(order)
