"""
Alert creation and live event publishing.

Alerts are written inside the caller's transaction; their SSE events are
published only after that transaction commits, so a stream never shows an
alert that was rolled back.
"""
from django.db import DatabaseError, transaction

from apps.authz.models import DoctorAssistant, RoleChoices, User
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.metrics import metrics
from apps.notifications.event_bus import NEW_ALERT, NEW_ORDER, event_bus
from apps.notifications.models import Alert

logger = get_sanitized_logger(__name__)


def _isoformat(value):
    return value.isoformat() if value else None


def serialize_alert_event(alert):
    """Payload of a new-alert event."""
    order = alert.order
    sender = alert.sender
    return {
        'id': str(alert.id),
        'message': alert.message,
        'status': alert.status,
        'created_at': _isoformat(alert.created_at),
        'read_at': _isoformat(alert.read_at),
        'resolved_at': _isoformat(alert.resolved_at),
        'receiver_id': str(alert.receiver_id),
        'order': {
            'id': str(order.id),
            'order_number': order.order_number,
            'patient_name': order.patient_name,
        },
        'sender': {
            'name': sender.name,
            'role': sender.role,
        } if sender else None,
    }


def serialize_order_event(order):
    """Payload of a new-order event."""
    return {
        'id': str(order.id),
        'order_number': order.order_number,
        'patient_name': order.patient_name,
        'status': order.status,
        'is_urgent': order.is_urgent,
        'clinic_id': str(order.clinic_id),
        'clinic_name': order.clinic.name,
        'doctor_name': order.doctor.name,
        'laboratory_id': str(order.clinic.laboratory_id),
        'submitted_at': _isoformat(order.submitted_at),
    }


def create_alert(order, receiver, message, sender=None, reason='manual', request=None):
    """
    Create an UNREAD alert and publish it to the receiver's stream on commit.

    Returns:
        Alert instance
    """
    alert = Alert.objects.create(
        order=order,
        receiver=receiver,
        sender=sender,
        message=message,
    )
    log_audit(
        AuditActionChoices.ALERT_SENT,
        'Alert',
        alert.id,
        user=sender,
        metadata={'receiver_id': str(receiver.id), 'reason': reason},
        order=order,
        alert=alert,
        request=request,
    )
    metrics.alerts_created_total.labels(reason=reason).inc()

    payload = serialize_alert_event(alert)
    transaction.on_commit(lambda: event_bus.emit(NEW_ALERT, payload))
    return alert


def notify_needs_info(order, sender, request=None):
    """
    Alert the doctor and every assistant of the doctor that the lab needs
    more information.

    Failures are logged and swallowed; the status change that triggered
    this must still succeed.
    """
    message = (
        f'Se requiere información adicional para la orden #{order.order_number} '
        f'del paciente {order.patient_name}'
    )
    try:
        # Savepoint: a failed insert must not abort the status change
        with transaction.atomic():
            recipients = [order.doctor] + [
                link.assistant
                for link in DoctorAssistant.objects.filter(
                    doctor_id=order.doctor_id
                ).select_related('assistant')
            ]
            return [
                create_alert(order, recipient, message, sender=sender,
                             reason='needs_info', request=request)
                for recipient in recipients
            ]
    except DatabaseError:
        logger.exception(
            'Failed to create needs-info alerts',
            extra={'event': 'alerts_failed', 'order_id': str(order.id)}
        )
        return []


def notify_trial_recorded(trial, sender, request=None):
    """
    Tell the doctor a trial is on its way and waiting for evaluation.

    Failures are logged and swallowed, like notify_needs_info.
    """
    order = trial.order
    message = (
        f'El laboratorio envió el caso de {order.patient_name} ({order.order_number}) '
        f'para prueba de {trial.get_trial_type_display()}. '
        f'Por favor evalúa la prueba una vez recibida.'
    )
    try:
        with transaction.atomic():
            return create_alert(order, order.doctor, message, sender=sender,
                                reason='trial_recorded', request=request)
    except DatabaseError:
        logger.exception(
            'Failed to create trial alert',
            extra={'event': 'alerts_failed', 'order_id': str(order.id), 'trial_id': str(trial.id)}
        )
        return None


def notify_trial_response(trial, doctor, request=None):
    """
    Tell every lab admin of the order's laboratory how the doctor answered.

    Failures are logged and swallowed; the response itself is kept.
    """
    order = trial.order
    doctor_name = doctor.name or 'El doctor'
    verdict = 'aprobó' if trial.approved else 'rechazó'
    message = (
        f'{doctor_name} {verdict} la prueba de {trial.get_trial_type_display()} '
        f'para el paciente {order.patient_name} ({order.order_number}).'
    )
    if not trial.approved:
        message += f' Motivo: {trial.client_notes}'
    try:
        with transaction.atomic():
            lab_admins = User.objects.filter(
                role=RoleChoices.LAB_ADMIN,
                laboratory_id=order.clinic.laboratory_id,
                is_active=True,
            )
            return [
                create_alert(order, admin, message, sender=doctor,
                             reason='trial_response', request=request)
                for admin in lab_admins
            ]
    except DatabaseError:
        logger.exception(
            'Failed to create trial response alerts',
            extra={'event': 'alerts_failed', 'order_id': str(order.id), 'trial_id': str(trial.id)}
        )
        return []


def publish_new_order(order):
    """Push a submitted order to the lab's order stream once committed."""
    payload = serialize_order_event(order)
    transaction.on_commit(lambda: event_bus.emit(NEW_ORDER, payload))
