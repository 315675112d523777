"""
Audit trail helpers.

Audit writes are best-effort: a failure is logged and counted, never raised,
so an audit problem can not break the operation being audited.
"""
from django.db import DatabaseError, transaction

from apps.core.models import AuditLog
from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.metrics import metrics

logger = get_sanitized_logger(__name__)


def get_client_ip(request):
    """
    Resolve the client IP.

    Order: first X-Forwarded-For entry, then X-Real-IP, then REMOTE_ADDR.
    """
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    real_ip = request.META.get('HTTP_X_REAL_IP')
    if real_ip:
        return real_ip.strip()
    return request.META.get('REMOTE_ADDR')


def log_audit(
    action,
    entity_type,
    entity_id,
    user=None,
    old_value=None,
    new_value=None,
    metadata=None,
    order=None,
    file=None,
    alert=None,
    request=None,
):
    """
    Create an audit log entry.

    Args:
        action: AuditActionChoices value
        entity_type: 'Order', 'OrderFile', 'Alert', 'User', ...
        entity_id: Primary key of the audited entity
        user: Acting user (None for system actions)
        old_value / new_value: Scalar before/after (status changes)
        metadata: Extra JSON-serializable context
        order / file / alert: Related rows for easier querying
        request: Django/DRF request, used for IP and user agent

    Returns:
        AuditLog instance, or None if the write failed
    """
    user_agent = None
    if request is not None:
        user_agent = request.META.get('HTTP_USER_AGENT', '')[:255] or None
    if user is not None and not user.is_authenticated:
        user = None

    try:
        # Savepoint keeps a failed insert from poisoning the caller's transaction
        with transaction.atomic():
            return AuditLog.objects.create(
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                user=user,
                old_value=None if old_value is None else str(old_value),
                new_value=None if new_value is None else str(new_value),
                metadata=metadata or {},
                ip_address=get_client_ip(request),
                user_agent=user_agent,
                order=order,
                file=file,
                alert=alert,
            )
    except DatabaseError:
        metrics.audit_log_failures_total.inc()
        logger.exception(
            'Audit log write failed',
            extra={
                'event': 'audit_log_failed',
                'action': action,
                'entity_type': entity_type,
                'entity_id': str(entity_id),
            }
        )
        return None
