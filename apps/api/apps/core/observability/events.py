"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'order_transition', 'file_uploaded')
        entity_type: Type of entity (e.g., 'Order', 'OrderFile')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, etc.)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'order_transition',
            entity_type='Order',
            entity_id=str(order.id),
            entity_ids={'clinic_id': str(order.clinic_id)},
            from_status='DRAFT',
            to_status='PENDING_REVIEW',
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'denied']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_order_transition(order, from_status, to_status, result='success', **extra):
    """Log order status transition event."""
    log_domain_event(
        'order_transition',
        entity_type='Order',
        entity_id=str(order.id),
        entity_ids={'order_id': str(order.id), 'clinic_id': str(order.clinic_id)},
        result=result,
        from_status=from_status,
        to_status=to_status,
        **extra
    )


def log_cleanup_run(result_data, duration_ms=None):
    """Log the outcome of a retention cleanup run."""
    extra = dict(result_data)
    extra.pop('errors', None)
    if duration_ms is not None:
        extra['duration_ms'] = duration_ms
    log_domain_event(
        'orders_cleanup_run',
        entity_type='Order',
        result='warning' if result_data.get('errors') else 'success',
        error_count=len(result_data.get('errors', [])),
        **extra
    )
