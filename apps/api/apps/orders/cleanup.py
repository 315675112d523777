"""
Retention cleanup of completed orders.

Completed orders older than the retention period lose their stored files
(originals and thumbnails) and are soft deleted. Runs from the cron endpoint
and from the cleanup_orders management command.
"""
import time
from datetime import timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_cleanup_run
from apps.files.utils_storage import StorageError, delete_objects
from apps.orders.models import Order, OrderStatusChoices

logger = get_sanitized_logger(__name__)

DEFAULT_BATCH_SIZE = 100


def expired_orders(retention_days, batch_size=DEFAULT_BATCH_SIZE, now=None):
    """COMPLETED, not deleted, completed before the cutoff; oldest first."""
    cutoff = (now or timezone.now()) - timedelta(days=retention_days)
    return Order.objects.filter(
        status=OrderStatusChoices.COMPLETED,
        completed_at__lt=cutoff,
        deleted_at__isnull=True,
    ).order_by('completed_at').prefetch_related('files')[:batch_size]


def _storage_keys(order):
    keys = []
    for order_file in order.files.all():
        if order_file.storage_key:
            keys.append(order_file.storage_key)
        if order_file.thumbnail_key:
            keys.append(order_file.thumbnail_key)
    return keys


@metrics.track_duration(metrics.cleanup_duration_seconds)
def cleanup_completed_orders(retention_days, batch_size=DEFAULT_BATCH_SIZE, dry_run=False):
    """
    Remove the files of expired completed orders and soft delete them.

    A failed storage deletion is recorded and the order is still soft
    deleted; a failure on one order does not stop the batch.

    Returns:
        dict with orders_processed, orders_deleted, files_deleted,
        files_failed, errors, dry_run
    """
    start_time = time.time()
    result = {
        'orders_processed': 0,
        'orders_deleted': 0,
        'files_deleted': 0,
        'files_failed': 0,
        'errors': [],
        'dry_run': dry_run,
    }

    orders = list(expired_orders(retention_days, batch_size))
    result['orders_processed'] = len(orders)

    for order in orders:
        keys = _storage_keys(order)
        if dry_run:
            logger.info(
                'Dry run: would delete order',
                extra={'event': 'cleanup_dry_run', 'order_id': str(order.id), 'file_count': len(keys)}
            )
            result['orders_deleted'] += 1
            result['files_deleted'] += len(keys)
            continue

        try:
            failed = delete_objects(keys)
            result['files_deleted'] += len(keys) - len(failed)
            result['files_failed'] += len(failed)
            for key, error in failed.items():
                result['errors'].append(f'Failed to delete file {key}: {error}')

            now = timezone.now()
            with transaction.atomic():
                order.files.filter(deleted_at__isnull=True).update(deleted_at=now)
                Order.objects.filter(pk=order.pk).update(deleted_at=now, updated_at=now)
            result['orders_deleted'] += 1
            metrics.cleanup_orders_deleted_total.inc()
        except (StorageError, DatabaseError) as e:
            logger.exception(
                'Cleanup failed for order',
                extra={'event': 'cleanup_order_failed', 'order_id': str(order.id)}
            )
            result['errors'].append(f'Failed to process order {order.id}: {e}')

    log_cleanup_run(result, duration_ms=int((time.time() - start_time) * 1000))
    return result
