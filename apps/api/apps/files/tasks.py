"""
Celery tasks for order file processing.
"""
from celery import shared_task
from PIL import UnidentifiedImageError

from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.metrics import metrics
from apps.files.image_utils import make_thumbnail_bytes
from apps.files.utils_storage import (
    StorageError,
    download_object,
    public_url,
    thumbnail_key_for,
    upload_bytes,
)

logger = get_sanitized_logger(__name__)


@shared_task(name='apps.files.tasks.generate_file_thumbnail')
def generate_file_thumbnail(file_id):
    """
    Generate a WebP thumbnail for an uploaded image.

    The file is marked processed even when generation fails so the UI
    falls back to the original instead of waiting forever.

    Args:
        file_id: OrderFile UUID (as string)
    """
    from .models import OrderFile

    try:
        order_file = OrderFile.objects.get(id=file_id, deleted_at__isnull=True)
    except OrderFile.DoesNotExist:
        logger.warning(
            'Thumbnail requested for missing file',
            extra={'event': 'thumbnail_skipped', 'file_id': str(file_id)}
        )
        return f"File {file_id} not found"

    try:
        original = download_object(order_file.storage_key)
        thumbnail = make_thumbnail_bytes(original)
        thumb_key = thumbnail_key_for(order_file.storage_key)
        upload_bytes(thumb_key, thumbnail, 'image/webp')
    except (StorageError, UnidentifiedImageError, OSError, ValueError) as e:
        metrics.thumbnails_total.labels(result='failure').inc()
        logger.error(
            'Thumbnail generation failed',
            extra={
                'event': 'thumbnail_failed',
                'file_id': str(order_file.id),
                'order_id': str(order_file.order_id),
                'error': str(e),
            }
        )
        order_file.is_processed = True
        order_file.save(update_fields=['is_processed', 'updated_at'])
        return f"Error generating thumbnail for file {file_id}: {e}"

    order_file.thumbnail_key = thumb_key
    order_file.thumbnail_url = public_url(thumb_key)
    order_file.is_processed = True
    order_file.save(update_fields=['thumbnail_key', 'thumbnail_url', 'is_processed', 'updated_at'])
    metrics.thumbnails_total.labels(result='success').inc()

    return f"Thumbnail generated for file {file_id}"
