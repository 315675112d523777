"""
Files models: order_file
"""
import uuid
from django.conf import settings
from django.db import models


class FileCategoryChoices(models.TextChoices):
    SCAN_UPPER = 'scan_upper', 'Upper arch scan'
    SCAN_LOWER = 'scan_lower', 'Lower arch scan'
    MOUTH_PHOTO = 'mouth_photo', 'Mouth photo'
    OTHER = 'other', 'Other'


class OrderFile(models.Model):
    """
    File attached to an order and stored in object storage.

    Storage model:
    - Uploaded by the client straight to MinIO with a presigned PUT URL
    - Recorded here afterwards (process-upload) with its object key
    - Images get a WebP thumbnail generated in the background

    Deletion removes the storage objects and soft-deletes the row so the
    audit trail keeps pointing at it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='files'
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='uploaded_files'
    )

    file_name = models.CharField(max_length=255)
    original_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=10, help_text='Lowercase extension without dot')
    file_size = models.PositiveBigIntegerField()
    mime_type = models.CharField(max_length=100)
    category = models.CharField(max_length=20, choices=FileCategoryChoices.choices)

    storage_key = models.CharField(max_length=512, unique=True)
    storage_url = models.CharField(max_length=1024, blank=True)
    thumbnail_key = models.CharField(max_length=512, blank=True)
    thumbnail_url = models.CharField(max_length=1024, blank=True)
    is_processed = models.BooleanField(default=False)

    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'order_file'
        verbose_name = 'Order File'
        verbose_name_plural = 'Order Files'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['order'], name='idx_order_file_order'),
            models.Index(fields=['category'], name='idx_order_file_category'),
            models.Index(fields=['deleted_at'], name='idx_order_file_deleted'),
        ]

    def __str__(self):
        return f"{self.original_name} ({self.category})"

    @property
    def is_image(self):
        return self.mime_type.startswith('image/')
