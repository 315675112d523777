"""
File signals - queue thumbnail generation once an image upload is recorded.
"""
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .file_types import requires_processing
from .models import OrderFile
from .tasks import generate_file_thumbnail


@receiver(post_save, sender=OrderFile)
def on_file_recorded(sender, instance, created, **kwargs):
    """
    Enqueue thumbnail generation for new image files.

    Deferred to commit so the worker never looks up a row that is not
    visible yet.
    """
    if created and not instance.is_processed and requires_processing(instance.mime_type):
        file_id = str(instance.id)
        transaction.on_commit(lambda: generate_file_thumbnail.delay(file_id))
