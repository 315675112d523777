"""
Notifications models: alert
"""
import uuid
from django.conf import settings
from django.db import models


class AlertStatusChoices(models.TextChoices):
    UNREAD = 'UNREAD', 'Unread'
    READ = 'READ', 'Read'
    RESOLVED = 'RESOLVED', 'Resolved'


class Alert(models.Model):
    """
    In-app notification from one user to another about an order.

    Lifecycle: UNREAD -> READ -> RESOLVED. Only the receiver may change or
    delete it, and an UNREAD alert can not be deleted.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    message = models.TextField()
    status = models.CharField(
        max_length=10,
        choices=AlertStatusChoices.choices,
        default=AlertStatusChoices.UNREAD
    )
    read_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='alerts'
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_alerts'
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='received_alerts'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'alert'
        verbose_name = 'Alert'
        verbose_name_plural = 'Alerts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['receiver', 'status'], name='idx_alert_receiver_status'),
            models.Index(fields=['order'], name='idx_alert_order'),
        ]

    def __str__(self):
        return f"Alert to {self.receiver_id} ({self.status})"
