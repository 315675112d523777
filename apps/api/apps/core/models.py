"""
Core models: audit_log
"""
import uuid
from django.conf import settings
from django.db import models


class AuditActionChoices(models.TextChoices):
    """Actions recorded in the audit trail."""
    LOGIN = 'LOGIN', 'Login'
    LOGOUT = 'LOGOUT', 'Logout'
    REGISTER = 'REGISTER', 'Register'
    USER_APPROVED = 'USER_APPROVED', 'User approved'
    USER_REJECTED = 'USER_REJECTED', 'User rejected'
    CREATE = 'CREATE', 'Create'
    UPDATE = 'UPDATE', 'Update'
    DELETE = 'DELETE', 'Delete'
    STATUS_CHANGE = 'STATUS_CHANGE', 'Status change'
    FILE_UPLOAD = 'FILE_UPLOAD', 'File upload'
    FILE_DOWNLOAD = 'FILE_DOWNLOAD', 'File download'
    FILE_DELETE = 'FILE_DELETE', 'File delete'
    ALERT_SENT = 'ALERT_SENT', 'Alert sent'
    ALERT_READ = 'ALERT_READ', 'Alert read'


class AuditLog(models.Model):
    """
    Append-only audit trail for authentication events and changes to
    orders, files and alerts.

    old_value/new_value hold the scalar before/after for status changes;
    metadata carries everything else (changed fields, request context).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    action = models.CharField(max_length=20, choices=AuditActionChoices.choices)
    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=64)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text='User who performed the action (null for system actions)'
    )

    old_value = models.TextField(blank=True, null=True)
    new_value = models.TextField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)

    ip_address = models.CharField(max_length=64, blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True, null=True)

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    file = models.ForeignKey(
        'files.OrderFile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    alert = models.ForeignKey(
        'notifications.Alert',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )

    class Meta:
        db_table = 'audit_log'
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        indexes = [
            models.Index(fields=['created_at'], name='idx_audit_created_at'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['entity_type', 'entity_id'], name='idx_audit_entity'),
            models.Index(fields=['user'], name='idx_audit_user'),
            models.Index(fields=['order'], name='idx_audit_order'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        actor = self.user.email if self.user else 'system'
        return f"{self.action} on {self.entity_type}[{self.entity_id[:8]}] by {actor}"
