from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'entity_type', 'entity_id', 'user', 'ip_address']
    list_filter = ['action', 'entity_type', 'created_at']
    search_fields = ['entity_id', 'user__email']
    readonly_fields = [
        'id', 'created_at', 'action', 'entity_type', 'entity_id', 'user',
        'old_value', 'new_value', 'metadata', 'ip_address', 'user_agent',
        'order', 'file', 'alert',
    ]

    def has_add_permission(self, request):
        # Audit logs should not be manually created
        return False

    def has_delete_permission(self, request, obj=None):
        # Audit logs should not be deleted
        return False
