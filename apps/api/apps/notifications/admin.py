from django.contrib import admin
from .models import Alert


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = ['receiver', 'order', 'status', 'created_at', 'read_at']
    list_filter = ['status']
    search_fields = ['receiver__email', 'order__order_number', 'message']
    readonly_fields = ['id', 'created_at']
    raw_id_fields = ['order', 'sender', 'receiver']
