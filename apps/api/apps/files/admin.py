from django.contrib import admin
from .models import OrderFile


@admin.register(OrderFile)
class OrderFileAdmin(admin.ModelAdmin):
    list_display = ['original_name', 'order', 'category', 'file_size', 'is_processed', 'deleted_at', 'created_at']
    list_filter = ['category', 'is_processed']
    search_fields = ['original_name', 'storage_key', 'order__order_number']
    readonly_fields = ['id', 'storage_key', 'thumbnail_key', 'created_at', 'updated_at']
    raw_id_fields = ['order', 'uploaded_by']
