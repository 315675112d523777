from django.contrib import admin
from .models import Order, OrderComment, Tooth, TrialRecord


class ToothInline(admin.TabularInline):
    model = Tooth
    extra = 0


class TrialRecordInline(admin.TabularInline):
    model = TrialRecord
    extra = 0
    readonly_fields = ['created_by', 'responded_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'patient_name', 'status', 'case_type', 'is_urgent', 'clinic', 'doctor', 'created_at']
    list_filter = ['status', 'case_type', 'is_urgent', 'is_digital_scan']
    search_fields = ['order_number', 'patient_name', 'doctor__email']
    readonly_fields = ['id', 'order_number', 'submitted_at', 'materials_sent_at', 'completed_at', 'created_at', 'updated_at']
    raw_id_fields = ['clinic', 'doctor', 'created_by']
    inlines = [ToothInline, TrialRecordInline]


@admin.register(OrderComment)
class OrderCommentAdmin(admin.ModelAdmin):
    list_display = ['order', 'author', 'is_internal', 'created_at']
    list_filter = ['is_internal']
    search_fields = ['order__order_number', 'author__email']
    raw_id_fields = ['order', 'author']
