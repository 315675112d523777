from django.contrib import admin
from .models import Clinic, Laboratory


@admin.register(Laboratory)
class LaboratoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'email']  # Required for autocomplete_fields
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ['name', 'laboratory', 'email', 'is_active', 'created_at']
    list_filter = ['is_active', 'laboratory']
    search_fields = ['name', 'email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['laboratory']
