from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import DoctorAssistant, DoctorClinic, User


class DoctorClinicInline(admin.TabularInline):
    model = DoctorClinic
    fk_name = 'doctor'
    extra = 0
    autocomplete_fields = ['clinic']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'is_approved', 'is_active', 'laboratory', 'clinic', 'created_at']
    list_filter = ['role', 'is_approved', 'is_active', 'is_staff']
    search_fields = ['email', 'name']  # Required for autocomplete_fields
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_login', 'approved_at', 'approved_by']
    autocomplete_fields = ['laboratory', 'clinic', 'active_clinic']
    inlines = [DoctorClinicInline]

    fieldsets = (
        (None, {'fields': ('id', 'email', 'password')}),
        ('Personal Info', {'fields': ('name', 'phone')}),
        ('Role', {'fields': ('role', 'laboratory', 'clinic', 'active_clinic')}),
        ('Approval', {'fields': ('is_approved', 'approved_at', 'approved_by')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'name', 'role', 'is_approved', 'is_active'),
        }),
    )

    ordering = ['email']


@admin.register(DoctorAssistant)
class DoctorAssistantAdmin(admin.ModelAdmin):
    list_display = ['assistant', 'doctor', 'created_at']
    search_fields = ['assistant__email', 'doctor__email']
    autocomplete_fields = ['assistant', 'doctor']
