"""
Role-based permissions.

Every user has exactly one role (User.role). Permission classes declare
the roles they admit; object-level tenant checks live in the views and in
apps.orders.access.
"""
from rest_framework import permissions

from apps.authz.models import CLINIC_ROLES, LAB_ROLES, RoleChoices
from apps.core.observability.correlation import bind_user


class RolePermission(permissions.BasePermission):
    """
    Admit authenticated, active users whose role is in allowed_roles.

    An empty allowed_roles admits any authenticated user.
    """
    allowed_roles = frozenset()

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated or not user.is_active:
            return False
        bind_user(user)
        if not self.allowed_roles:
            return True
        return user.role in self.allowed_roles


class IsAuthenticatedUser(RolePermission):
    """Any active user; binds the user to the logging context."""
    pass


class IsAdmin(RolePermission):
    """Platform administrators (registration approval)."""
    allowed_roles = frozenset({RoleChoices.ADMIN})


class IsLabAdmin(RolePermission):
    allowed_roles = frozenset({RoleChoices.LAB_ADMIN})


class IsLabStaff(RolePermission):
    """Lab admins and collaborators."""
    allowed_roles = LAB_ROLES


class IsClinicAdmin(RolePermission):
    allowed_roles = frozenset({RoleChoices.CLINIC_ADMIN})


class IsDoctor(RolePermission):
    allowed_roles = frozenset({RoleChoices.DOCTOR})


class IsClinicAssistant(RolePermission):
    allowed_roles = frozenset({RoleChoices.CLINIC_ASSISTANT})


class IsClinicStaff(RolePermission):
    """Doctors, assistants and clinic admins."""
    allowed_roles = CLINIC_ROLES


class OrderParticipantPermission(RolePermission):
    """
    Roles that take part in orders.

    - Lab staff and clinic staff: read; writes are narrowed per action
    - ADMIN: read-only oversight
    """
    allowed_roles = LAB_ROLES | CLINIC_ROLES | {RoleChoices.ADMIN}

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        if request.user.role == RoleChoices.ADMIN:
            return request.method in permissions.SAFE_METHODS
        return True
