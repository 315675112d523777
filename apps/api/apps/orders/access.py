"""
Order tenancy rules: who may see which orders.
"""
from django.core.exceptions import ValidationError
from django.db.models import Q

from apps.authz.models import DoctorAssistant, RoleChoices
from apps.orders.models import Order, OrderStatusChoices

# Router lookup for UUID primary keys; anything else 404s before the view
UUID_PATTERN = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'


class OrderAccessError(Exception):
    """Access to an order was refused; status_code is 403 or 404."""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def scope_orders_for_user(user, queryset=None):
    """
    Restrict a queryset to the orders the user may see.

    - ADMIN: everything
    - LAB_ADMIN / LAB_COLLABORATOR: their laboratory's clinics, drafts excluded
    - DOCTOR: own orders
    - CLINIC_ASSISTANT: orders of assigned doctors in the assistant's clinic
    - CLINIC_ADMIN: their clinic
    Soft-deleted orders are always excluded.
    """
    if queryset is None:
        queryset = Order.objects.all()
    queryset = queryset.filter(deleted_at__isnull=True)

    role = user.role
    if role == RoleChoices.ADMIN:
        return queryset
    if role in (RoleChoices.LAB_ADMIN, RoleChoices.LAB_COLLABORATOR):
        return queryset.filter(
            clinic__laboratory_id=user.laboratory_id
        ).exclude(status=OrderStatusChoices.DRAFT)
    if role == RoleChoices.DOCTOR:
        return queryset.filter(doctor=user)
    if role == RoleChoices.CLINIC_ASSISTANT:
        doctor_ids = DoctorAssistant.objects.filter(
            assistant=user
        ).values_list('doctor_id', flat=True)
        return queryset.filter(Q(clinic_id=user.clinic_id) & Q(doctor_id__in=doctor_ids))
    if role == RoleChoices.CLINIC_ADMIN:
        return queryset.filter(clinic_id=user.clinic_id)
    return queryset.none()


def _has_access(user, order):
    role = user.role
    if role == RoleChoices.ADMIN:
        return True
    if role in (RoleChoices.LAB_ADMIN, RoleChoices.LAB_COLLABORATOR):
        return (
            user.laboratory_id is not None
            and order.clinic.laboratory_id == user.laboratory_id
        )
    if role == RoleChoices.DOCTOR:
        return order.doctor_id == user.id
    if role == RoleChoices.CLINIC_ASSISTANT:
        return (
            order.clinic_id == user.clinic_id
            and DoctorAssistant.objects.filter(doctor_id=order.doctor_id, assistant=user).exists()
        )
    if role == RoleChoices.CLINIC_ADMIN:
        return order.clinic_id == user.clinic_id
    return False


def check_order_access(user, order_id, queryset=None):
    """
    Load an order the user may access.

    Returns:
        Order

    Raises:
        OrderAccessError: 404 when missing, deleted or a draft seen by the lab;
        403 when it belongs to someone else
    """
    if queryset is None:
        queryset = Order.objects.select_related('clinic', 'doctor', 'created_by')
    try:
        order = queryset.get(id=order_id, deleted_at__isnull=True)
    except (Order.DoesNotExist, ValidationError):
        raise OrderAccessError('Orden no encontrada', 404)

    if user.is_lab_user and order.status == OrderStatusChoices.DRAFT:
        raise OrderAccessError('Orden no encontrada', 404)

    if not _has_access(user, order):
        raise OrderAccessError('No tienes acceso a esta orden', 403)

    return order
