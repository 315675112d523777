"""
Orders service layer - Business logic for order operations.

- Creation with collision-safe order numbers
- Editing and teeth replacement while editable
- Submit validation by case type
- Status changes through the state machine (row locked)
- Comments and trial records
"""
import time

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.authz.models import DoctorAssistant, DoctorClinic, RoleChoices, User
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.core.observability import get_sanitized_logger, log_domain_event, metrics
from apps.core.observability.events import log_order_transition
from apps.notifications.services import (
    notify_needs_info,
    notify_trial_recorded,
    notify_trial_response,
    publish_new_order,
)
from apps.notifications.tasks import send_order_submitted_emails
from apps.orders.access import OrderAccessError
from apps.orders.models import (
    CaseTypeChoices,
    Order,
    OrderComment,
    OrderStatusChoices,
    Tooth,
    TrialRecord,
)
from apps.orders.order_numbers import generate_order_number
from apps.orders.state_machine import (
    can_user_transition,
    get_timestamp_updates,
    get_transition_error_message,
)

logger = get_sanitized_logger(__name__)


MAX_ORDER_NUMBER_ATTEMPTS = 3
ORDER_NUMBER_RETRY_DELAY = 0.05  # seconds, multiplied by the attempt number

# Case types whose submission does not need teeth
TEETH_OPTIONAL_CASE_TYPES = (
    CaseTypeChoices.GARANTIA,
    CaseTypeChoices.REPARACION_AJUSTE,
    CaseTypeChoices.REGRESO_PRUEBA,
)


class OrderValidationError(Exception):
    """Order data or order state does not allow the operation (HTTP 400)."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransitionError(Exception):
    """Status change refused by the state machine."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ============================================================================
# Ownership
# ============================================================================

def resolve_order_owner(user, clinic_id=None, doctor_id=None):
    """
    Work out the clinic and doctor a new order belongs to.

    - DOCTOR: clinic_id if it is one of the doctor's clinics, else the
      active clinic (falling back to the primary membership)
    - CLINIC_ASSISTANT: doctor_id must be a doctor the assistant is assigned to
    - CLINIC_ADMIN: doctor_id must be a doctor of the admin's clinic

    Returns:
        (clinic, doctor)

    Raises:
        OrderValidationError: required ids missing
        OrderAccessError: clinic or doctor outside the caller's reach
    """
    if user.role == RoleChoices.DOCTOR:
        memberships = DoctorClinic.objects.filter(doctor=user).select_related('clinic')
        if clinic_id:
            membership = memberships.filter(clinic_id=clinic_id).first()
            if membership is None:
                raise OrderAccessError('No perteneces a esta clínica', 403)
            return membership.clinic, user
        if user.active_clinic_id:
            return user.active_clinic, user
        membership = memberships.order_by('-is_primary', 'created_at').first()
        if membership is None:
            raise OrderValidationError('No tienes una clínica asignada')
        return membership.clinic, user

    if user.clinic_id is None:
        raise OrderValidationError('No tienes una clínica asignada')
    if not doctor_id:
        raise OrderValidationError(
            'Debe indicar el doctor de la orden',
            details={'doctor_id': 'Este campo es obligatorio'}
        )

    if user.role == RoleChoices.CLINIC_ASSISTANT:
        link = DoctorAssistant.objects.filter(
            assistant=user, doctor_id=doctor_id
        ).select_related('doctor').first()
        if link is None:
            raise OrderAccessError('No estás asignado a este doctor', 403)
        return user.clinic, link.doctor

    if user.role == RoleChoices.CLINIC_ADMIN:
        doctor = User.objects.filter(
            id=doctor_id,
            role=RoleChoices.DOCTOR,
            doctor_clinics__clinic_id=user.clinic_id,
        ).first()
        if doctor is None:
            raise OrderAccessError('El doctor no pertenece a tu clínica', 403)
        return user.clinic, doctor

    raise OrderAccessError('No autorizado', 403)


# ============================================================================
# Create / update / delete
# ============================================================================

def _replace_teeth(order, teeth):
    """Delete teeth not listed, upsert the rest. Returns the tooth numbers."""
    numbers = [tooth['tooth_number'] for tooth in teeth]
    order.teeth.exclude(tooth_number__in=numbers).delete()
    for tooth in teeth:
        values = dict(tooth)
        number = values.pop('tooth_number')
        Tooth.objects.update_or_create(order=order, tooth_number=number, defaults=values)
    return numbers


def create_order(user, clinic, doctor, data, teeth=None, request=None):
    """
    Create an order with its teeth.

    The order number is the first free one from the clinic's order count + 1.
    Two concurrent creations can still pick the same one; the unique
    constraint catches that and the creation is retried with a fresh number.

    Args:
        user: Creating user
        clinic / doctor: Owners, see resolve_order_owner
        data: Validated order fields
        teeth: List of validated tooth dicts
        request: For the audit entry

    Returns:
        Order instance
    """
    teeth = teeth or []
    data = dict(data)
    if teeth and not data.get('teeth_numbers'):
        data['teeth_numbers'] = ','.join(tooth['tooth_number'] for tooth in teeth)

    for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
        order_number = generate_order_number(clinic, data.get('patient_name', ''))
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    order_number=order_number,
                    clinic=clinic,
                    doctor=doctor,
                    created_by=user,
                    **data
                )
                _replace_teeth(order, teeth)
            break
        except IntegrityError:
            collided = Order.objects.filter(order_number=order_number).exists()
            if not collided or attempt == MAX_ORDER_NUMBER_ATTEMPTS:
                raise
            metrics.order_number_collisions_total.inc()
            logger.warning(
                'Order number collision, retrying',
                extra={
                    'event': 'order_number_collision',
                    'order_number': order_number,
                    'attempt': attempt,
                }
            )
            time.sleep(ORDER_NUMBER_RETRY_DELAY * attempt)

    log_audit(
        AuditActionChoices.CREATE,
        'Order',
        order.id,
        user=user,
        metadata={
            'order_number': order.order_number,
            'case_type': order.case_type,
            'teeth_count': len(teeth),
        },
        order=order,
        request=request,
    )
    metrics.orders_created_total.labels(case_type=order.case_type).inc()
    log_domain_event(
        'order_created',
        entity_type='Order',
        entity_id=str(order.id),
        entity_ids={'clinic_id': str(clinic.id), 'doctor_id': str(doctor.id)},
        order_number=order.order_number,
    )
    return order


@transaction.atomic
def update_order(order, user, data, teeth=None, request=None):
    """
    Update an editable order (DRAFT or NEEDS_INFO).

    teeth=None leaves the teeth alone; a list replaces them.

    Raises:
        OrderValidationError: order is not editable
    """
    if not order.is_editable:
        raise OrderValidationError(
            'Solo se pueden editar órdenes en borrador o que requieren información'
        )

    changed = []
    for field, value in data.items():
        if getattr(order, field) != value:
            setattr(order, field, value)
            changed.append(field)

    if teeth is not None:
        numbers = ','.join(_replace_teeth(order, teeth))
        changed.append('teeth')
        if 'teeth_numbers' not in data and order.teeth_numbers != numbers:
            order.teeth_numbers = numbers
            changed.append('teeth_numbers')

    saved_fields = [field for field in changed if field != 'teeth']
    if saved_fields:
        order.save(update_fields=saved_fields + ['updated_at'])

    log_audit(
        AuditActionChoices.UPDATE,
        'Order',
        order.id,
        user=user,
        metadata={'changed_fields': changed},
        order=order,
        request=request,
    )
    return order


def delete_order(order, user, request=None):
    """Soft delete a draft."""
    if order.status != OrderStatusChoices.DRAFT:
        raise OrderValidationError('Solo se pueden eliminar órdenes en borrador')

    order.deleted_at = timezone.now()
    order.save(update_fields=['deleted_at', 'updated_at'])
    log_audit(
        AuditActionChoices.DELETE,
        'Order',
        order.id,
        user=user,
        metadata={'order_number': order.order_number},
        order=order,
        request=request,
    )


# ============================================================================
# Status changes
# ============================================================================

def validate_for_submit(order):
    """
    Check an order is complete enough to send to the lab.

    - garantia: warranty_reason required
    - reparacion_ajuste / regreso_prueba: teeth optional
    - anything else: patient name and at least one tooth

    Raises:
        OrderValidationError: with per-field details
    """
    details = {}
    if not (order.patient_name or '').strip():
        details['patient_name'] = 'El nombre del paciente es obligatorio'
    if order.case_type == CaseTypeChoices.GARANTIA and not (order.warranty_reason or '').strip():
        details['warranty_reason'] = 'El motivo de garantía es obligatorio'
    if order.case_type not in TEETH_OPTIONAL_CASE_TYPES and not order.teeth.exists():
        details['teeth'] = 'Debe especificar al menos un diente'

    if details:
        raise OrderValidationError('La orden está incompleta', details=details)


def change_status(order, user, new_status, comment=None, request=None, audit_metadata=None):
    """
    Move an order to new_status.

    The row is locked for the duration so concurrent changes serialize.
    Side effects, all inside the same transaction:
    - timestamp fields for the new status
    - STATUS_CHANGE audit entry
    - optional comment
    - NEEDS_INFO: alerts for the doctor and their assistants
    - PENDING_REVIEW: new-order event and submit emails (after commit)

    Raises:
        TransitionError: edge missing or not allowed for the user's role
    """
    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        old_status = locked.status

        if not can_user_transition(user.role, old_status, new_status):
            metrics.order_transitions_total.labels(
                from_status=old_status, to_status=new_status, result='denied'
            ).inc()
            log_order_transition(locked, old_status, new_status, result='denied',
                                 user_role=user.role)
            raise TransitionError(get_transition_error_message(user.role, old_status, new_status))

        updates = get_timestamp_updates(new_status)
        locked.status = new_status
        for field, value in updates.items():
            setattr(locked, field, value)
        locked.save(update_fields=['status', 'updated_at', *updates])

        metadata = {'from_status': old_status, 'to_status': new_status}
        metadata.update(audit_metadata or {})
        log_audit(
            AuditActionChoices.STATUS_CHANGE,
            'Order',
            locked.id,
            user=user,
            old_value=old_status,
            new_value=new_status,
            metadata=metadata,
            order=locked,
            request=request,
        )

        if comment:
            OrderComment.objects.create(order=locked, author=user, content=comment)

        if new_status == OrderStatusChoices.NEEDS_INFO:
            notify_needs_info(locked, user, request=request)
        elif new_status == OrderStatusChoices.PENDING_REVIEW:
            publish_new_order(locked)
            order_id = str(locked.id)
            transaction.on_commit(lambda: send_order_submitted_emails.delay(order_id))

    metrics.order_transitions_total.labels(
        from_status=old_status, to_status=new_status, result='success'
    ).inc()
    log_order_transition(locked, old_status, new_status, user_role=user.role)
    return locked


def submit_order(order, user, request=None):
    """
    Validate and send an order to the lab (-> PENDING_REVIEW).

    Raises:
        OrderValidationError: incomplete order
        TransitionError: order is not in a submittable status
    """
    validate_for_submit(order)
    return change_status(
        order,
        user,
        OrderStatusChoices.PENDING_REVIEW,
        request=request,
        audit_metadata={
            'ai_generated': bool(order.ai_prompt),
            'ai_prompt_length': len(order.ai_prompt or ''),
            'teeth_count': order.teeth.count(),
            'case_type': order.case_type,
        },
    )


# ============================================================================
# Comments
# ============================================================================

def add_comment(order, user, content, is_internal=False, request=None):
    """
    Add a comment to an order. Internal comments are for lab users only.

    Raises:
        OrderAccessError: a non-lab user asked for an internal comment
    """
    if is_internal and not user.is_lab_user:
        raise OrderAccessError('Solo el laboratorio puede crear comentarios internos', 403)

    comment = OrderComment.objects.create(
        order=order,
        author=user,
        content=content,
        is_internal=is_internal,
    )
    log_audit(
        AuditActionChoices.CREATE,
        'OrderComment',
        comment.id,
        user=user,
        metadata={'is_internal': is_internal},
        order=order,
        request=request,
    )
    return comment


# ============================================================================
# Trial records
# ============================================================================

@transaction.atomic
def record_trial(order, user, trial_type, note='', completed=False, request=None):
    """
    Register a trial for an order.

    A pending (not completed) trial alerts the doctor to evaluate it.
    """
    trial = TrialRecord.objects.create(
        order=order,
        trial_type=trial_type,
        note=note or '',
        completed=completed,
        recorded_at=timezone.now() if completed else None,
        created_by=user,
    )
    log_audit(
        AuditActionChoices.CREATE,
        'TrialRecord',
        trial.id,
        user=user,
        metadata={'trial_type': trial_type, 'completed': completed},
        order=order,
        request=request,
    )
    if not completed:
        notify_trial_recorded(trial, user, request=request)
    return trial


def update_trial(trial, user, completed, note=None, request=None):
    """Mark a trial completed or pending again; recorded_at follows completed."""
    trial.completed = completed
    if completed:
        trial.recorded_at = trial.recorded_at or timezone.now()
    else:
        trial.recorded_at = None
    if note is not None:
        trial.note = note
    trial.save(update_fields=['completed', 'recorded_at', 'note', 'updated_at'])
    log_audit(
        AuditActionChoices.UPDATE,
        'TrialRecord',
        trial.id,
        user=user,
        metadata={'completed': completed},
        order=trial.order,
        request=request,
    )
    return trial


def delete_trial(trial, user, request=None):
    trial_id = trial.id
    order = trial.order
    trial.delete()
    log_audit(
        AuditActionChoices.DELETE,
        'TrialRecord',
        trial_id,
        user=user,
        order=order,
        request=request,
    )


@transaction.atomic
def respond_to_trial(trial, doctor, approved, client_notes='', request=None):
    """
    Record the doctor's evaluation of a pending trial and alert the lab admins.

    Raises:
        OrderValidationError: trial already evaluated, or rejected without notes
    """
    if trial.completed:
        raise OrderValidationError('Esta prueba ya fue evaluada anteriormente')
    client_notes = (client_notes or '').strip()
    if not approved and not client_notes:
        raise OrderValidationError(
            'Debes indicar el motivo del rechazo',
            details={'client_notes': 'Este campo es obligatorio al rechazar'}
        )

    now = timezone.now()
    trial.completed = True
    trial.approved = approved
    trial.client_notes = client_notes
    trial.responded_at = now
    trial.recorded_at = now
    trial.save(update_fields=[
        'completed', 'approved', 'client_notes', 'responded_at', 'recorded_at', 'updated_at'
    ])
    log_audit(
        AuditActionChoices.UPDATE,
        'TrialRecord',
        trial.id,
        user=doctor,
        metadata={'action': 'TRIAL_RESPONSE', 'approved': approved},
        order=trial.order,
        request=request,
    )
    notify_trial_response(trial, doctor, request=request)
    return trial
