"""
Order status state machine.

Two static tables drive every status change:
- _ALLOWED_TRANSITIONS: the edges that exist at all
- _ROLE_TRANSITIONS: the subset of those edges each role may take

Flow:
    DRAFT -> PENDING_REVIEW (clinic submits)
    PENDING_REVIEW | MATERIALS_SENT -> IN_PROGRESS | NEEDS_INFO (lab)
    NEEDS_INFO -> PENDING_REVIEW (clinic answers)
    IN_PROGRESS -> COMPLETED (lab)
    any non-terminal -> CANCELLED (role dependent)
"""
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.orders.models import OrderStatusChoices as S


_ALLOWED_TRANSITIONS = {
    S.DRAFT: [S.PENDING_REVIEW, S.CANCELLED],
    S.PENDING_REVIEW: [S.IN_PROGRESS, S.NEEDS_INFO, S.CANCELLED],
    S.MATERIALS_SENT: [S.IN_PROGRESS, S.NEEDS_INFO, S.CANCELLED],
    S.NEEDS_INFO: [S.PENDING_REVIEW, S.CANCELLED],
    S.IN_PROGRESS: [S.COMPLETED, S.CANCELLED],
    S.COMPLETED: [],  # Terminal state
    S.CANCELLED: [],  # Terminal state
}

_CLINIC_TRANSITIONS = {
    S.DRAFT: [S.PENDING_REVIEW, S.CANCELLED],
    S.NEEDS_INFO: [S.PENDING_REVIEW],
}

_ROLE_TRANSITIONS = {
    RoleChoices.DOCTOR: _CLINIC_TRANSITIONS,
    RoleChoices.CLINIC_ASSISTANT: _CLINIC_TRANSITIONS,
    RoleChoices.CLINIC_ADMIN: _CLINIC_TRANSITIONS,
    RoleChoices.LAB_ADMIN: {
        S.PENDING_REVIEW: [S.IN_PROGRESS, S.NEEDS_INFO, S.CANCELLED],
        S.MATERIALS_SENT: [S.IN_PROGRESS, S.NEEDS_INFO, S.CANCELLED],
        S.NEEDS_INFO: [S.CANCELLED],
        S.IN_PROGRESS: [S.COMPLETED, S.CANCELLED],
    },
    # Collaborators move work forward but never cancel
    RoleChoices.LAB_COLLABORATOR: {
        S.PENDING_REVIEW: [S.IN_PROGRESS, S.NEEDS_INFO],
        S.MATERIALS_SENT: [S.IN_PROGRESS, S.NEEDS_INFO],
        S.IN_PROGRESS: [S.COMPLETED],
    },
}

_TIMESTAMP_FIELDS = {
    S.PENDING_REVIEW: 'submitted_at',
    S.MATERIALS_SENT: 'materials_sent_at',
    S.COMPLETED: 'completed_at',
}


def is_valid_transition(current_status, new_status):
    """Check if a transition exists regardless of role."""
    return new_status in _ALLOWED_TRANSITIONS.get(current_status, [])


def can_user_transition(role, current_status, new_status):
    """Check if a user with the given role can perform the transition."""
    if not is_valid_transition(current_status, new_status):
        return False
    return new_status in _ROLE_TRANSITIONS.get(role, {}).get(current_status, [])


def get_valid_next_states(current_status):
    return list(_ALLOWED_TRANSITIONS.get(current_status, []))


def get_valid_next_states_for_role(role, current_status):
    return list(_ROLE_TRANSITIONS.get(role, {}).get(current_status, []))


def is_terminal_state(status):
    return status in (S.COMPLETED, S.CANCELLED)


def get_timestamp_updates(new_status, now=None):
    """
    Timestamp fields to set when entering new_status.

    Returns:
        dict of field name -> datetime (empty for statuses without one)
    """
    field = _TIMESTAMP_FIELDS.get(new_status)
    if field is None:
        return {}
    return {field: now or timezone.now()}


def get_transition_error_message(role, current_status, new_status):
    """Human readable reason a transition is refused ('' when it is allowed)."""
    if not is_valid_transition(current_status, new_status):
        return f'Invalid state transition from {current_status} to {new_status}'
    if not can_user_transition(role, current_status, new_status):
        return f"You don't have permission to change status from {current_status} to {new_status}"
    return ''
