"""
Tests for the order status state machine.

Business Rules:
- Only edges in the transition table exist
- Each role may take a subset of the edges
- COMPLETED and CANCELLED are terminal
- PENDING_REVIEW, MATERIALS_SENT and COMPLETED stamp their timestamp field
"""
from datetime import datetime, timezone as dt_timezone

import pytest

from apps.authz.models import RoleChoices
from apps.orders.models import OrderStatusChoices as S
from apps.orders.state_machine import (
    can_user_transition,
    get_timestamp_updates,
    get_transition_error_message,
    get_valid_next_states,
    get_valid_next_states_for_role,
    is_terminal_state,
    is_valid_transition,
)

CLINIC_ROLES = [RoleChoices.DOCTOR, RoleChoices.CLINIC_ASSISTANT, RoleChoices.CLINIC_ADMIN]


class TestTransitionTable:

    @pytest.mark.parametrize('current,new', [
        (S.DRAFT, S.PENDING_REVIEW),
        (S.DRAFT, S.CANCELLED),
        (S.PENDING_REVIEW, S.NEEDS_INFO),
        (S.MATERIALS_SENT, S.IN_PROGRESS),
        (S.NEEDS_INFO, S.PENDING_REVIEW),
        (S.IN_PROGRESS, S.COMPLETED),
    ])
    def test_existing_edges(self, current, new):
        assert is_valid_transition(current, new)

    @pytest.mark.parametrize('current,new', [
        (S.DRAFT, S.IN_PROGRESS),
        (S.DRAFT, S.COMPLETED),
        (S.IN_PROGRESS, S.PENDING_REVIEW),
        (S.MATERIALS_SENT, S.PENDING_REVIEW),
        (S.PENDING_REVIEW, S.MATERIALS_SENT),
        (S.COMPLETED, S.CANCELLED),
        (S.CANCELLED, S.DRAFT),
    ])
    def test_missing_edges(self, current, new):
        assert not is_valid_transition(current, new)

    def test_terminal_states_have_no_successors(self):
        for status in (S.COMPLETED, S.CANCELLED):
            assert is_terminal_state(status)
            assert get_valid_next_states(status) == []
        assert not is_terminal_state(S.IN_PROGRESS)


class TestRoleTransitions:

    @pytest.mark.parametrize('role', CLINIC_ROLES)
    def test_clinic_roles_submit_and_answer(self, role):
        assert can_user_transition(role, S.DRAFT, S.PENDING_REVIEW)
        assert can_user_transition(role, S.NEEDS_INFO, S.PENDING_REVIEW)
        assert not can_user_transition(role, S.PENDING_REVIEW, S.MATERIALS_SENT)

    @pytest.mark.parametrize('role', CLINIC_ROLES)
    def test_clinic_roles_can_not_do_lab_work(self, role):
        assert not can_user_transition(role, S.PENDING_REVIEW, S.IN_PROGRESS)
        assert not can_user_transition(role, S.IN_PROGRESS, S.COMPLETED)
        assert not can_user_transition(role, S.PENDING_REVIEW, S.CANCELLED)

    def test_lab_admin_moves_work_and_cancels(self):
        role = RoleChoices.LAB_ADMIN
        assert can_user_transition(role, S.PENDING_REVIEW, S.IN_PROGRESS)
        assert can_user_transition(role, S.MATERIALS_SENT, S.NEEDS_INFO)
        assert can_user_transition(role, S.IN_PROGRESS, S.COMPLETED)
        assert can_user_transition(role, S.IN_PROGRESS, S.CANCELLED)
        assert not can_user_transition(role, S.DRAFT, S.PENDING_REVIEW)

    def test_lab_collaborator_never_cancels(self):
        role = RoleChoices.LAB_COLLABORATOR
        assert can_user_transition(role, S.PENDING_REVIEW, S.IN_PROGRESS)
        assert can_user_transition(role, S.IN_PROGRESS, S.COMPLETED)
        for current in (S.PENDING_REVIEW, S.MATERIALS_SENT, S.NEEDS_INFO, S.IN_PROGRESS):
            assert not can_user_transition(role, current, S.CANCELLED)

    def test_admin_has_no_transitions(self):
        assert get_valid_next_states_for_role(RoleChoices.ADMIN, S.PENDING_REVIEW) == []

    def test_role_subset_of_table(self):
        for role in RoleChoices.values:
            for status in S.values:
                for target in get_valid_next_states_for_role(role, status):
                    assert is_valid_transition(status, target)


class TestTimestampsAndMessages:

    def test_timestamp_fields(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=dt_timezone.utc)
        assert get_timestamp_updates(S.PENDING_REVIEW, now) == {'submitted_at': now}
        assert get_timestamp_updates(S.MATERIALS_SENT, now) == {'materials_sent_at': now}
        assert get_timestamp_updates(S.COMPLETED, now) == {'completed_at': now}
        assert get_timestamp_updates(S.IN_PROGRESS, now) == {}

    def test_invalid_edge_message(self):
        message = get_transition_error_message(RoleChoices.LAB_ADMIN, S.DRAFT, S.COMPLETED)
        assert message == 'Invalid state transition from DRAFT to COMPLETED'

    def test_role_denied_message(self):
        message = get_transition_error_message(RoleChoices.DOCTOR, S.PENDING_REVIEW, S.IN_PROGRESS)
        assert "don't have permission" in message

    def test_allowed_has_no_message(self):
        assert get_transition_error_message(RoleChoices.DOCTOR, S.DRAFT, S.PENDING_REVIEW) == ''
