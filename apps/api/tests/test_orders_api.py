"""
Tests for Orders API endpoints.

Endpoints tested:
- GET/POST /api/orders/
- GET/PATCH/DELETE /api/orders/{id}/

Business Rules:
- Clinic staff create orders; the doctor is resolved from the caller's role
- Orders are scoped per role (doctor: own, assistant: assigned doctors,
  clinic admin: clinic, lab staff: their laboratory, never drafts)
- Editing only while DRAFT or NEEDS_INFO, deleting only while DRAFT
"""
import uuid

import pytest

from apps.authz.models import DoctorClinic
from apps.core.models import AuditActionChoices, AuditLog
from apps.labs.models import Clinic
from apps.orders.models import Order, OrderStatusChoices


def _payload(**overrides):
    data = {
        'patient_name': 'John Doe',
        'description': 'Corona sobre 11',
        'teeth': [{'tooth_number': '11', 'material': 'Zirconia', 'restoration_type': 'corona'}],
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
class TestOrderCreate:
    """POST /api/orders/"""

    def test_doctor_creates_order_in_active_clinic(self, doctor_client, doctor, clinic):
        response = doctor_client.post('/api/orders/', _payload(), format='json')

        assert response.status_code == 201
        assert response.data['order_number'] == 'SMILE-JD-001'
        assert response.data['status'] == OrderStatusChoices.DRAFT
        assert response.data['clinic'] == clinic.id
        assert response.data['doctor']['id'] == str(doctor.id)
        assert response.data['teeth_numbers'] == '11'
        assert [t['tooth_number'] for t in response.data['teeth']] == ['11']

    def test_create_writes_audit(self, doctor_client, doctor):
        response = doctor_client.post('/api/orders/', _payload(), format='json')

        entry = AuditLog.objects.get(action=AuditActionChoices.CREATE, entity_type='Order')
        assert entry.entity_id == str(response.data['id'])
        assert entry.user == doctor
        assert entry.metadata['teeth_count'] == 1

    def test_order_numbers_increment_per_clinic(self, doctor_client):
        first = doctor_client.post('/api/orders/', _payload(), format='json')
        second = doctor_client.post('/api/orders/', _payload(patient_name='Ana Maria Ruiz'), format='json')

        assert first.data['order_number'] == 'SMILE-JD-001'
        assert second.data['order_number'] == 'SMILE-AMR-002'

    def test_clinics_sharing_a_code_get_distinct_numbers(self, doctor_client, doctor, clinic, laboratory):
        smile_care = Clinic.objects.create(laboratory=laboratory, name='Smile Care')
        DoctorClinic.objects.create(doctor=doctor, clinic=smile_care)

        first = doctor_client.post('/api/orders/', _payload(clinic_id=str(clinic.id)), format='json')
        second = doctor_client.post('/api/orders/', _payload(clinic_id=str(smile_care.id)), format='json')

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.data['order_number'] == 'SMILE-JD-001'
        assert second.data['order_number'] == 'SMILE-JD-002'
        assert second.data['clinic'] == smile_care.id

    def test_doctor_can_not_use_foreign_clinic(self, doctor_client, other_clinic):
        response = doctor_client.post(
            '/api/orders/', _payload(clinic_id=str(other_clinic.id)), format='json'
        )
        assert response.status_code == 403

    def test_assistant_creates_for_assigned_doctor(self, assistant_client, assistant, doctor):
        response = assistant_client.post(
            '/api/orders/', _payload(doctor_id=str(doctor.id)), format='json'
        )

        assert response.status_code == 201
        order = Order.objects.get(id=response.data['id'])
        assert order.doctor == doctor
        assert order.created_by == assistant

    def test_assistant_requires_doctor_id(self, assistant_client):
        response = assistant_client.post('/api/orders/', _payload(), format='json')

        assert response.status_code == 400
        assert 'doctor_id' in response.data['details']

    def test_assistant_refused_for_unassigned_doctor(self, assistant_client, clinic_admin):
        response = assistant_client.post(
            '/api/orders/', _payload(doctor_id=str(clinic_admin.id)), format='json'
        )
        assert response.status_code == 403

    def test_clinic_admin_creates_for_clinic_doctor(self, clinic_admin_client, doctor):
        response = clinic_admin_client.post(
            '/api/orders/', _payload(doctor_id=str(doctor.id)), format='json'
        )
        assert response.status_code == 201

    def test_lab_user_can_not_create(self, lab_admin_client):
        response = lab_admin_client.post('/api/orders/', _payload(), format='json')
        assert response.status_code == 403

    def test_admin_is_read_only(self, admin_client):
        response = admin_client.post('/api/orders/', _payload(), format='json')
        assert response.status_code == 403

    def test_invalid_tooth_number(self, doctor_client):
        response = doctor_client.post(
            '/api/orders/', _payload(teeth=[{'tooth_number': '19'}]), format='json'
        )
        assert response.status_code == 400

    def test_duplicate_teeth_rejected(self, doctor_client):
        response = doctor_client.post(
            '/api/orders/',
            _payload(teeth=[{'tooth_number': '11'}, {'tooth_number': '11'}]),
            format='json'
        )
        assert response.status_code == 400

    def test_create_and_submit(self, doctor_client, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            response = doctor_client.post('/api/orders/', _payload(submit=True), format='json')

        assert response.status_code == 201
        assert response.data['status'] == OrderStatusChoices.PENDING_REVIEW
        assert response.data['submitted_at'] is not None

    def test_create_and_submit_incomplete_is_rolled_back(self, doctor_client):
        response = doctor_client.post('/api/orders/', _payload(teeth=[], submit=True), format='json')

        assert response.status_code == 400
        assert 'teeth' in response.data['details']
        assert not Order.objects.exists()

    def test_unauthenticated(self, api_client):
        response = api_client.post('/api/orders/', _payload(), format='json')
        assert response.status_code == 401


@pytest.mark.django_db
class TestOrderList:
    """GET /api/orders/"""

    def test_doctor_sees_own_orders(self, doctor_client, make_order, clinic_admin):
        mine = make_order()
        response = doctor_client.get('/api/orders/')

        assert response.status_code == 200
        ids = [str(row['id']) for row in response.data['results']]
        assert ids == [str(mine.id)]

    def test_lab_does_not_see_drafts(self, lab_admin_client, make_order):
        make_order(status=OrderStatusChoices.DRAFT)
        submitted = make_order(status=OrderStatusChoices.PENDING_REVIEW)

        response = lab_admin_client.get('/api/orders/')

        assert response.status_code == 200
        assert [str(row['id']) for row in response.data['results']] == [str(submitted.id)]

    def test_other_lab_sees_nothing(self, other_lab_admin_client, make_order):
        make_order(status=OrderStatusChoices.PENDING_REVIEW)
        response = other_lab_admin_client.get('/api/orders/')
        assert response.data['count'] == 0

    def test_deleted_orders_hidden(self, doctor_client, make_order):
        from django.utils import timezone
        make_order(deleted_at=timezone.now())
        response = doctor_client.get('/api/orders/')
        assert response.data['count'] == 0

    def test_filters_and_counts(self, lab_admin_client, make_order):
        make_order(status=OrderStatusChoices.PENDING_REVIEW, is_urgent=True, teeth=('11', '12'))
        make_order(status=OrderStatusChoices.IN_PROGRESS, patient_name='Maria Lopez')

        urgent = lab_admin_client.get('/api/orders/?is_urgent=true')
        assert urgent.data['count'] == 1
        assert urgent.data['results'][0]['teeth_count'] == 2
        assert urgent.data['results'][0]['file_count'] == 0

        by_status = lab_admin_client.get('/api/orders/?status=IN_PROGRESS')
        assert by_status.data['count'] == 1

        search = lab_admin_client.get('/api/orders/?search=maria')
        assert search.data['count'] == 1

    def test_assistant_sees_assigned_doctor_orders(self, assistant_client, make_order):
        make_order()
        response = assistant_client.get('/api/orders/')
        assert response.data['count'] == 1

    def test_admin_sees_everything(self, admin_client, make_order):
        make_order()
        make_order(status=OrderStatusChoices.COMPLETED)
        response = admin_client.get('/api/orders/')
        assert response.data['count'] == 2


@pytest.mark.django_db
class TestOrderDetail:
    """GET /api/orders/{id}/"""

    def test_detail_includes_related(self, doctor_client, draft_order):
        response = doctor_client.get(f'/api/orders/{draft_order.id}/')

        assert response.status_code == 200
        assert response.data['order_number'] == draft_order.order_number
        assert len(response.data['teeth']) == 1
        assert response.data['files'] == []
        assert response.data['trials'] == []
        assert set(response.data['allowed_transitions']) == {
            OrderStatusChoices.PENDING_REVIEW, OrderStatusChoices.CANCELLED
        }

    def test_lab_gets_404_for_draft(self, lab_admin_client, draft_order):
        response = lab_admin_client.get(f'/api/orders/{draft_order.id}/')
        assert response.status_code == 404

    def test_foreign_lab_gets_403(self, other_lab_admin_client, pending_order):
        response = other_lab_admin_client.get(f'/api/orders/{pending_order.id}/')
        assert response.status_code == 403

    def test_unknown_and_malformed_ids(self, doctor_client):
        assert doctor_client.get(f'/api/orders/{uuid.uuid4()}/').status_code == 404
        assert doctor_client.get('/api/orders/not-a-uuid/').status_code == 404


@pytest.mark.django_db
class TestOrderUpdate:
    """PATCH /api/orders/{id}/"""

    def test_update_draft_replaces_teeth(self, doctor_client, draft_order):
        response = doctor_client.patch(
            f'/api/orders/{draft_order.id}/',
            {'notes': 'Color A2', 'teeth': [{'tooth_number': '21'}, {'tooth_number': '22'}]},
            format='json'
        )

        assert response.status_code == 200
        assert response.data['notes'] == 'Color A2'
        assert sorted(t['tooth_number'] for t in response.data['teeth']) == ['21', '22']
        assert response.data['teeth_numbers'] == '21,22'

    def test_update_audit_lists_changed_fields(self, doctor_client, draft_order):
        doctor_client.patch(f'/api/orders/{draft_order.id}/', {'notes': 'x'}, format='json')
        entry = AuditLog.objects.get(action=AuditActionChoices.UPDATE, entity_type='Order')
        assert entry.metadata['changed_fields'] == ['notes']

    def test_without_teeth_keeps_teeth(self, doctor_client, draft_order):
        doctor_client.patch(f'/api/orders/{draft_order.id}/', {'is_urgent': True}, format='json')
        assert draft_order.teeth.count() == 1

    def test_needs_info_is_editable(self, doctor_client, make_order):
        order = make_order(status=OrderStatusChoices.NEEDS_INFO)
        response = doctor_client.patch(f'/api/orders/{order.id}/', {'notes': 'ok'}, format='json')
        assert response.status_code == 200

    def test_submitted_order_is_locked(self, doctor_client, pending_order):
        response = doctor_client.patch(f'/api/orders/{pending_order.id}/', {'notes': 'x'}, format='json')
        assert response.status_code == 400

    def test_lab_can_not_edit(self, lab_admin_client, pending_order):
        response = lab_admin_client.patch(f'/api/orders/{pending_order.id}/', {'notes': 'x'}, format='json')
        assert response.status_code == 403


@pytest.mark.django_db
class TestOrderDelete:
    """DELETE /api/orders/{id}/"""

    def test_delete_draft_is_soft(self, doctor_client, draft_order):
        response = doctor_client.delete(f'/api/orders/{draft_order.id}/')

        assert response.status_code == 204
        draft_order.refresh_from_db()
        assert draft_order.deleted_at is not None
        assert AuditLog.objects.filter(action=AuditActionChoices.DELETE, entity_type='Order').exists()

    def test_submitted_order_can_not_be_deleted(self, doctor_client, pending_order):
        response = doctor_client.delete(f'/api/orders/{pending_order.id}/')
        assert response.status_code == 400

    def test_deleted_order_is_gone(self, doctor_client, draft_order):
        doctor_client.delete(f'/api/orders/{draft_order.id}/')
        assert doctor_client.get(f'/api/orders/{draft_order.id}/').status_code == 404
