"""
Tests for authentication and own profile endpoints.

Endpoints tested:
- POST /api/auth/register/
- POST /api/auth/token/
- POST /api/auth/token/refresh/
- POST /api/auth/logout/
- GET/PATCH /api/user/profile/

Business Rules:
- Self-registration creates an unapproved clinic-side account
- Registration answers the same whether or not the email exists
- Unapproved and inactive accounts can not log in
- Logout blacklists the refresh token
- Register and login are rate limited per IP
"""
from unittest.mock import patch

import pytest
from rest_framework_simplejwt.tokens import RefreshToken

from apps.authz.models import RoleChoices, User
from apps.authz.views import REGISTER_MESSAGE, LoginThrottle, RegisterThrottle
from apps.core.models import AuditActionChoices, AuditLog


@pytest.mark.django_db
class TestRegister:
    """POST /api/auth/register/"""

    def test_register_creates_unapproved_user(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'email': 'New.Doctor@Example.com',
            'password': 'secret-pass',
            'name': 'Dra. Nueva',
        }, format='json')

        assert response.status_code == 201
        assert response.data == {'message': REGISTER_MESSAGE}
        user = User.objects.get(email='new.doctor@example.com')
        assert user.role == RoleChoices.DOCTOR
        assert user.is_approved is False
        assert AuditLog.objects.filter(action=AuditActionChoices.REGISTER, entity_id=str(user.id)).exists()

    def test_existing_email_gets_same_answer(self, api_client, doctor):
        response = api_client.post('/api/auth/register/', {
            'email': 'doctor@test.com',
            'password': 'secret-pass',
            'name': 'Impostor',
        }, format='json')

        assert response.status_code == 201
        assert response.data == {'message': REGISTER_MESSAGE}
        assert User.objects.filter(email__iexact='doctor@test.com').count() == 1

    def test_lab_roles_can_not_self_register(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'email': 'lab@example.com',
            'password': 'secret-pass',
            'name': 'Lab',
            'role': 'LAB_ADMIN',
        }, format='json')
        assert response.status_code == 400

    def test_short_password(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'email': 'short@example.com',
            'password': 'abc',
            'name': 'Short',
        }, format='json')
        assert response.status_code == 400

    @patch.object(RegisterThrottle, 'rate', '1/hour')
    def test_register_is_throttled(self, api_client):
        payload = {'email': 'first@example.com', 'password': 'secret-pass', 'name': 'First'}
        assert api_client.post('/api/auth/register/', payload, format='json').status_code == 201

        payload['email'] = 'second@example.com'
        response = api_client.post('/api/auth/register/', payload, format='json')
        assert response.status_code == 429
        assert not User.objects.filter(email='second@example.com').exists()


@pytest.mark.django_db
class TestLogin:
    """POST /api/auth/token/"""

    def test_login_returns_tokens_and_user(self, api_client, doctor):
        response = api_client.post('/api/auth/token/', {
            'email': 'doctor@test.com',
            'password': 'testpass123',
        }, format='json')

        assert response.status_code == 200
        assert 'access' in response.data
        assert 'refresh' in response.data
        assert response.data['user']['role'] == RoleChoices.DOCTOR
        assert AuditLog.objects.filter(action=AuditActionChoices.LOGIN, user=doctor).exists()

    def test_token_carries_role(self, api_client, lab_admin):
        response = api_client.post('/api/auth/token/', {
            'email': 'labadmin@test.com',
            'password': 'testpass123',
        }, format='json')

        refresh = RefreshToken(response.data['refresh'])
        assert refresh['role'] == RoleChoices.LAB_ADMIN

    def test_unapproved_user_refused(self, api_client, clinic):
        User.objects.create_user(email='pending@test.com', password='testpass123', name='Pending')

        response = api_client.post('/api/auth/token/', {
            'email': 'pending@test.com',
            'password': 'testpass123',
        }, format='json')

        assert response.status_code == 401
        assert response.data['detail'] == 'Tu cuenta está pendiente de aprobación'

    def test_wrong_password(self, api_client, doctor):
        response = api_client.post('/api/auth/token/', {
            'email': 'doctor@test.com',
            'password': 'wrong-password',
        }, format='json')
        assert response.status_code == 401

    def test_inactive_user_refused(self, api_client, doctor):
        doctor.is_active = False
        doctor.save()

        response = api_client.post('/api/auth/token/', {
            'email': 'doctor@test.com',
            'password': 'testpass123',
        }, format='json')
        assert response.status_code == 401

    def test_refresh(self, api_client, doctor):
        refresh = RefreshToken.for_user(doctor)
        response = api_client.post('/api/auth/token/refresh/', {'refresh': str(refresh)}, format='json')

        assert response.status_code == 200
        assert 'access' in response.data

    def test_bearer_token_authenticates(self, api_client, doctor):
        access = RefreshToken.for_user(doctor).access_token
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')

        response = api_client.get('/api/user/profile/')
        assert response.status_code == 200

    @patch.object(LoginThrottle, 'rate', '2/min')
    def test_login_is_throttled(self, api_client, doctor):
        payload = {'email': 'doctor@test.com', 'password': 'wrong-pass'}
        for _ in range(2):
            assert api_client.post('/api/auth/token/', payload, format='json').status_code == 401

        response = api_client.post('/api/auth/token/', payload, format='json')
        assert response.status_code == 429


@pytest.mark.django_db
class TestLogout:
    """POST /api/auth/logout/"""

    def test_logout_blacklists_refresh(self, doctor_client, doctor):
        refresh = str(RefreshToken.for_user(doctor))

        response = doctor_client.post('/api/auth/logout/', {'refresh': refresh}, format='json')
        assert response.status_code == 204

        again = doctor_client.post('/api/auth/logout/', {'refresh': refresh}, format='json')
        assert again.status_code == 400

    def test_garbage_token(self, doctor_client):
        response = doctor_client.post('/api/auth/logout/', {'refresh': 'not-a-token'}, format='json')

        assert response.status_code == 400
        assert response.data['error'] == 'Token inválido o expirado'

    def test_requires_authentication(self, api_client):
        response = api_client.post('/api/auth/logout/', {'refresh': 'x'}, format='json')
        assert response.status_code == 401


@pytest.mark.django_db
class TestProfile:
    """GET/PATCH /api/user/profile/"""

    def test_get_profile(self, doctor_client, doctor, clinic):
        response = doctor_client.get('/api/user/profile/')

        assert response.status_code == 200
        assert response.data['email'] == 'doctor@test.com'
        assert response.data['role'] == RoleChoices.DOCTOR
        assert response.data['active_clinic_name'] == 'Smile Dental Clinic'
        assert response.data['laboratory_name'] is None

    def test_update_name(self, doctor_client, doctor):
        response = doctor_client.patch('/api/user/profile/', {'name': 'Dr. J. Smith'}, format='json')

        assert response.status_code == 200
        assert response.data['name'] == 'Dr. J. Smith'
        entry = AuditLog.objects.get(action=AuditActionChoices.UPDATE, entity_type='User')
        assert entry.metadata['changed_fields'] == ['name']

    def test_role_is_read_only(self, doctor_client, doctor):
        doctor_client.patch('/api/user/profile/', {'role': 'ADMIN'}, format='json')
        doctor.refresh_from_db()
        assert doctor.role == RoleChoices.DOCTOR

    def test_change_password(self, doctor_client, doctor):
        response = doctor_client.patch('/api/user/profile/', {
            'current_password': 'testpass123',
            'new_password': 'brand-new-pass',
        }, format='json')

        assert response.status_code == 200
        doctor.refresh_from_db()
        assert doctor.check_password('brand-new-pass')
        entry = AuditLog.objects.get(action=AuditActionChoices.UPDATE, entity_type='User')
        assert entry.metadata['changed_fields'] == ['password']

    def test_change_password_needs_current(self, doctor_client):
        response = doctor_client.patch('/api/user/profile/', {'new_password': 'brand-new-pass'}, format='json')

        assert response.status_code == 400
        assert 'current_password' in response.data

    def test_wrong_current_password(self, doctor_client):
        response = doctor_client.patch('/api/user/profile/', {
            'current_password': 'nope-nope',
            'new_password': 'brand-new-pass',
        }, format='json')
        assert response.status_code == 400
