"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- A laboratory with one clinic, plus a second tenant for isolation checks
- One user and one authenticated API client per role
- An order factory
"""
import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.authz.models import DoctorAssistant, DoctorClinic, RoleChoices, User
from apps.labs.models import Clinic, Laboratory
from apps.orders.models import Order, OrderStatusChoices, Tooth
from apps.orders.order_numbers import generate_order_number


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    """Throttle counters live in the cache and would leak between tests."""
    cache.clear()
    yield
    cache.clear()


# ============================================================================
# Tenants
# ============================================================================

@pytest.fixture
def laboratory(db):
    return Laboratory.objects.create(name='Laboratorio Central', email='lab@test.com')


@pytest.fixture
def clinic(laboratory):
    return Clinic.objects.create(laboratory=laboratory, name='Smile Dental Clinic')


@pytest.fixture
def other_laboratory(db):
    return Laboratory.objects.create(name='Otro Laboratorio')


@pytest.fixture
def other_clinic(other_laboratory):
    return Clinic.objects.create(laboratory=other_laboratory, name='Otra Clinica')


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(email='admin@test.com', password='testpass123', name='Admin')


@pytest.fixture
def lab_admin(laboratory):
    return User.objects.create_user(
        email='labadmin@test.com',
        password='testpass123',
        name='Lab Admin',
        role=RoleChoices.LAB_ADMIN,
        laboratory=laboratory,
        is_approved=True,
    )


@pytest.fixture
def lab_collaborator(laboratory):
    return User.objects.create_user(
        email='collab@test.com',
        password='testpass123',
        name='Lab Collaborator',
        role=RoleChoices.LAB_COLLABORATOR,
        laboratory=laboratory,
        is_approved=True,
    )


@pytest.fixture
def doctor(clinic):
    user = User.objects.create_user(
        email='doctor@test.com',
        password='testpass123',
        name='Dr. John Smith',
        role=RoleChoices.DOCTOR,
        active_clinic=clinic,
        is_approved=True,
    )
    DoctorClinic.objects.create(doctor=user, clinic=clinic, is_primary=True)
    return user


@pytest.fixture
def assistant(clinic, doctor):
    user = User.objects.create_user(
        email='assistant@test.com',
        password='testpass123',
        name='Assistant',
        role=RoleChoices.CLINIC_ASSISTANT,
        clinic=clinic,
        is_approved=True,
    )
    DoctorAssistant.objects.create(doctor=doctor, assistant=user)
    return user


@pytest.fixture
def clinic_admin(clinic):
    return User.objects.create_user(
        email='clinicadmin@test.com',
        password='testpass123',
        name='Clinic Admin',
        role=RoleChoices.CLINIC_ADMIN,
        clinic=clinic,
        is_approved=True,
    )


@pytest.fixture
def other_lab_admin(other_laboratory):
    return User.objects.create_user(
        email='otherlab@test.com',
        password='testpass123',
        name='Other Lab Admin',
        role=RoleChoices.LAB_ADMIN,
        laboratory=other_laboratory,
        is_approved=True,
    )


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def lab_admin_client(lab_admin):
    return _client_for(lab_admin)


@pytest.fixture
def lab_collaborator_client(lab_collaborator):
    return _client_for(lab_collaborator)


@pytest.fixture
def doctor_client(doctor):
    return _client_for(doctor)


@pytest.fixture
def assistant_client(assistant):
    return _client_for(assistant)


@pytest.fixture
def clinic_admin_client(clinic_admin):
    return _client_for(clinic_admin)


@pytest.fixture
def other_lab_admin_client(other_lab_admin):
    return _client_for(other_lab_admin)


# ============================================================================
# Orders
# ============================================================================

@pytest.fixture
def make_order(clinic, doctor):
    """
    Factory for orders created straight in the database.

    Usage: make_order(status=OrderStatusChoices.PENDING_REVIEW, teeth=['11'])
    """
    def _make(status=OrderStatusChoices.DRAFT, teeth=('11',), patient_name='Jane Doe', **fields):
        order_clinic = fields.pop('clinic', clinic)
        order_doctor = fields.pop('doctor', doctor)
        order = Order.objects.create(
            order_number=generate_order_number(order_clinic, patient_name),
            patient_name=patient_name,
            clinic=order_clinic,
            doctor=order_doctor,
            created_by=fields.pop('created_by', order_doctor),
            status=status,
            teeth_numbers=','.join(teeth),
            **fields
        )
        for number in teeth:
            Tooth.objects.create(order=order, tooth_number=number, material='Zirconia')
        return order

    return _make


@pytest.fixture
def draft_order(make_order):
    return make_order()


@pytest.fixture
def pending_order(make_order):
    return make_order(status=OrderStatusChoices.PENDING_REVIEW)
