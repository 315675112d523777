"""
Authz URLs - Authentication, profile, user administration, memberships
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import LoginView, LogoutView, ProfileView, RegisterView
from .views_users import (
    ActiveClinicView,
    AdminUserViewSet,
    AssistantDoctorListView,
    ClinicAssistantViewSet,
    ClinicDoctorListView,
    ClinicStatsView,
    DoctorClinicsView,
    LabUserViewSet,
)

router = DefaultRouter()
router.register(r'admin/users', AdminUserViewSet, basename='admin-user')
router.register(r'lab-admin/users', LabUserViewSet, basename='lab-user')
router.register(r'clinic-admin/assistants', ClinicAssistantViewSet, basename='clinic-assistant')
router.register(r'assistant/doctors', AssistantDoctorListView, basename='assistant-doctor')

urlpatterns = [
    # JWT Authentication
    path('auth/register/', RegisterView.as_view(), name='register'),
    path('auth/token/', LoginView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', LogoutView.as_view(), name='logout'),

    path('user/profile/', ProfileView.as_view(), name='profile'),

    # Doctor memberships
    path('doctor/clinics/', DoctorClinicsView.as_view(), name='doctor-clinics'),
    path('doctor/active-clinic/', ActiveClinicView.as_view(), name='doctor-active-clinic'),

    # Clinic admin
    path('clinic-admin/doctors/', ClinicDoctorListView.as_view(), name='clinic-doctors'),
    path('clinic-admin/stats/', ClinicStatsView.as_view(), name='clinic-stats'),

    path('', include(router.urls)),
]
