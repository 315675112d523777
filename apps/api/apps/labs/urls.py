"""
Labs URLs - Laboratory profile and clinics (LAB_ADMIN)
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ClinicViewSet, LaboratoryView

router = DefaultRouter()
router.register(r'lab-admin/clinics', ClinicViewSet, basename='lab-clinic')

urlpatterns = [
    path('lab-admin/laboratory/', LaboratoryView.as_view(), name='lab-laboratory'),
    path('', include(router.urls)),
]
