"""
Orders URLs - Orders, status, comments, trials, analytics
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .access import UUID_PATTERN
from .views import DoctorTrialResponseView, LabAnalyticsView, LabTrialViewSet, OrderViewSet

router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')
router.register(
    rf'lab-admin/orders/(?P<order_id>{UUID_PATTERN})/trials',
    LabTrialViewSet,
    basename='lab-order-trial'
)

urlpatterns = [
    path('lab-admin/analytics/', LabAnalyticsView.as_view(), name='lab-analytics'),
    path(
        'doctor/orders/<uuid:order_id>/trials/<uuid:trial_id>/respond/',
        DoctorTrialResponseView.as_view(),
        name='doctor-trial-respond'
    ),
    path('', include(router.urls)),
]
