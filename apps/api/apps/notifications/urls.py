"""
Notifications URLs - Alerts and live event streams
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import AlertEventsView, AlertViewSet, LabOrderEventsView

router = DefaultRouter()
router.register(r'alerts', AlertViewSet, basename='alert')

urlpatterns = [
    # SSE (before the router so "events" is not taken for an alert id)
    path('alerts/events/', AlertEventsView.as_view(), name='alert-events'),
    path('lab/order-events/', LabOrderEventsView.as_view(), name='lab-order-events'),
    path('', include(router.urls)),
]
