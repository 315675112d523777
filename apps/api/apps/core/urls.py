"""
Core API URLs - Cron triggers, diagnostics.
"""
from django.urls import path

from .views import CronCleanupView, DiagnosticsView

urlpatterns = [
    # Scheduled cleanup (CRON_SECRET)
    path('cron/cleanup-orders/', CronCleanupView.as_view(), name='cron-cleanup-orders'),

    # System diagnostics (ADMIN only)
    path('ops/diagnostics/', DiagnosticsView.as_view(), name='diagnostics'),
]
