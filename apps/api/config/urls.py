"""
URL configuration for LabWise project.
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from apps.core.observability.health import HealthzView, ReadyzView
from apps.core.observability.metrics import metrics_view

urlpatterns = [
    # Health checks and metrics (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),
    path('metrics', metrics_view, name='metrics'),

    # Admin
    path('admin/', admin.site.urls),

    # API (role checks per view)
    path('api/', include('apps.core.urls')),  # Cron, diagnostics
    path('api/', include('apps.authz.urls')),  # Auth, profile, users, memberships
    path('api/', include('apps.labs.urls')),  # Laboratory, clinics
    path('api/', include('apps.files.urls')),  # Order files
    path('api/', include('apps.orders.urls')),  # Orders, trials, analytics
    path('api/', include('apps.notifications.urls')),  # Alerts, SSE

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
