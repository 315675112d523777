"""
Core views - cron cleanup trigger, system diagnostics.
"""
import secrets

import redis
from django.conf import settings
from django.db import DatabaseError, connection
from django.utils import timezone
from minio.error import S3Error
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from urllib3.exceptions import HTTPError

from apps.authz.permissions import IsAdmin
from apps.core.observability import get_sanitized_logger
from apps.core.serializers import CleanupQuerySerializer, SystemDiagnosticsSerializer

logger = get_sanitized_logger(__name__)


def _cron_secret_matches(request):
    expected = settings.CRON_SECRET
    if not expected:
        logger.error('CRON_SECRET is not configured', extra={'event': 'cron_misconfigured'})
        return False

    auth_header = request.META.get('HTTP_AUTHORIZATION', '')
    scheme, _, token = auth_header.partition(' ')
    if scheme == 'Bearer' and token and secrets.compare_digest(token, expected):
        return True

    header_secret = request.META.get('HTTP_X_CRON_SECRET', '')
    return bool(header_secret) and secrets.compare_digest(header_secret, expected)


class CronCleanupView(APIView):
    """
    GET|POST /api/cron/cleanup-orders/?batch_size=100&dry_run=true

    Called by the scheduler with `Authorization: Bearer <CRON_SECRET>` or
    `X-Cron-Secret: <CRON_SECRET>`.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return self._run(request)

    def post(self, request):
        return self._run(request)

    def _run(self, request):
        from apps.orders.cleanup import cleanup_completed_orders

        if not _cron_secret_matches(request):
            logger.warning('Unauthorized cron request', extra={'event': 'cron_unauthorized'})
            return Response({'error': 'No autorizado'}, status=status.HTTP_401_UNAUTHORIZED)

        query = CleanupQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {'error': 'batch_size debe ser un número entre 1 y 500', 'details': query.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        result = cleanup_completed_orders(
            retention_days=settings.ORDER_RETENTION_DAYS,
            batch_size=query.validated_data['batch_size'],
            dry_run=query.validated_data['dry_run'],
        )
        errors = result.pop('errors')
        body = {'success': True, 'summary': result}
        if errors:
            body['errors'] = errors
        return Response(body, status=status.HTTP_200_OK)


class DiagnosticsView(APIView):
    """
    System diagnostics endpoint - ADMIN ONLY.

    GET /api/ops/diagnostics/

    Returns:
    - Service health status (database, Redis, MinIO)
    - Redis info
    - Orders bucket status
    - Row counts for the main tables
    """
    permission_classes = [IsAdmin]

    def get(self, request):
        diagnostics = {
            'timestamp': timezone.now(),
            'services': self._get_services_status(),
            'redis': self._get_redis_info(),
            'orders_bucket': self._get_orders_bucket(),
            'counts': self._get_counts(),
        }

        serializer = SystemDiagnosticsSerializer(diagnostics)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def _get_services_status(self):
        """Check health of all services."""
        services = []

        try:
            connection.ensure_connection()
            services.append({
                'name': 'Database',
                'status': 'healthy',
                'details': {'vendor': connection.vendor}
            })
        except DatabaseError as e:
            services.append({
                'name': 'Database',
                'status': 'unhealthy',
                'details': {'error': str(e)}
            })

        try:
            redis.Redis.from_url(settings.CELERY_BROKER_URL).ping()
            services.append({'name': 'Redis', 'status': 'healthy'})
        except redis.RedisError as e:
            services.append({
                'name': 'Redis',
                'status': 'unhealthy',
                'details': {'error': str(e)}
            })

        return services

    def _get_redis_info(self):
        """Get Redis information."""
        try:
            info = redis.Redis.from_url(settings.CELERY_BROKER_URL).info()
        except redis.RedisError:
            return {
                'connected_clients': 0,
                'used_memory': 'Error',
                'uptime_days': 0
            }
        return {
            'connected_clients': info.get('connected_clients', 0),
            'used_memory': f"{info.get('used_memory_human', '0B')}",
            'uptime_days': info.get('uptime_in_days', 0)
        }

    def _get_orders_bucket(self):
        """Orders bucket reachability."""
        from apps.files.utils_storage import get_minio_client

        bucket = {'name': settings.MINIO_ORDERS_BUCKET, 'accessible': False}
        try:
            bucket['accessible'] = get_minio_client().bucket_exists(settings.MINIO_ORDERS_BUCKET)
        except (S3Error, HTTPError) as e:
            bucket['error'] = str(e)
        return bucket

    def _get_counts(self):
        from apps.authz.models import User
        from apps.files.models import OrderFile
        from apps.notifications.models import Alert, AlertStatusChoices
        from apps.orders.models import Order

        return {
            'users_pending_approval': User.objects.filter(is_approved=False, is_active=True).count(),
            'orders': Order.objects.filter(deleted_at__isnull=True).count(),
            'files': OrderFile.objects.filter(deleted_at__isnull=True).count(),
            'unread_alerts': Alert.objects.filter(status=AlertStatusChoices.UNREAD).count(),
        }
