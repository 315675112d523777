"""
Alert endpoints and the live event streams.
"""
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import IsAuthenticatedUser, IsLabStaff
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.notifications.event_bus import NEW_ALERT, NEW_ORDER
from apps.notifications.models import Alert, AlertStatusChoices
from apps.notifications.serializers import AlertSerializer, AlertStatusSerializer
from apps.notifications.sse import EventStreamRenderer, event_stream_response, stream_events
from apps.orders.access import UUID_PATTERN


class AlertViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    The caller's alerts.

    Endpoints:
    - GET /api/alerts/?status=UNREAD|READ|RESOLVED
    - PATCH /api/alerts/{id}/ - {status: READ|RESOLVED}
    - DELETE /api/alerts/{id}/ - only once read

    Someone else's alert answers 403.
    """
    permission_classes = [IsAuthenticatedUser]
    lookup_value_regex = UUID_PATTERN
    serializer_class = AlertSerializer

    def get_queryset(self):
        queryset = Alert.objects.filter(
            receiver=self.request.user
        ).select_related('order', 'sender')

        alert_status = self.request.query_params.get('status')
        if alert_status:
            queryset = queryset.filter(status=alert_status)
        return queryset.order_by('-created_at')

    def _get_own_alert(self, request, pk):
        alert = Alert.objects.select_related('order', 'sender').filter(id=pk).first()
        if alert is None:
            return None, Response({'error': 'Alerta no encontrada'}, status=status.HTTP_404_NOT_FOUND)
        if alert.receiver_id != request.user.id:
            return None, Response({'error': 'No autorizado'}, status=status.HTTP_403_FORBIDDEN)
        return alert, None

    def partial_update(self, request, pk=None):
        alert, error = self._get_own_alert(request, pk)
        if error:
            return error

        serializer = AlertStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        now = timezone.now()
        was_unread = alert.status == AlertStatusChoices.UNREAD
        alert.status = new_status
        if new_status == AlertStatusChoices.READ and was_unread:
            alert.read_at = now
        if new_status == AlertStatusChoices.RESOLVED:
            alert.read_at = alert.read_at or now
            alert.resolved_at = now
        alert.save(update_fields=['status', 'read_at', 'resolved_at'])

        if was_unread:
            log_audit(
                AuditActionChoices.ALERT_READ,
                'Alert',
                alert.id,
                user=request.user,
                metadata={'status': new_status},
                order=alert.order,
                alert=alert,
                request=request,
            )
        return Response(AlertSerializer(alert).data)

    def destroy(self, request, pk=None):
        alert, error = self._get_own_alert(request, pk)
        if error:
            return error
        if alert.status == AlertStatusChoices.UNREAD:
            return Response(
                {'error': 'No se puede eliminar una alerta sin leer'},
                status=status.HTTP_400_BAD_REQUEST
            )
        alert.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AlertEventsView(APIView):
    """GET /api/alerts/events/ - SSE stream of the caller's new alerts."""
    permission_classes = [IsAuthenticatedUser]
    renderer_classes = [EventStreamRenderer, JSONRenderer]

    def get(self, request):
        user_id = str(request.user.id)
        generator = stream_events(
            NEW_ALERT,
            accept=lambda payload: payload.get('receiver_id') == user_id,
            connected_payload={'user_id': user_id, 'timestamp': timezone.now().isoformat()},
        )
        return event_stream_response(generator)


class LabOrderEventsView(APIView):
    """GET /api/lab/order-events/ - SSE stream of orders submitted to the caller's lab."""
    permission_classes = [IsLabStaff]
    renderer_classes = [EventStreamRenderer, JSONRenderer]

    def get(self, request):
        laboratory_id = str(request.user.laboratory_id)
        generator = stream_events(
            NEW_ORDER,
            accept=lambda payload: payload.get('laboratory_id') == laboratory_id,
            connected_payload={'laboratory_id': laboratory_id, 'timestamp': timezone.now().isoformat()},
        )
        return event_stream_response(generator)
