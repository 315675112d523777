"""
Orders REST API endpoints.
"""
from datetime import datetime, time

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import IsDoctor, IsLabAdmin, OrderParticipantPermission
from apps.orders.access import UUID_PATTERN, OrderAccessError, check_order_access, scope_orders_for_user
from apps.orders.analytics import build_lab_analytics
from apps.orders.models import Order, TrialRecord
from apps.orders.serializers import (
    OrderCommentSerializer,
    OrderDetailSerializer,
    OrderListSerializer,
    OrderWriteSerializer,
    StatusChangeSerializer,
    TrialCreateSerializer,
    TrialRecordSerializer,
    TrialResponseSerializer,
    TrialUpdateSerializer,
)
from apps.orders.services import (
    OrderValidationError,
    TransitionError,
    add_comment,
    change_status,
    create_order,
    delete_order,
    delete_trial,
    record_trial,
    resolve_order_owner,
    respond_to_trial,
    submit_order,
    update_order,
    update_trial,
)


def _validation_error_response(error):
    body = {'error': error.message}
    if error.details:
        body['details'] = error.details
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


class OrderViewSet(viewsets.ModelViewSet):
    """
    ViewSet for dental orders.

    Endpoints:
    - GET /api/orders/ - Role-scoped list
    - POST /api/orders/ - Create (clinic staff); submit=true also submits
    - GET /api/orders/{id}/ - Detail with teeth, files, trials, comments
    - PATCH /api/orders/{id}/ - Update while DRAFT or NEEDS_INFO
    - DELETE /api/orders/{id}/ - Soft delete a DRAFT
    - POST /api/orders/{id}/submit/ - Validate and send to the lab
    - POST /api/orders/{id}/status/ - State machine transition
    - GET/POST /api/orders/{id}/comments/

    Query parameters for list:
    - ?status=, ?is_urgent=true|false, ?clinic=<uuid>, ?doctor=<uuid>
    - ?search= - patient name, order number, doctor (and clinic for lab users)

    RBAC:
    - Clinic staff: create/update/delete their orders
    - Lab staff: read, status changes, comments
    - ADMIN: read-only
    """
    permission_classes = [OrderParticipantPermission]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = scope_orders_for_user(
            self.request.user,
            Order.objects.select_related('clinic', 'doctor'),
        )

        params = self.request.query_params
        order_status = params.get('status')
        if order_status:
            queryset = queryset.filter(status=order_status)

        is_urgent = params.get('is_urgent')
        if is_urgent is not None:
            queryset = queryset.filter(is_urgent=is_urgent.lower() == 'true')

        clinic = params.get('clinic')
        if clinic:
            queryset = queryset.filter(clinic_id=clinic)

        doctor = params.get('doctor')
        if doctor:
            queryset = queryset.filter(doctor_id=doctor)

        search = params.get('search')
        if search:
            condition = (
                Q(patient_name__icontains=search) |
                Q(order_number__icontains=search) |
                Q(doctor__name__icontains=search)
            )
            if self.request.user.is_lab_user:
                condition |= Q(clinic__name__icontains=search)
            queryset = queryset.filter(condition)

        if self.action == 'list':
            queryset = queryset.annotate(
                teeth_count=Count('teeth', distinct=True),
                file_count=Count('files', filter=Q(files__deleted_at__isnull=True), distinct=True),
            )

        return queryset.order_by('-created_at')

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        if self.action in ('create', 'partial_update'):
            return OrderWriteSerializer
        return OrderDetailSerializer

    def filter_queryset(self, queryset):
        # Filtering is done in get_queryset
        return queryset

    def _get_order(self):
        return check_order_access(
            self.request.user,
            self.kwargs['pk'],
            Order.objects.select_related('clinic', 'doctor', 'created_by'),
        )

    def _clinic_only(self, request):
        if not request.user.is_clinic_user:
            return Response(
                {'error': 'Solo el personal de la clínica puede modificar órdenes'},
                status=status.HTTP_403_FORBIDDEN
            )
        return None

    def _detail(self, order, status_code=status.HTTP_200_OK):
        order = Order.objects.select_related('clinic', 'doctor', 'created_by').get(pk=order.pk)
        serializer = OrderDetailSerializer(order, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def retrieve(self, request, *args, **kwargs):
        try:
            order = self._get_order()
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        return self._detail(order)

    def create(self, request, *args, **kwargs):
        denied = self._clinic_only(request)
        if denied:
            return denied

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data, teeth, extras = serializer.split()

        try:
            clinic, doctor = resolve_order_owner(
                request.user, clinic_id=extras['clinic_id'], doctor_id=extras['doctor_id']
            )
            with transaction.atomic():
                order = create_order(request.user, clinic, doctor, data, teeth=teeth, request=request)
                if extras['submit']:
                    order = submit_order(order, request.user, request=request)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        except OrderValidationError as e:
            return _validation_error_response(e)
        except TransitionError as e:
            return Response({'error': e.message}, status=e.status_code)

        return self._detail(order, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        denied = self._clinic_only(request)
        if denied:
            return denied
        try:
            order = self._get_order()
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        serializer = self.get_serializer(order, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data, teeth, _ = serializer.split()

        try:
            order = update_order(order, request.user, data, teeth=teeth, request=request)
        except OrderValidationError as e:
            return _validation_error_response(e)
        return self._detail(order)

    def destroy(self, request, *args, **kwargs):
        denied = self._clinic_only(request)
        if denied:
            return denied
        try:
            order = self._get_order()
            delete_order(order, request.user, request=request)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        except OrderValidationError as e:
            return _validation_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """Validate by case type and move to PENDING_REVIEW."""
        denied = self._clinic_only(request)
        if denied:
            return denied
        try:
            order = self._get_order()
            order = submit_order(order, request.user, request=request)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        except OrderValidationError as e:
            return _validation_error_response(e)
        except TransitionError as e:
            return Response({'error': e.message}, status=e.status_code)
        return self._detail(order)

    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        """Body: {status, comment?}"""
        try:
            order = self._get_order()
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = change_status(
                order,
                request.user,
                serializer.validated_data['status'],
                comment=serializer.validated_data['comment'].strip() or None,
                request=request,
            )
        except TransitionError as e:
            return Response({'error': e.message}, status=e.status_code)
        return self._detail(order)

    @action(detail=True, methods=['get', 'post'])
    def comments(self, request, pk=None):
        """Internal comments are hidden from clinic staff and only lab staff may write them."""
        try:
            order = self._get_order()
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        if request.method == 'GET':
            comments = order.comments.select_related('author')
            if not request.user.is_lab_user:
                comments = comments.filter(is_internal=False)
            return Response(OrderCommentSerializer(comments, many=True).data)

        serializer = OrderCommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            comment = add_comment(
                order,
                request.user,
                serializer.validated_data['content'],
                is_internal=serializer.validated_data.get('is_internal', False),
                request=request,
            )
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        return Response(OrderCommentSerializer(comment).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Trial records
# ============================================================================

class LabTrialViewSet(viewsets.ViewSet):
    """
    Trial records of an order (LAB_ADMIN).

    Endpoints:
    - GET/POST /api/lab-admin/orders/{order_id}/trials/
    - PATCH/DELETE /api/lab-admin/orders/{order_id}/trials/{id}/
    """
    permission_classes = [IsLabAdmin]
    lookup_value_regex = UUID_PATTERN

    def _load(self, request, order_id, pk=None):
        order = check_order_access(request.user, order_id)
        if pk is None:
            return order, None
        trial = TrialRecord.objects.filter(id=pk, order=order).select_related('order').first()
        if trial is None:
            raise OrderAccessError('Prueba no encontrada', 404)
        return order, trial

    def list(self, request, order_id=None):
        try:
            order, _ = self._load(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        trials = order.trials.select_related('created_by')
        return Response(TrialRecordSerializer(trials, many=True).data)

    def create(self, request, order_id=None):
        try:
            order, _ = self._load(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        serializer = TrialCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        trial = record_trial(order, request.user, request=request, **serializer.validated_data)
        return Response(TrialRecordSerializer(trial).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, order_id=None, pk=None):
        try:
            _, trial = self._load(request, order_id, pk)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        serializer = TrialUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        trial = update_trial(
            trial,
            request.user,
            serializer.validated_data['completed'],
            note=serializer.validated_data.get('note'),
            request=request,
        )
        return Response(TrialRecordSerializer(trial).data)

    def destroy(self, request, order_id=None, pk=None):
        try:
            _, trial = self._load(request, order_id, pk)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)
        delete_trial(trial, request.user, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class DoctorTrialResponseView(APIView):
    """POST /api/doctor/orders/{order_id}/trials/{trial_id}/respond/"""
    permission_classes = [IsDoctor]

    def post(self, request, order_id, trial_id):
        try:
            order = check_order_access(request.user, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        trial = TrialRecord.objects.filter(id=trial_id, order=order).select_related('order__clinic').first()
        if trial is None:
            return Response({'error': 'Prueba no encontrada'}, status=status.HTTP_404_NOT_FOUND)

        serializer = TrialResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            trial = respond_to_trial(
                trial,
                request.user,
                serializer.validated_data['approved'],
                client_notes=serializer.validated_data['client_notes'],
                request=request,
            )
        except OrderValidationError as e:
            return _validation_error_response(e)
        return Response(TrialRecordSerializer(trial).data)


# ============================================================================
# Analytics
# ============================================================================

def _parse_bound(value, end_of_day=False):
    """Accept an ISO datetime or a plain date; None when missing."""
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        day = parse_date(value)
        if day is None:
            raise ValidationError({'date': f'Fecha inválida: {value}'})
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


class LabAnalyticsView(APIView):
    """
    GET /api/lab-admin/analytics/?start_date=&end_date=&daily=true

    Defaults to the last 30 days.
    """
    permission_classes = [IsLabAdmin]

    def get(self, request):
        start_date = _parse_bound(request.query_params.get('start_date'))
        end_date = _parse_bound(request.query_params.get('end_date'), end_of_day=True)
        if start_date and end_date and start_date > end_date:
            return Response(
                {'error': 'La fecha inicial debe ser anterior a la final'},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response(build_lab_analytics(
            request.user.laboratory_id,
            start_date=start_date,
            end_date=end_date,
            include_daily=request.query_params.get('daily') == 'true',
        ))
