"""
Lab-admin views for the laboratory and its clinics.
"""
from django.db.models import Count, Q
from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import IsLabAdmin
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.labs.models import Clinic, Laboratory
from apps.labs.serializers import ClinicSerializer, LaboratorySerializer


class LaboratoryView(APIView):
    """GET/PATCH /api/lab-admin/laboratory/ - The caller's laboratory."""
    permission_classes = [IsLabAdmin]

    def _get_laboratory(self, request):
        return Laboratory.objects.filter(id=request.user.laboratory_id).first()

    def get(self, request):
        laboratory = self._get_laboratory(request)
        if laboratory is None:
            return Response({'error': 'Laboratorio no encontrado'}, status=status.HTTP_404_NOT_FOUND)
        return Response(LaboratorySerializer(laboratory).data)

    def patch(self, request):
        laboratory = self._get_laboratory(request)
        if laboratory is None:
            return Response({'error': 'Laboratorio no encontrado'}, status=status.HTTP_404_NOT_FOUND)

        serializer = LaboratorySerializer(laboratory, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        log_audit(
            AuditActionChoices.UPDATE,
            'Laboratory',
            laboratory.id,
            user=request.user,
            metadata={'changed_fields': sorted(serializer.validated_data)},
            request=request,
        )
        return Response(serializer.data)


class ClinicViewSet(viewsets.ModelViewSet):
    """
    Clinics of the caller's laboratory.

    Endpoints:
    - GET /api/lab-admin/clinics/?search=&is_active=
    - POST /api/lab-admin/clinics/
    - GET/PATCH/DELETE /api/lab-admin/clinics/{id}/

    DELETE deactivates the clinic and is refused while it still has orders.
    """
    permission_classes = [IsLabAdmin]
    serializer_class = ClinicSerializer
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = Clinic.objects.filter(
            laboratory_id=self.request.user.laboratory_id
        ).annotate(
            order_count=Count('orders', filter=Q(orders__deleted_at__isnull=True), distinct=True),
            doctor_count=Count('doctor_memberships', distinct=True),
        )

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search))

        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')

        return queryset.order_by('name')

    def perform_create(self, serializer):
        clinic = serializer.save(laboratory_id=self.request.user.laboratory_id)
        log_audit(
            AuditActionChoices.CREATE,
            'Clinic',
            clinic.id,
            user=self.request.user,
            metadata={'name': clinic.name},
            request=self.request,
        )

    def perform_update(self, serializer):
        clinic = serializer.save()
        log_audit(
            AuditActionChoices.UPDATE,
            'Clinic',
            clinic.id,
            user=self.request.user,
            metadata={'changed_fields': sorted(serializer.validated_data)},
            request=self.request,
        )

    def destroy(self, request, *args, **kwargs):
        clinic = self.get_object()
        if clinic.orders.exists():
            return Response(
                {'error': 'No se puede eliminar una clínica con órdenes'},
                status=status.HTTP_400_BAD_REQUEST
            )

        clinic.is_active = False
        clinic.save(update_fields=['is_active', 'updated_at'])
        log_audit(
            AuditActionChoices.DELETE,
            'Clinic',
            clinic.id,
            user=request.user,
            metadata={'name': clinic.name},
            request=request,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
