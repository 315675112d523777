"""
User administration views.

- /api/admin/users/ : ADMIN approves or rejects registrations
- /api/lab-admin/users/ : LAB_ADMIN manages the users of the laboratory
- /api/doctor/ : doctor clinic memberships and active clinic
- /api/clinic-admin/ : CLINIC_ADMIN manages assistants of the clinic
- /api/assistant/doctors/ : doctors an assistant works for
"""
from django.db import models, transaction
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import MethodNotAllowed
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.models import DoctorAssistant, DoctorClinic, RoleChoices, User
from apps.authz.permissions import IsAdmin, IsClinicAdmin, IsClinicAssistant, IsDoctor, IsLabAdmin
from apps.authz.serializers_users import (
    ActiveClinicSerializer,
    AssignDoctorSerializer,
    AssistantCreateSerializer,
    AssistantUpdateSerializer,
    DoctorAssignmentSerializer,
    DoctorClinicSerializer,
    DoctorClinicsUpdateSerializer,
    LabUserCreateSerializer,
    LabUserUpdateSerializer,
    UserDetailSerializer,
    UserListSerializer,
)
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.labs.models import Clinic
from apps.orders.models import Order


def _deactivate(user, actor, request):
    user.is_active = False
    user.save(update_fields=['is_active', 'updated_at'])
    log_audit(
        AuditActionChoices.UPDATE,
        'User',
        user.id,
        user=actor,
        metadata={'changed_fields': ['is_active'], 'is_active': False},
        request=request,
    )


# ============================================================================
# ADMIN: registration approval
# ============================================================================

class AdminUserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Registration approval (ADMIN only).

    Endpoints:
    - GET /api/admin/users/?status=pending|approved
    - GET /api/admin/users/{id}/
    - POST /api/admin/users/{id}/approve/
    - POST /api/admin/users/{id}/reject/
    """
    permission_classes = [IsAdmin]
    serializer_class = UserListSerializer

    def get_queryset(self):
        queryset = User.objects.select_related('clinic').exclude(role=RoleChoices.ADMIN)

        user_status = self.request.query_params.get('status')
        if user_status == 'pending':
            queryset = queryset.filter(is_approved=False, is_active=True)
        elif user_status == 'approved':
            queryset = queryset.filter(is_approved=True)

        return queryset.order_by('-created_at')

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        user = self.get_object()
        if user.is_approved:
            return Response(
                {'error': 'El usuario ya está aprobado'},
                status=status.HTTP_400_BAD_REQUEST
            )

        user.is_approved = True
        user.is_active = True
        user.approved_at = timezone.now()
        user.approved_by = request.user
        user.save(update_fields=['is_approved', 'is_active', 'approved_at', 'approved_by', 'updated_at'])
        log_audit(AuditActionChoices.USER_APPROVED, 'User', user.id, user=request.user, request=request)
        return Response(UserListSerializer(user).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        user = self.get_object()
        if user.is_approved:
            return Response(
                {'error': 'Solo se pueden rechazar usuarios pendientes de aprobación'},
                status=status.HTTP_400_BAD_REQUEST
            )

        user.is_active = False
        user.save(update_fields=['is_active', 'updated_at'])
        log_audit(
            AuditActionChoices.USER_REJECTED,
            'User',
            user.id,
            user=request.user,
            metadata={'reason': request.data.get('reason', '')},
            request=request,
        )
        return Response(UserListSerializer(user).data)


# ============================================================================
# LAB_ADMIN: users of the laboratory
# ============================================================================

class LabUserViewSet(viewsets.ModelViewSet):
    """
    Users of the caller's laboratory: lab staff plus the staff of its clinics.

    Endpoints:
    - GET /api/lab-admin/users/?role=&search=
    - POST /api/lab-admin/users/
    - GET/PATCH/DELETE /api/lab-admin/users/{id}/ (DELETE deactivates)
    - PUT /api/lab-admin/users/{id}/clinics/ (doctors only)
    """
    permission_classes = [IsLabAdmin]
    http_method_names = ['get', 'post', 'patch', 'put', 'delete', 'head', 'options']

    def get_queryset(self):
        lab_id = self.request.user.laboratory_id
        queryset = User.objects.select_related('clinic').prefetch_related(
            'doctor_clinics__clinic'
        ).filter(
            models.Q(laboratory_id=lab_id) |
            models.Q(clinic__laboratory_id=lab_id) |
            models.Q(doctor_clinics__clinic__laboratory_id=lab_id)
        ).distinct()

        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                models.Q(email__icontains=search) |
                models.Q(name__icontains=search)
            )

        return queryset.order_by('name', 'email')

    def get_serializer_class(self):
        if self.action == 'list':
            return UserListSerializer
        if self.action == 'create':
            return LabUserCreateSerializer
        if self.action == 'partial_update':
            return LabUserUpdateSerializer
        if self.action == 'clinics':
            return DoctorClinicsUpdateSerializer
        return UserDetailSerializer

    def _lab_clinics(self):
        return Clinic.objects.filter(laboratory_id=self.request.user.laboratory_id)

    def _lab_admin_refusal(self, user, message):
        if user.role == RoleChoices.LAB_ADMIN:
            return Response({'error': message}, status=status.HTTP_403_FORBIDDEN)
        return None

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if User.objects.filter(email__iexact=data['email']).exists():
            return Response(
                {'error': 'Ya existe un usuario con este email'},
                status=status.HTTP_409_CONFLICT
            )

        clinic = None
        if data['role'] != RoleChoices.LAB_COLLABORATOR:
            clinic = self._lab_clinics().filter(id=data['clinic_id']).first()
            if clinic is None:
                return Response(
                    {'error': 'La clínica no pertenece a tu laboratorio'},
                    status=status.HTTP_400_BAD_REQUEST
                )

        with transaction.atomic():
            user = User.objects.create_user(
                email=data['email'],
                password=data['password'],
                name=data['name'],
                phone=data.get('phone', ''),
                role=data['role'],
                is_approved=True,
                approved_at=timezone.now(),
                approved_by=request.user,
                laboratory_id=request.user.laboratory_id if data['role'] == RoleChoices.LAB_COLLABORATOR else None,
                clinic=clinic if data['role'] in (RoleChoices.CLINIC_ADMIN, RoleChoices.CLINIC_ASSISTANT) else None,
                active_clinic=clinic if data['role'] == RoleChoices.DOCTOR else None,
            )
            if data['role'] == RoleChoices.DOCTOR:
                DoctorClinic.objects.create(doctor=user, clinic=clinic, is_primary=True)

            log_audit(
                AuditActionChoices.CREATE,
                'User',
                user.id,
                user=request.user,
                metadata={'role': user.role, 'clinic_id': str(clinic.id) if clinic else None},
                request=request,
            )

        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        instance = self.get_object()
        refusal = self._lab_admin_refusal(instance, 'No se puede editar un administrador del laboratorio')
        if refusal:
            return refusal
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        log_audit(
            AuditActionChoices.UPDATE,
            'User',
            user.id,
            user=request.user,
            metadata={'changed_fields': sorted(serializer.validated_data)},
            request=request,
        )
        return Response(UserDetailSerializer(user).data)

    def update(self, request, *args, **kwargs):
        # PUT is only routed for the clinics action
        raise MethodNotAllowed(request.method)

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.id == request.user.id:
            return Response(
                {'error': 'No puedes desactivar tu propia cuenta'},
                status=status.HTTP_400_BAD_REQUEST
            )
        refusal = self._lab_admin_refusal(user, 'No se puede eliminar un administrador del laboratorio')
        if refusal:
            return refusal
        _deactivate(user, request.user, request)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['put'])
    def clinics(self, request, pk=None):
        """
        Replace a doctor's clinic memberships.

        The active clinic falls back to the primary one when it is no
        longer among the memberships.
        """
        doctor = self.get_object()
        refusal = self._lab_admin_refusal(doctor, 'No se puede editar un administrador del laboratorio')
        if refusal:
            return refusal
        if doctor.role != RoleChoices.DOCTOR:
            return Response(
                {'error': 'Solo los doctores pueden tener varias clínicas'},
                status=status.HTTP_400_BAD_REQUEST
            )

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        clinic_ids = serializer.validated_data['clinic_ids']
        primary_id = serializer.validated_data['primary_clinic_id']

        clinics = list(self._lab_clinics().filter(id__in=clinic_ids))
        if len(clinics) != len(clinic_ids):
            return Response(
                {'error': 'Alguna clínica no pertenece a tu laboratorio'},
                status=status.HTTP_400_BAD_REQUEST
            )

        with transaction.atomic():
            DoctorClinic.objects.filter(doctor=doctor).delete()
            DoctorClinic.objects.bulk_create([
                DoctorClinic(doctor=doctor, clinic=clinic, is_primary=clinic.id == primary_id)
                for clinic in clinics
            ])
            if doctor.active_clinic_id not in clinic_ids:
                doctor.active_clinic_id = primary_id
                doctor.save(update_fields=['active_clinic', 'updated_at'])

            log_audit(
                AuditActionChoices.UPDATE,
                'User',
                doctor.id,
                user=request.user,
                metadata={
                    'action': 'CLINICS_UPDATE',
                    'clinic_ids': [str(clinic_id) for clinic_id in clinic_ids],
                    'primary_clinic_id': str(primary_id),
                },
                request=request,
            )

        return Response(UserDetailSerializer(doctor).data)


# ============================================================================
# DOCTOR: memberships
# ============================================================================

class DoctorClinicsView(APIView):
    """GET /api/doctor/clinics/ - Own memberships; the active one is flagged."""
    permission_classes = [IsDoctor]

    def get(self, request):
        memberships = DoctorClinic.objects.filter(
            doctor=request.user
        ).select_related('clinic').order_by('-is_primary', 'clinic__name')

        clinics = []
        for membership in memberships:
            data = DoctorClinicSerializer(membership).data
            data['is_active_clinic'] = membership.clinic_id == request.user.active_clinic_id
            clinics.append(data)

        return Response({
            'clinics': clinics,
            'active_clinic_id': request.user.active_clinic_id,
        })


class ActiveClinicView(APIView):
    """PUT /api/doctor/active-clinic/ - Switch the clinic new orders go to."""
    permission_classes = [IsDoctor]

    def put(self, request):
        serializer = ActiveClinicSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        clinic_id = serializer.validated_data['clinic_id']

        membership = DoctorClinic.objects.filter(
            doctor=request.user, clinic_id=clinic_id
        ).select_related('clinic').first()
        if membership is None:
            return Response(
                {'error': 'No perteneces a esta clínica'},
                status=status.HTTP_403_FORBIDDEN
            )
        if not membership.clinic.is_active:
            return Response(
                {'error': 'La clínica no está activa'},
                status=status.HTTP_400_BAD_REQUEST
            )

        previous = request.user.active_clinic_id
        request.user.active_clinic = membership.clinic
        request.user.save(update_fields=['active_clinic', 'updated_at'])
        log_audit(
            AuditActionChoices.UPDATE,
            'User',
            request.user.id,
            user=request.user,
            old_value=previous,
            new_value=clinic_id,
            metadata={'action': 'CLINIC_SWITCH'},
            request=request,
        )
        return Response({
            'active_clinic_id': membership.clinic_id,
            'active_clinic_name': membership.clinic.name,
        })


# ============================================================================
# CLINIC_ADMIN: assistants, doctors, stats
# ============================================================================

class ClinicAssistantViewSet(viewsets.ModelViewSet):
    """
    Assistants of the caller's clinic.

    Endpoints:
    - GET/POST /api/clinic-admin/assistants/
    - GET/PATCH/DELETE /api/clinic-admin/assistants/{id}/ (DELETE deactivates)
    - GET/POST /api/clinic-admin/assistants/{id}/doctors/
    - DELETE /api/clinic-admin/assistants/{id}/doctors/{doctor_id}/
    """
    permission_classes = [IsClinicAdmin]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return User.objects.select_related('clinic').filter(
            role=RoleChoices.CLINIC_ASSISTANT,
            clinic_id=self.request.user.clinic_id,
        ).order_by('name', 'email')

    def get_serializer_class(self):
        if self.action == 'create':
            return AssistantCreateSerializer
        if self.action == 'partial_update':
            return AssistantUpdateSerializer
        return UserListSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = User.objects.create_user(
            email=data['email'],
            password=data['password'],
            name=data['name'],
            phone=data.get('phone', ''),
            role=RoleChoices.CLINIC_ASSISTANT,
            clinic_id=request.user.clinic_id,
            is_approved=True,
            approved_at=timezone.now(),
            approved_by=request.user,
        )
        log_audit(
            AuditActionChoices.CREATE,
            'User',
            user.id,
            user=request.user,
            metadata={'role': user.role, 'clinic_id': str(request.user.clinic_id)},
            request=request,
        )
        return Response(UserListSerializer(user).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        log_audit(
            AuditActionChoices.UPDATE,
            'User',
            user.id,
            user=request.user,
            metadata={'changed_fields': sorted(serializer.validated_data)},
            request=request,
        )
        return Response(UserListSerializer(user).data)

    def destroy(self, request, *args, **kwargs):
        _deactivate(self.get_object(), request.user, request)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get', 'post'])
    def doctors(self, request, pk=None):
        """List or add the doctors an assistant works for."""
        assistant = self.get_object()

        if request.method == 'GET':
            assignments = DoctorAssistant.objects.filter(
                assistant=assistant
            ).select_related('doctor').order_by('doctor__name')
            return Response(DoctorAssignmentSerializer(assignments, many=True).data)

        serializer = AssignDoctorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        doctor = User.objects.filter(
            id=serializer.validated_data['doctor_id'],
            role=RoleChoices.DOCTOR,
            doctor_clinics__clinic_id=request.user.clinic_id,
        ).first()
        if doctor is None:
            return Response(
                {'error': 'El doctor no pertenece a tu clínica'},
                status=status.HTTP_400_BAD_REQUEST
            )
        if DoctorAssistant.objects.filter(doctor=doctor, assistant=assistant).exists():
            return Response(
                {'error': 'El asistente ya está asignado a este doctor'},
                status=status.HTTP_400_BAD_REQUEST
            )

        assignment = DoctorAssistant.objects.create(doctor=doctor, assistant=assistant)
        log_audit(
            AuditActionChoices.CREATE,
            'DoctorAssistant',
            assignment.id,
            user=request.user,
            metadata={'doctor_id': str(doctor.id), 'assistant_id': str(assistant.id)},
            request=request,
        )
        return Response(DoctorAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'], url_path=r'doctors/(?P<doctor_id>[0-9a-f-]+)')
    def remove_doctor(self, request, pk=None, doctor_id=None):
        assistant = self.get_object()
        assignment = DoctorAssistant.objects.filter(assistant=assistant, doctor_id=doctor_id).first()
        if assignment is None:
            return Response({'error': 'Asignación no encontrada'}, status=status.HTTP_404_NOT_FOUND)

        assignment_id = assignment.id
        assignment.delete()
        log_audit(
            AuditActionChoices.DELETE,
            'DoctorAssistant',
            assignment_id,
            user=request.user,
            metadata={'doctor_id': str(doctor_id), 'assistant_id': str(assistant.id)},
            request=request,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ClinicDoctorListView(APIView):
    """GET /api/clinic-admin/doctors/ - Doctors with a membership in the clinic."""
    permission_classes = [IsClinicAdmin]

    def get(self, request):
        doctors = User.objects.filter(
            role=RoleChoices.DOCTOR,
            doctor_clinics__clinic_id=request.user.clinic_id,
        ).distinct().order_by('name', 'email')
        return Response(UserListSerializer(doctors, many=True).data)


class ClinicStatsView(APIView):
    """GET /api/clinic-admin/stats/ - Head counts and orders by status."""
    permission_classes = [IsClinicAdmin]

    def get(self, request):
        clinic_id = request.user.clinic_id
        orders = Order.objects.filter(clinic_id=clinic_id, deleted_at__isnull=True)
        by_status = {
            row['status']: row['count']
            for row in orders.values('status').annotate(count=models.Count('id'))
        }
        return Response({
            'doctors': User.objects.filter(
                role=RoleChoices.DOCTOR,
                doctor_clinics__clinic_id=clinic_id,
                is_active=True,
            ).distinct().count(),
            'assistants': User.objects.filter(
                role=RoleChoices.CLINIC_ASSISTANT,
                clinic_id=clinic_id,
                is_active=True,
            ).count(),
            'orders': orders.count(),
            'orders_by_status': by_status,
        })


class AssistantDoctorListView(mixins.ListModelMixin, viewsets.GenericViewSet):
    """GET /api/assistant/doctors/ - Doctors the caller is assigned to."""
    permission_classes = [IsClinicAssistant]
    serializer_class = DoctorAssignmentSerializer
    pagination_class = None

    def get_queryset(self):
        return DoctorAssistant.objects.filter(
            assistant=self.request.user,
            doctor__is_active=True,
        ).select_related('doctor').order_by('doctor__name')
