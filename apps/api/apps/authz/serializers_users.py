"""
User Administration Serializers.

- ADMIN: registration approval
- LAB_ADMIN: users of the laboratory and doctor memberships
- DOCTOR: own clinics and active clinic
- CLINIC_ADMIN: assistants and their doctor assignments
"""
from rest_framework import serializers

from apps.authz.models import DoctorAssistant, DoctorClinic, RoleChoices, User
from apps.authz.serializers import MIN_PASSWORD_LENGTH

# Roles a lab admin may create
LAB_MANAGED_ROLES = (
    RoleChoices.LAB_COLLABORATOR,
    RoleChoices.CLINIC_ADMIN,
    RoleChoices.DOCTOR,
    RoleChoices.CLINIC_ASSISTANT,
)


class DoctorClinicSerializer(serializers.ModelSerializer):
    """A doctor's membership in a clinic."""
    clinic_id = serializers.UUIDField(source='clinic.id', read_only=True)
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    clinic_is_active = serializers.BooleanField(source='clinic.is_active', read_only=True)

    class Meta:
        model = DoctorClinic
        fields = ['clinic_id', 'clinic_name', 'clinic_is_active', 'is_primary']
        read_only_fields = fields


class UserListSerializer(serializers.ModelSerializer):
    """
    Serializer for user lists.

    Used for:
    - GET /api/admin/users/
    - GET /api/lab-admin/users/
    - GET /api/clinic-admin/assistants/, /api/clinic-admin/doctors/
    """
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    clinic_name = serializers.CharField(source='clinic.name', read_only=True, default=None)

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'name',
            'phone',
            'role',
            'role_display',
            'laboratory',
            'clinic',
            'clinic_name',
            'is_active',
            'is_approved',
            'approved_at',
            'created_at',
        ]
        read_only_fields = fields


class UserDetailSerializer(UserListSerializer):
    """User detail; doctors also carry their clinic memberships."""
    doctor_clinics = DoctorClinicSerializer(many=True, read_only=True)
    active_clinic = serializers.UUIDField(source='active_clinic_id', read_only=True)

    class Meta(UserListSerializer.Meta):
        fields = UserListSerializer.Meta.fields + ['doctor_clinics', 'active_clinic', 'updated_at']
        read_only_fields = fields


class LabUserCreateSerializer(serializers.Serializer):
    """
    Lab admin creates a user (POST /api/lab-admin/users/).

    Clinic roles need clinic_id; whether the clinic belongs to the caller's
    laboratory is checked by the view.
    """
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=MIN_PASSWORD_LENGTH)
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=[(r, r.label) for r in LAB_MANAGED_ROLES])
    clinic_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_email(self, value):
        return User.objects.normalize_email(value).lower()

    def validate(self, attrs):
        if attrs['role'] != RoleChoices.LAB_COLLABORATOR and not attrs.get('clinic_id'):
            raise serializers.ValidationError({
                'clinic_id': 'La clínica es obligatoria para este rol'
            })
        return attrs


class LabUserUpdateSerializer(serializers.ModelSerializer):
    """Lab admin edits a user (PATCH /api/lab-admin/users/{id}/)."""
    password = serializers.CharField(
        write_only=True, required=False, min_length=MIN_PASSWORD_LENGTH
    )

    class Meta:
        model = User
        fields = ['name', 'phone', 'is_active', 'password']

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class DoctorClinicsUpdateSerializer(serializers.Serializer):
    """PUT /api/lab-admin/users/{id}/clinics/"""
    clinic_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    primary_clinic_id = serializers.UUIDField()

    def validate(self, attrs):
        attrs['clinic_ids'] = list(dict.fromkeys(attrs['clinic_ids']))
        if attrs['primary_clinic_id'] not in attrs['clinic_ids']:
            raise serializers.ValidationError({
                'primary_clinic_id': 'La clínica principal debe estar entre las clínicas asignadas'
            })
        return attrs


class ActiveClinicSerializer(serializers.Serializer):
    """PUT /api/doctor/active-clinic/"""
    clinic_id = serializers.UUIDField()


class AssistantCreateSerializer(serializers.Serializer):
    """Clinic admin creates an assistant in their clinic."""
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=MIN_PASSWORD_LENGTH)
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_email(self, value):
        value = User.objects.normalize_email(value).lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('Ya existe un usuario con este email')
        return value


class AssistantUpdateSerializer(LabUserUpdateSerializer):
    pass


class DoctorAssignmentSerializer(serializers.ModelSerializer):
    """An assistant's assignment to a doctor."""
    doctor_id = serializers.UUIDField(source='doctor.id', read_only=True)
    doctor_name = serializers.CharField(source='doctor.name', read_only=True)
    doctor_email = serializers.EmailField(source='doctor.email', read_only=True)

    class Meta:
        model = DoctorAssistant
        fields = ['id', 'doctor_id', 'doctor_name', 'doctor_email', 'created_at']
        read_only_fields = fields


class AssignDoctorSerializer(serializers.Serializer):
    doctor_id = serializers.UUIDField()
