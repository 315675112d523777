"""
Authz serializers for registration, login and the own profile.
"""
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from apps.authz.models import CLINIC_ROLES, RoleChoices, User

MIN_PASSWORD_LENGTH = 8


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user reference embedded in other payloads."""

    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'role']
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """
    Public self-registration (POST /api/auth/register/).

    Only clinic-side roles can be requested; the account stays unapproved
    until an ADMIN approves it.
    """
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=MIN_PASSWORD_LENGTH)
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    role = serializers.ChoiceField(
        choices=[(role, RoleChoices(role).label) for role in sorted(CLINIC_ROLES)],
        default=RoleChoices.DOCTOR
    )

    def validate_email(self, value):
        return User.objects.normalize_email(value).lower()


class LoginSerializer(TokenObtainPairSerializer):
    """
    JWT login that also refuses accounts still waiting for approval.

    Inactive accounts are already refused by the authentication backend.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        token['name'] = user.name
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_approved:
            raise AuthenticationFailed(
                'Tu cuenta está pendiente de aprobación',
                code='account_not_approved'
            )
        data['user'] = UserSummarySerializer(self.user).data
        return data


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class ProfileSerializer(serializers.ModelSerializer):
    """Own profile (GET /api/user/profile/)."""
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    laboratory_name = serializers.CharField(source='laboratory.name', read_only=True, default=None)
    clinic_name = serializers.CharField(source='clinic.name', read_only=True, default=None)
    active_clinic_name = serializers.CharField(source='active_clinic.name', read_only=True, default=None)

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
            'laboratory_name',
            'clinic',
            'clinic_name',
            'active_clinic',
            'active_clinic_name',
            'is_approved',
            'created_at',
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Own profile update (PATCH /api/user/profile/).

    A password change needs the current password.
    """
    current_password = serializers.CharField(write_only=True, required=False)
    new_password = serializers.CharField(
        write_only=True, required=False, min_length=MIN_PASSWORD_LENGTH
    )

    class Meta:
        model = User
        fields = ['name', 'phone', 'current_password', 'new_password']

    def validate(self, attrs):
        new_password = attrs.get('new_password')
        if new_password:
            current = attrs.get('current_password')
            if not current:
                raise serializers.ValidationError({
                    'current_password': 'La contraseña actual es obligatoria'
                })
            if not self.instance.check_password(current):
                raise serializers.ValidationError({
                    'current_password': 'La contraseña actual es incorrecta'
                })
        return attrs

    def update(self, instance, validated_data):
        validated_data.pop('current_password', None)
        new_password = validated_data.pop('new_password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if new_password:
            instance.set_password(new_password)
        instance.save()
        return instance
