"""
Labs serializers for Laboratory and Clinic.
"""
from rest_framework import serializers

from apps.labs.models import Clinic, Laboratory


class LaboratorySerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/lab-admin/laboratory/
    - PATCH /api/lab-admin/laboratory/ (name, email, phone, address)
    """

    class Meta:
        model = Laboratory
        fields = ['id', 'name', 'email', 'phone', 'address', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['id', 'is_active', 'created_at', 'updated_at']


class ClinicSerializer(serializers.ModelSerializer):
    """Clinic of the caller's laboratory; laboratory is set by the view."""
    order_count = serializers.IntegerField(read_only=True, required=False)
    doctor_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Clinic
        fields = [
            'id',
            'name',
            'email',
            'phone',
            'address',
            'is_active',
            'order_count',
            'doctor_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('El nombre es obligatorio')
        return value
