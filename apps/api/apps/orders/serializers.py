"""
Orders serializers: orders, teeth, comments, trial records.
"""
import re

from rest_framework import serializers

from apps.authz.serializers import UserSummarySerializer
from apps.orders.models import (
    Order,
    OrderComment,
    OrderStatusChoices,
    Tooth,
    TrialRecord,
    TrialTypeChoices,
)
from apps.orders.state_machine import get_valid_next_states_for_role

# FDI notation: quadrant 1-4, position 1-8
FDI_TOOTH_RE = re.compile(r'^[1-4][1-8]$')


# ============================================================================
# Teeth
# ============================================================================

class ToothSerializer(serializers.ModelSerializer):

    class Meta:
        model = Tooth
        fields = [
            'id',
            'tooth_number',
            'material',
            'material_brand',
            'color_info',
            'restoration_type',
            'is_implant_work',
            'implant_info',
        ]
        read_only_fields = ['id']
        # Uniqueness within an order is checked on the list
        validators = []

    def validate_tooth_number(self, value):
        value = str(value).strip()
        if not FDI_TOOTH_RE.match(value):
            raise serializers.ValidationError('Número de diente inválido (FDI 11-48)')
        return value


def validate_teeth_list(teeth):
    numbers = [tooth['tooth_number'] for tooth in teeth]
    if len(numbers) != len(set(numbers)):
        raise serializers.ValidationError('Hay dientes repetidos')
    return teeth


# ============================================================================
# Comments / trials
# ============================================================================

class OrderCommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)
    content = serializers.CharField(min_length=1, max_length=2000, trim_whitespace=True)

    class Meta:
        model = OrderComment
        fields = ['id', 'content', 'is_internal', 'author', 'created_at', 'updated_at']
        read_only_fields = ['id', 'author', 'created_at', 'updated_at']


class TrialRecordSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    trial_type_display = serializers.CharField(source='get_trial_type_display', read_only=True)

    class Meta:
        model = TrialRecord
        fields = [
            'id',
            'trial_type',
            'trial_type_display',
            'note',
            'completed',
            'recorded_at',
            'approved',
            'client_notes',
            'responded_at',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class TrialCreateSerializer(serializers.Serializer):
    trial_type = serializers.ChoiceField(choices=TrialTypeChoices.choices)
    note = serializers.CharField(required=False, allow_blank=True, default='')
    completed = serializers.BooleanField(default=False)


class TrialUpdateSerializer(serializers.Serializer):
    completed = serializers.BooleanField()
    note = serializers.CharField(required=False, allow_blank=True)


class TrialResponseSerializer(serializers.Serializer):
    approved = serializers.BooleanField()
    client_notes = serializers.CharField(required=False, allow_blank=True, default='')


# ============================================================================
# Orders
# ============================================================================

class OrderListSerializer(serializers.ModelSerializer):
    """
    Serializer for order lists.

    Used for:
    - GET /api/orders/
    """
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    doctor_name = serializers.CharField(source='doctor.name', read_only=True)
    teeth_count = serializers.IntegerField(read_only=True, required=False)
    file_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Order
        fields = [
            'id',
            'order_number',
            'patient_name',
            'status',
            'case_type',
            'is_urgent',
            'is_digital_scan',
            'desired_delivery_date',
            'clinic',
            'clinic_name',
            'doctor',
            'doctor_name',
            'teeth_numbers',
            'teeth_count',
            'file_count',
            'submitted_at',
            'completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderDetailSerializer(serializers.ModelSerializer):
    """
    Serializer for order detail.

    Used for:
    - GET /api/orders/{id}/ (teeth, files, trials and comments included)

    Internal comments are only shown to lab users.
    """
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    doctor = UserSummarySerializer(read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    teeth = ToothSerializer(many=True, read_only=True)
    files = serializers.SerializerMethodField()
    trials = TrialRecordSerializer(many=True, read_only=True)
    comments = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id',
            'order_number',
            'patient_name',
            'patient_id',
            'description',
            'notes',
            'desired_delivery_date',
            'ai_prompt',
            'teeth_numbers',
            'initial_tooth_states',
            'is_digital_scan',
            'scanner_type',
            'case_type',
            'warranty_reason',
            'submission_type',
            'occlusion',
            'articulated_by',
            'material_sent',
            'is_urgent',
            'status',
            'allowed_transitions',
            'clinic',
            'clinic_name',
            'doctor',
            'created_by',
            'teeth',
            'files',
            'trials',
            'comments',
            'submitted_at',
            'materials_sent_at',
            'completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def _user(self):
        request = self.context.get('request')
        return request.user if request else None

    def get_files(self, obj):
        from apps.files.serializers import OrderFileSerializer

        files = obj.files.filter(deleted_at__isnull=True)
        return OrderFileSerializer(files, many=True).data

    def get_comments(self, obj):
        comments = obj.comments.select_related('author')
        user = self._user()
        if user is None or not user.is_lab_user:
            comments = comments.filter(is_internal=False)
        return OrderCommentSerializer(comments, many=True).data

    def get_allowed_transitions(self, obj):
        user = self._user()
        if user is None:
            return []
        return get_valid_next_states_for_role(user.role, obj.status)


class OrderWriteSerializer(serializers.ModelSerializer):
    """
    Serializer for order create/update.

    Used for:
    - POST /api/orders/ (clinic_id, doctor_id and submit are create-only)
    - PATCH /api/orders/{id}/

    teeth, when present, replaces the order's teeth.
    """
    teeth = ToothSerializer(many=True, required=False)
    clinic_id = serializers.UUIDField(required=False, allow_null=True, write_only=True)
    doctor_id = serializers.UUIDField(required=False, allow_null=True, write_only=True)
    submit = serializers.BooleanField(required=False, default=False, write_only=True)

    class Meta:
        model = Order
        fields = [
            'patient_name',
            'patient_id',
            'description',
            'notes',
            'desired_delivery_date',
            'ai_prompt',
            'teeth_numbers',
            'initial_tooth_states',
            'is_digital_scan',
            'scanner_type',
            'case_type',
            'warranty_reason',
            'submission_type',
            'occlusion',
            'articulated_by',
            'material_sent',
            'is_urgent',
            'teeth',
            'clinic_id',
            'doctor_id',
            'submit',
        ]

    def validate_patient_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('El nombre del paciente es obligatorio')
        return value

    def validate_teeth(self, value):
        return validate_teeth_list(value)

    def split(self):
        """
        Break validated data into (order fields, teeth, extras).

        teeth is None when the request did not send it.
        """
        data = dict(self.validated_data)
        teeth = data.pop('teeth', None)
        extras = {
            'clinic_id': data.pop('clinic_id', None),
            'doctor_id': data.pop('doctor_id', None),
            'submit': data.pop('submit', False),
        }
        return data, teeth, extras


class StatusChangeSerializer(serializers.Serializer):
    """POST /api/orders/{id}/status/"""
    status = serializers.ChoiceField(choices=OrderStatusChoices.choices)
    comment = serializers.CharField(
        required=False, allow_blank=True, max_length=2000, default=''
    )
