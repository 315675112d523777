"""
Alert serializers.
"""
from rest_framework import serializers

from apps.notifications.models import Alert, AlertStatusChoices


class AlertSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/alerts/
    - PATCH /api/alerts/{id}/ (response)
    """
    order = serializers.SerializerMethodField()
    sender = serializers.SerializerMethodField()

    class Meta:
        model = Alert
        fields = [
            'id',
            'message',
            'status',
            'read_at',
            'resolved_at',
            'order',
            'sender',
            'receiver',
            'created_at',
        ]
        read_only_fields = fields

    def get_order(self, obj):
        return {
            'id': str(obj.order_id),
            'order_number': obj.order.order_number,
            'patient_name': obj.order.patient_name,
        }

    def get_sender(self, obj):
        if obj.sender is None:
            return None
        return {'name': obj.sender.name, 'role': obj.sender.role}


class AlertStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        (AlertStatusChoices.READ, AlertStatusChoices.READ.label),
        (AlertStatusChoices.RESOLVED, AlertStatusChoices.RESOLVED.label),
    ])
