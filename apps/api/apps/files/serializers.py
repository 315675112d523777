"""
Order file serializers.
"""
from rest_framework import serializers

from apps.files.models import FileCategoryChoices, OrderFile


class OrderFileSerializer(serializers.ModelSerializer):
    """File metadata; presigned URLs are added by the views that need them."""
    uploaded_by_name = serializers.CharField(source='uploaded_by.name', read_only=True)

    class Meta:
        model = OrderFile
        fields = [
            'id',
            'file_name',
            'original_name',
            'file_type',
            'file_size',
            'mime_type',
            'category',
            'storage_key',
            'thumbnail_key',
            'is_processed',
            'uploaded_by',
            'uploaded_by_name',
            'created_at',
        ]
        read_only_fields = fields


class UploadUrlRequestSerializer(serializers.Serializer):
    """POST /api/orders/{id}/files/upload-url/"""
    file_name = serializers.CharField(max_length=255)
    file_size = serializers.IntegerField(min_value=1)
    category = serializers.ChoiceField(choices=FileCategoryChoices.choices)
    mime_type = serializers.CharField(max_length=100, required=False, allow_blank=True)


class ProcessUploadSerializer(serializers.Serializer):
    """POST /api/orders/{id}/files/process-upload/"""
    storage_key = serializers.CharField(max_length=512)
    file_name = serializers.CharField(max_length=255)
    file_size = serializers.IntegerField(min_value=1)
    mime_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=FileCategoryChoices.choices)
