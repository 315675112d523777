"""
Core serializers: cron query parameters, diagnostics.
"""
from rest_framework import serializers


class CleanupQuerySerializer(serializers.Serializer):
    """Query string of the cron cleanup endpoint."""
    batch_size = serializers.IntegerField(min_value=1, max_value=500, default=100)
    dry_run = serializers.BooleanField(default=False)


class ServiceStatusSerializer(serializers.Serializer):
    """Service health status."""
    name = serializers.CharField()
    status = serializers.CharField()
    details = serializers.DictField(required=False)


class RedisInfoSerializer(serializers.Serializer):
    """Redis information."""
    connected_clients = serializers.IntegerField()
    used_memory = serializers.CharField()
    uptime_days = serializers.IntegerField()


class BucketSerializer(serializers.Serializer):
    """MinIO bucket information."""
    name = serializers.CharField()
    accessible = serializers.BooleanField()
    error = serializers.CharField(required=False)


class SystemDiagnosticsSerializer(serializers.Serializer):
    """Complete system diagnostics."""
    timestamp = serializers.DateTimeField()
    services = ServiceStatusSerializer(many=True)
    redis = RedisInfoSerializer()
    orders_bucket = BucketSerializer()
    counts = serializers.DictField(child=serializers.IntegerField())
