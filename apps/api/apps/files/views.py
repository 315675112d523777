"""
Order file REST API endpoints.

Upload flow:
1. POST upload-url: validate, get a presigned PUT URL and a storage key
2. the client PUTs the bytes straight to MinIO
3. POST process-upload: record the file; images are queued for a thumbnail
"""
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.response import Response

from apps.authz.permissions import OrderParticipantPermission
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.core.observability import get_sanitized_logger, metrics
from apps.files.file_types import (
    FileValidationError,
    get_extension,
    requires_processing,
    resolve_mime_type,
    validate_upload,
)
from apps.files.models import OrderFile
from apps.files.serializers import (
    OrderFileSerializer,
    ProcessUploadSerializer,
    UploadUrlRequestSerializer,
)
from apps.files.utils_storage import (
    UPLOAD_URL_EXPIRES,
    StorageError,
    delete_objects,
    generate_presigned_get_url,
    generate_presigned_put_url,
    generate_storage_key,
    order_prefix,
    public_url,
)
from apps.orders.access import OrderAccessError, check_order_access

logger = get_sanitized_logger(__name__)


def _with_urls(order_file):
    data = OrderFileSerializer(order_file).data
    data['download_url'] = generate_presigned_get_url(order_file.storage_key)
    data['thumbnail_url'] = (
        generate_presigned_get_url(order_file.thumbnail_key) if order_file.thumbnail_key else None
    )
    return data


class OrderFileViewSet(viewsets.ViewSet):
    """
    ViewSet for the files of an order.

    Endpoints:
    - POST /api/orders/{order_id}/files/upload-url/
    - POST /api/orders/{order_id}/files/process-upload/
    - GET /api/orders/{order_id}/files/
    - GET /api/orders/{order_id}/files/{id}/ - Download URL
    - DELETE /api/orders/{order_id}/files/{id}/
    """
    permission_classes = [OrderParticipantPermission]

    def _get_order(self, request, order_id):
        return check_order_access(request.user, order_id)

    def _get_file(self, order, pk):
        return OrderFile.objects.select_related('uploaded_by').filter(
            id=pk, order=order, deleted_at__isnull=True
        ).first()

    def list(self, request, order_id=None):
        try:
            order = self._get_order(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        files = order.files.filter(deleted_at__isnull=True).select_related('uploaded_by')
        category = request.query_params.get('category')
        if category:
            files = files.filter(category=category)

        try:
            data = [_with_urls(order_file) for order_file in files]
        except StorageError:
            logger.exception('Presigning file URLs failed', extra={'order_id': str(order.id)})
            return Response(
                {'error': 'Error al generar URLs de descarga'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return Response({'files': data})

    def retrieve(self, request, order_id=None, pk=None):
        """Presigned download URL for one file."""
        try:
            order = self._get_order(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        order_file = self._get_file(order, pk)
        if order_file is None:
            return Response({'error': 'Archivo no encontrado'}, status=status.HTTP_404_NOT_FOUND)

        try:
            data = _with_urls(order_file)
        except StorageError:
            logger.exception('Presigning download URL failed', extra={'file_id': str(order_file.id)})
            return Response(
                {'error': 'Error al generar URL de descarga'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )

        log_audit(
            AuditActionChoices.FILE_DOWNLOAD,
            'OrderFile',
            order_file.id,
            user=request.user,
            metadata={'category': order_file.category},
            order=order,
            file=order_file,
            request=request,
        )
        return Response(data)

    def upload_url(self, request, order_id=None):
        """
        Validate an upcoming upload and hand out a presigned PUT URL.

        Response:
        - upload_url: PUT target, valid 300 seconds
        - storage_key: pass back to process-upload
        - expires_in: seconds
        """
        try:
            order = self._get_order(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        serializer = UploadUrlRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            extension = validate_upload(data['category'], data['file_name'], data['file_size'])
        except FileValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        storage_key = generate_storage_key(order.id, data['category'], extension)
        try:
            upload_url = generate_presigned_put_url(storage_key)
        except StorageError:
            logger.exception('Presigning upload URL failed', extra={'order_id': str(order.id)})
            return Response(
                {'error': 'Error al generar URL de carga'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )

        return Response({
            'upload_url': upload_url,
            'storage_key': storage_key,
            'mime_type': resolve_mime_type(data['file_name'], data.get('mime_type')),
            'expires_in': int(UPLOAD_URL_EXPIRES.total_seconds()),
        })

    def process_upload(self, request, order_id=None):
        """Record a file that was PUT to storage."""
        try:
            order = self._get_order(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        serializer = ProcessUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        storage_key = data['storage_key']
        if not storage_key.startswith(order_prefix(order.id)) or '..' in storage_key:
            return Response(
                {'error': 'La clave de almacenamiento no pertenece a esta orden'},
                status=status.HTTP_400_BAD_REQUEST
            )
        try:
            validate_upload(data['category'], data['file_name'], data['file_size'])
        except FileValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        if OrderFile.objects.filter(storage_key=storage_key).exists():
            return Response(
                {'error': 'Este archivo ya fue registrado'},
                status=status.HTTP_409_CONFLICT
            )

        mime_type = resolve_mime_type(data['file_name'], data.get('mime_type'))
        order_file = OrderFile.objects.create(
            order=order,
            uploaded_by=request.user,
            file_name=storage_key.rsplit('/', 1)[-1],
            original_name=data['file_name'],
            file_type=get_extension(data['file_name']),
            file_size=data['file_size'],
            mime_type=mime_type,
            category=data['category'],
            storage_key=storage_key,
            storage_url=public_url(storage_key),
            # Images wait for the thumbnail task
            is_processed=not requires_processing(mime_type),
        )

        log_audit(
            AuditActionChoices.FILE_UPLOAD,
            'OrderFile',
            order_file.id,
            user=request.user,
            metadata={
                'file_name': order_file.original_name,
                'file_size': order_file.file_size,
                'category': order_file.category,
            },
            order=order,
            file=order_file,
            request=request,
        )
        metrics.file_uploads_total.labels(category=order_file.category).inc()

        return Response(OrderFileSerializer(order_file).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, order_id=None, pk=None):
        """
        Remove a file and its thumbnail from storage and soft delete the row.

        Anyone with access to the order may delete, only while the order is
        editable (DRAFT or NEEDS_INFO).
        """
        try:
            order = self._get_order(request, order_id)
        except OrderAccessError as e:
            return Response({'error': e.message}, status=e.status_code)

        order_file = self._get_file(order, pk)
        if order_file is None:
            return Response({'error': 'Archivo no encontrado'}, status=status.HTTP_404_NOT_FOUND)

        if not order.is_editable:
            return Response(
                {'error': 'Solo puedes eliminar archivos en órdenes con estado DRAFT o NEEDS_INFO'},
                status=status.HTTP_403_FORBIDDEN
            )

        failed = delete_objects([order_file.storage_key, order_file.thumbnail_key])
        if failed:
            logger.warning(
                'Some storage objects could not be deleted',
                extra={'event': 'file_delete_partial', 'file_id': str(order_file.id), 'failed': len(failed)}
            )

        order_file.deleted_at = timezone.now()
        order_file.save(update_fields=['deleted_at', 'updated_at'])
        log_audit(
            AuditActionChoices.FILE_DELETE,
            'OrderFile',
            order_file.id,
            user=request.user,
            metadata={'file_name': order_file.original_name, 'storage_failures': sorted(failed)},
            order=order,
            file=order_file,
            request=request,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
