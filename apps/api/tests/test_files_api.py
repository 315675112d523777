"""
Tests for order file endpoints.

Endpoints tested:
- POST /api/orders/{order_id}/files/upload-url/
- POST /api/orders/{order_id}/files/process-upload/
- GET /api/orders/{order_id}/files/
- GET/DELETE /api/orders/{order_id}/files/{id}/

Business Rules:
- Extension and size are checked per category before any URL is handed out
- Storage keys live under orders/{order_id}/ and are registered once
- Images are queued for a WebP thumbnail after the row commits
- NO actual MinIO interaction in tests - mock the client methods
"""
import io
import uuid
from unittest.mock import patch

import pytest
from PIL import Image

from apps.core.models import AuditActionChoices, AuditLog
from apps.files.models import OrderFile
from apps.files.tasks import generate_file_thumbnail
from apps.files.utils_storage import StorageError
from apps.orders.models import OrderStatusChoices


def _record_file(order, user, **fields):
    key = fields.pop('storage_key', f'orders/{order.id}/scan_upper/1700000000000-abcdef0123456789.stl')
    data = {
        'file_name': key.rsplit('/', 1)[-1],
        'original_name': 'upper.stl',
        'file_type': 'stl',
        'file_size': 1024,
        'mime_type': 'model/stl',
        'category': 'scan_upper',
        'is_processed': True,
    }
    data.update(fields)
    return OrderFile.objects.create(order=order, uploaded_by=user, storage_key=key, **data)


@pytest.mark.django_db
class TestUploadUrl:
    """POST /api/orders/{order_id}/files/upload-url/"""

    @patch('minio.Minio.presigned_put_object')
    def test_returns_presigned_url(self, mock_presign, doctor_client, draft_order):
        mock_presign.return_value = 'https://minio.test/lab-orders/signed'

        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/upload-url/',
            {'file_name': 'Upper Arch.STL', 'file_size': 2048, 'category': 'scan_upper'},
            format='json'
        )

        assert response.status_code == 200
        assert response.data['upload_url'] == 'https://minio.test/lab-orders/signed'
        assert response.data['expires_in'] == 300
        assert response.data['mime_type'] == 'model/stl'
        key = response.data['storage_key']
        assert key.startswith(f'orders/{draft_order.id}/scan_upper/')
        assert key.endswith('.stl')
        assert mock_presign.call_args.kwargs['object_name'] == key

    @patch('minio.Minio.presigned_put_object')
    def test_wrong_extension_for_category(self, mock_presign, doctor_client, draft_order):
        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/upload-url/',
            {'file_name': 'scan.pdf', 'file_size': 2048, 'category': 'scan_upper'},
            format='json'
        )

        assert response.status_code == 400
        assert response.data['error'].startswith('Tipo de archivo no permitido')
        mock_presign.assert_not_called()

    @patch('minio.Minio.presigned_put_object')
    def test_photo_too_large(self, mock_presign, doctor_client, draft_order):
        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/upload-url/',
            {'file_name': 'mouth.jpg', 'file_size': 11 * 1024 * 1024, 'category': 'mouth_photo'},
            format='json'
        )

        assert response.status_code == 400
        assert response.data['error'] == 'El archivo supera el máximo de 10MB'

    @patch('apps.files.views.generate_presigned_put_url', side_effect=StorageError('down'))
    def test_storage_failure(self, mock_presign, doctor_client, draft_order):
        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/upload-url/',
            {'file_name': 'mouth.jpg', 'file_size': 1024, 'category': 'mouth_photo'},
            format='json'
        )
        assert response.status_code == 503

    def test_no_access_to_foreign_order(self, other_lab_admin_client, pending_order):
        response = other_lab_admin_client.post(
            f'/api/orders/{pending_order.id}/files/upload-url/',
            {'file_name': 'mouth.jpg', 'file_size': 1024, 'category': 'mouth_photo'},
            format='json'
        )
        assert response.status_code == 403


@pytest.mark.django_db
class TestProcessUpload:
    """POST /api/orders/{order_id}/files/process-upload/"""

    def _payload(self, order, **overrides):
        data = {
            'storage_key': f'orders/{order.id}/mouth_photo/1700000000000-0123456789abcdef.jpg',
            'file_name': 'sonrisa.jpg',
            'file_size': 4096,
            'mime_type': 'image/jpeg',
            'category': 'mouth_photo',
        }
        data.update(overrides)
        return data

    def test_records_file(self, doctor_client, draft_order, doctor):
        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/process-upload/', self._payload(draft_order), format='json'
        )

        assert response.status_code == 201
        assert response.data['original_name'] == 'sonrisa.jpg'
        assert response.data['file_name'] == '1700000000000-0123456789abcdef.jpg'
        assert response.data['is_processed'] is False

        order_file = OrderFile.objects.get(id=response.data['id'])
        assert order_file.uploaded_by == doctor
        assert order_file.storage_url.endswith(f'/lab-orders/{order_file.storage_key}')
        entry = AuditLog.objects.get(action=AuditActionChoices.FILE_UPLOAD)
        assert entry.metadata['category'] == 'mouth_photo'

    def test_scan_is_ready_immediately(self, doctor_client, draft_order):
        payload = self._payload(
            draft_order,
            storage_key=f'orders/{draft_order.id}/scan_lower/1700000000000-0123456789abcdef.ply',
            file_name='lower.ply',
            mime_type='',
            category='scan_lower',
        )
        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/process-upload/', payload, format='json'
        )

        assert response.status_code == 201
        assert response.data['mime_type'] == 'application/ply'
        assert response.data['is_processed'] is True

    def test_image_queues_thumbnail_on_commit(self, doctor_client, draft_order,
                                              django_capture_on_commit_callbacks):
        with patch('apps.files.tasks.generate_file_thumbnail.delay') as mock_delay:
            with django_capture_on_commit_callbacks(execute=True):
                response = doctor_client.post(
                    f'/api/orders/{draft_order.id}/files/process-upload/',
                    self._payload(draft_order),
                    format='json'
                )

        mock_delay.assert_called_once_with(str(response.data['id']))

    def test_key_of_another_order_is_refused(self, doctor_client, draft_order, make_order):
        other = make_order()
        payload = self._payload(
            draft_order, storage_key=f'orders/{other.id}/mouth_photo/1700000000000-0123456789abcdef.jpg'
        )
        response = doctor_client.post(
            f'/api/orders/{draft_order.id}/files/process-upload/', payload, format='json'
        )
        assert response.status_code == 400

    def test_same_key_twice_conflicts(self, doctor_client, draft_order):
        url = f'/api/orders/{draft_order.id}/files/process-upload/'
        doctor_client.post(url, self._payload(draft_order), format='json')
        response = doctor_client.post(url, self._payload(draft_order), format='json')
        assert response.status_code == 409


@pytest.mark.django_db
class TestListAndDownload:

    @patch('minio.Minio.presigned_get_object')
    def test_list_with_urls(self, mock_presign, doctor_client, draft_order, doctor):
        mock_presign.return_value = 'https://minio.test/signed-get'
        _record_file(draft_order, doctor)
        _record_file(
            draft_order, doctor,
            storage_key=f'orders/{draft_order.id}/mouth_photo/1-aa.jpg',
            category='mouth_photo',
            thumbnail_key=f'orders/{draft_order.id}/mouth_photo/1-aa-thumb.webp',
        )

        response = doctor_client.get(f'/api/orders/{draft_order.id}/files/')

        assert response.status_code == 200
        assert len(response.data['files']) == 2
        assert all(f['download_url'] == 'https://minio.test/signed-get' for f in response.data['files'])

        photos = doctor_client.get(f'/api/orders/{draft_order.id}/files/?category=mouth_photo')
        assert len(photos.data['files']) == 1
        assert photos.data['files'][0]['thumbnail_url'] == 'https://minio.test/signed-get'

    @patch('minio.Minio.presigned_get_object')
    def test_download_is_audited(self, mock_presign, lab_admin_client, pending_order, doctor):
        mock_presign.return_value = 'https://minio.test/signed-get'
        order_file = _record_file(pending_order, doctor)

        response = lab_admin_client.get(f'/api/orders/{pending_order.id}/files/{order_file.id}/')

        assert response.status_code == 200
        assert response.data['download_url'] == 'https://minio.test/signed-get'
        assert response.data['thumbnail_url'] is None
        assert AuditLog.objects.filter(action=AuditActionChoices.FILE_DOWNLOAD).count() == 1

    def test_unknown_file(self, doctor_client, draft_order):
        response = doctor_client.get(f'/api/orders/{draft_order.id}/files/{uuid.uuid4()}/')
        assert response.status_code == 404


@pytest.mark.django_db
class TestDelete:

    @patch('minio.Minio.remove_objects', return_value=iter([]))
    def test_uploader_deletes(self, mock_remove, doctor_client, draft_order, doctor):
        order_file = _record_file(draft_order, doctor, thumbnail_key='orders/x/thumb.webp')

        response = doctor_client.delete(f'/api/orders/{draft_order.id}/files/{order_file.id}/')

        assert response.status_code == 204
        order_file.refresh_from_db()
        assert order_file.deleted_at is not None
        deleted = [obj._name for obj in mock_remove.call_args.args[1]]
        assert deleted == [order_file.storage_key, 'orders/x/thumb.webp']

    @patch('minio.Minio.remove_objects', return_value=iter([]))
    def test_submitted_order_files_are_locked(self, mock_remove, doctor_client, pending_order, doctor):
        order_file = _record_file(pending_order, doctor)

        response = doctor_client.delete(f'/api/orders/{pending_order.id}/files/{order_file.id}/')

        assert response.status_code == 403
        assert response.data['error'] == 'Solo puedes eliminar archivos en órdenes con estado DRAFT o NEEDS_INFO'
        mock_remove.assert_not_called()

    @patch('minio.Minio.remove_objects', return_value=iter([]))
    def test_lab_uploader_can_not_delete_on_completed_order(self, mock_remove, lab_collaborator_client,
                                                            make_order, lab_collaborator):
        order = make_order(status=OrderStatusChoices.COMPLETED)
        order_file = _record_file(order, lab_collaborator)

        response = lab_collaborator_client.delete(f'/api/orders/{order.id}/files/{order_file.id}/')

        assert response.status_code == 403
        order_file.refresh_from_db()
        assert order_file.deleted_at is None
        mock_remove.assert_not_called()

    @patch('minio.Minio.remove_objects', return_value=iter([]))
    def test_clinic_deletes_lab_file_while_needs_info(self, mock_remove, doctor_client, make_order, lab_admin):
        order = make_order(status=OrderStatusChoices.NEEDS_INFO)
        order_file = _record_file(order, lab_admin)

        response = doctor_client.delete(f'/api/orders/{order.id}/files/{order_file.id}/')

        assert response.status_code == 204

    @patch('minio.Minio.remove_objects', return_value=iter([]))
    def test_deleted_file_is_hidden(self, mock_remove, doctor_client, draft_order, doctor):
        order_file = _record_file(draft_order, doctor)
        doctor_client.delete(f'/api/orders/{draft_order.id}/files/{order_file.id}/')

        response = doctor_client.get(f'/api/orders/{draft_order.id}/files/{order_file.id}/')
        assert response.status_code == 404


def _png_bytes(size=(1600, 1200)):
    buf = io.BytesIO()
    Image.new('RGB', size, color=(200, 180, 170)).save(buf, format='PNG')
    return buf.getvalue()


@pytest.mark.django_db
class TestThumbnailTask:

    def test_generates_webp_thumbnail(self, draft_order, doctor):
        order_file = _record_file(
            draft_order, doctor,
            storage_key=f'orders/{draft_order.id}/mouth_photo/1-aa.png',
            mime_type='image/png',
            category='mouth_photo',
            is_processed=False,
        )

        with patch('apps.files.tasks.download_object', return_value=_png_bytes()), \
                patch('apps.files.tasks.upload_bytes') as mock_upload:
            generate_file_thumbnail(str(order_file.id))

        key, data, content_type = mock_upload.call_args.args
        assert key == f'orders/{draft_order.id}/mouth_photo/1-aa-thumb.webp'
        assert content_type == 'image/webp'
        assert Image.open(io.BytesIO(data)).size == (800, 600)

        order_file.refresh_from_db()
        assert order_file.is_processed is True
        assert order_file.thumbnail_key == key

    def test_failure_still_marks_processed(self, draft_order, doctor):
        order_file = _record_file(draft_order, doctor, mime_type='image/png', is_processed=False)

        with patch('apps.files.tasks.download_object', side_effect=StorageError('gone')):
            result = generate_file_thumbnail(str(order_file.id))

        assert result.startswith('Error generating thumbnail')
        order_file.refresh_from_db()
        assert order_file.is_processed is True
        assert order_file.thumbnail_key == ''

    def test_missing_file(self, db):
        file_id = str(uuid.uuid4())
        assert generate_file_thumbnail(file_id) == f'File {file_id} not found'
