"""
Tests for retention cleanup of completed orders.

Covers:
- cleanup_completed_orders service
- GET|POST /api/cron/cleanup-orders/ (shared-secret protected)
- cleanup_orders management command

Business Rules:
- Only COMPLETED orders past ORDER_RETENTION_DAYS are purged, oldest first
- Stored files and thumbnails are removed, rows are soft deleted
- A storage failure is reported but does not stop the batch
"""
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from apps.files.models import OrderFile
from apps.orders.cleanup import cleanup_completed_orders, expired_orders
from apps.orders.models import Order, OrderStatusChoices


@pytest.fixture
def make_completed(make_order, doctor):
    def _make(days_ago, with_file=True):
        order = make_order(
            status=OrderStatusChoices.COMPLETED,
            completed_at=timezone.now() - timedelta(days=days_ago),
        )
        if with_file:
            OrderFile.objects.create(
                order=order,
                uploaded_by=doctor,
                file_name='1-aa.jpg',
                original_name='foto.jpg',
                file_type='jpg',
                file_size=100,
                mime_type='image/jpeg',
                category='mouth_photo',
                storage_key=f'orders/{order.id}/mouth_photo/1-aa.jpg',
                thumbnail_key=f'orders/{order.id}/mouth_photo/1-aa-thumb.webp',
                is_processed=True,
            )
        return order
    return _make


@pytest.mark.django_db
class TestCleanupService:

    def test_selects_only_expired_completed(self, make_order, make_completed):
        old = make_completed(120, with_file=False)
        make_completed(10, with_file=False)
        make_order(status=OrderStatusChoices.IN_PROGRESS)

        assert list(expired_orders(retention_days=90)) == [old]

    def test_oldest_first_within_batch(self, make_completed):
        make_completed(100, with_file=False)
        oldest = make_completed(300, with_file=False)

        assert list(expired_orders(retention_days=90, batch_size=1)) == [oldest]

    @patch('apps.orders.cleanup.delete_objects', return_value={})
    def test_deletes_files_and_soft_deletes(self, mock_delete, make_completed):
        order = make_completed(120)

        result = cleanup_completed_orders(retention_days=90)

        assert result == {
            'orders_processed': 1,
            'orders_deleted': 1,
            'files_deleted': 2,
            'files_failed': 0,
            'errors': [],
            'dry_run': False,
        }
        mock_delete.assert_called_once_with([
            f'orders/{order.id}/mouth_photo/1-aa.jpg',
            f'orders/{order.id}/mouth_photo/1-aa-thumb.webp',
        ])
        order.refresh_from_db()
        assert order.deleted_at is not None
        assert order.files.get().deleted_at is not None

    @patch('apps.orders.cleanup.delete_objects')
    def test_storage_failures_are_reported(self, mock_delete, make_completed):
        order = make_completed(120)
        key = f'orders/{order.id}/mouth_photo/1-aa-thumb.webp'
        mock_delete.return_value = {key: 'AccessDenied'}

        result = cleanup_completed_orders(retention_days=90)

        assert result['files_deleted'] == 1
        assert result['files_failed'] == 1
        assert result['errors'] == [f'Failed to delete file {key}: AccessDenied']
        order.refresh_from_db()
        assert order.deleted_at is not None

    @patch('apps.orders.cleanup.delete_objects')
    def test_dry_run_changes_nothing(self, mock_delete, make_completed):
        order = make_completed(120)

        result = cleanup_completed_orders(retention_days=90, dry_run=True)

        assert result['orders_deleted'] == 1
        assert result['files_deleted'] == 2
        assert result['dry_run'] is True
        mock_delete.assert_not_called()
        order.refresh_from_db()
        assert order.deleted_at is None


@pytest.mark.django_db
class TestCronEndpoint:

    URL = '/api/cron/cleanup-orders/'

    @patch('apps.orders.cleanup.delete_objects', return_value={})
    def test_bearer_secret(self, mock_delete, api_client, make_completed):
        make_completed(120)

        response = api_client.get(self.URL, HTTP_AUTHORIZATION='Bearer test-cron-secret')

        assert response.status_code == 200
        assert response.data['success'] is True
        assert response.data['summary']['orders_deleted'] == 1
        assert 'errors' not in response.data

    def test_header_secret_and_dry_run(self, api_client, make_completed):
        order = make_completed(120)

        response = api_client.post(
            f'{self.URL}?dry_run=true&batch_size=5', HTTP_X_CRON_SECRET='test-cron-secret'
        )

        assert response.status_code == 200
        assert response.data['summary']['dry_run'] is True
        order.refresh_from_db()
        assert order.deleted_at is None

    def test_wrong_secret(self, api_client):
        response = api_client.get(self.URL, HTTP_AUTHORIZATION='Bearer nope')

        assert response.status_code == 401
        assert response.data == {'error': 'No autorizado'}

    def test_missing_secret_setting_refuses_everything(self, api_client, settings):
        settings.CRON_SECRET = ''
        response = api_client.get(self.URL, HTTP_AUTHORIZATION='Bearer ')
        assert response.status_code == 401

    def test_batch_size_out_of_range(self, api_client):
        response = api_client.get(f'{self.URL}?batch_size=501', HTTP_X_CRON_SECRET='test-cron-secret')

        assert response.status_code == 400
        assert 'batch_size' in response.data['details']

    @patch('apps.orders.cleanup.delete_objects')
    def test_errors_are_listed(self, mock_delete, api_client, make_completed):
        order = make_completed(120)
        mock_delete.return_value = {f'orders/{order.id}/mouth_photo/1-aa.jpg': 'boom'}

        response = api_client.get(self.URL, HTTP_X_CRON_SECRET='test-cron-secret')

        assert len(response.data['errors']) == 1
        assert 'errors' not in response.data['summary']


@pytest.mark.django_db
class TestCleanupCommand:

    @patch('apps.orders.cleanup.delete_objects', return_value={})
    def test_command(self, mock_delete, make_completed):
        make_completed(40)
        out = StringIO()

        call_command('cleanup_orders', '--retention-days', '30', stdout=out)

        assert 'Processed 1 orders: 1 deleted, 2 files removed, 0 files failed' in out.getvalue()
        assert Order.objects.filter(deleted_at__isnull=False).count() == 1

    def test_command_dry_run_uses_setting(self, make_completed):
        make_completed(40)
        out = StringIO()

        call_command('cleanup_orders', '--dry-run', stdout=out)

        assert out.getvalue().startswith('[DRY RUN] Processed 0 orders')

    def test_invalid_batch_size(self, db):
        with pytest.raises(CommandError):
            call_command('cleanup_orders', '--batch-size', '0')
