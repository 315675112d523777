"""
Management command to purge expired completed orders.

Usage:
    python manage.py cleanup_orders
    python manage.py cleanup_orders --dry-run --batch-size 20
    python manage.py cleanup_orders --retention-days 30

Deletes stored files of COMPLETED orders older than ORDER_RETENTION_DAYS
and soft deletes the orders.
"""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.orders.cleanup import DEFAULT_BATCH_SIZE, cleanup_completed_orders


class Command(BaseCommand):
    help = 'Delete files of completed orders past the retention period and soft delete them'

    def add_arguments(self, parser):
        parser.add_argument('--retention-days', type=int, default=None)
        parser.add_argument('--batch-size', type=int, default=DEFAULT_BATCH_SIZE)
        parser.add_argument('--dry-run', action='store_true')

    def handle(self, *args, **options):
        retention_days = options['retention_days']
        if retention_days is None:
            retention_days = settings.ORDER_RETENTION_DAYS
        if retention_days < 0:
            raise CommandError('--retention-days must be zero or positive')
        if not 1 <= options['batch_size'] <= 500:
            raise CommandError('--batch-size must be between 1 and 500')

        result = cleanup_completed_orders(
            retention_days,
            batch_size=options['batch_size'],
            dry_run=options['dry_run'],
        )

        prefix = '[DRY RUN] ' if result['dry_run'] else ''
        self.stdout.write(
            self.style.SUCCESS(
                f"{prefix}Processed {result['orders_processed']} orders: "
                f"{result['orders_deleted']} deleted, "
                f"{result['files_deleted']} files removed, "
                f"{result['files_failed']} files failed"
            )
        )
        for error in result['errors']:
            self.stdout.write(self.style.WARNING(f'→ {error}'))
