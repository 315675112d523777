# Initial migration for files app - order_file

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='OrderFile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('file_name', models.CharField(max_length=255)),
                ('original_name', models.CharField(max_length=255)),
                ('file_type', models.CharField(help_text='Lowercase extension without dot', max_length=10)),
                ('file_size', models.PositiveBigIntegerField()),
                ('mime_type', models.CharField(max_length=100)),
                ('category', models.CharField(
                    choices=[
                        ('scan_upper', 'Upper arch scan'),
                        ('scan_lower', 'Lower arch scan'),
                        ('mouth_photo', 'Mouth photo'),
                        ('other', 'Other'),
                    ],
                    max_length=20
                )),
                ('storage_key', models.CharField(max_length=512, unique=True)),
                ('storage_url', models.CharField(blank=True, max_length=1024)),
                ('thumbnail_key', models.CharField(blank=True, max_length=512)),
                ('thumbnail_url', models.CharField(blank=True, max_length=1024)),
                ('is_processed', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to='orders.order')),
                ('uploaded_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='uploaded_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Order File',
                'verbose_name_plural': 'Order Files',
                'db_table': 'order_file',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['order'], name='idx_order_file_order'),
                    models.Index(fields=['category'], name='idx_order_file_category'),
                    models.Index(fields=['deleted_at'], name='idx_order_file_deleted'),
                ],
            },
        ),
    ]
