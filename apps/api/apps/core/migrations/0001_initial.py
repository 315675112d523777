# Initial migration for core app - audit_log

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        ('files', '0001_initial'),
        ('notifications', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('action', models.CharField(
                    choices=[
                        ('LOGIN', 'Login'),
                        ('LOGOUT', 'Logout'),
                        ('REGISTER', 'Register'),
                        ('USER_APPROVED', 'User approved'),
                        ('USER_REJECTED', 'User rejected'),
                        ('CREATE', 'Create'),
                        ('UPDATE', 'Update'),
                        ('DELETE', 'Delete'),
                        ('STATUS_CHANGE', 'Status change'),
                        ('FILE_UPLOAD', 'File upload'),
                        ('FILE_DOWNLOAD', 'File download'),
                        ('FILE_DELETE', 'File delete'),
                        ('ALERT_SENT', 'Alert sent'),
                        ('ALERT_READ', 'Alert read'),
                    ],
                    max_length=20
                )),
                ('entity_type', models.CharField(max_length=50)),
                ('entity_id', models.CharField(max_length=64)),
                ('old_value', models.TextField(blank=True, null=True)),
                ('new_value', models.TextField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.CharField(blank=True, max_length=64, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255, null=True)),
                ('user', models.ForeignKey(blank=True, help_text='User who performed the action (null for system actions)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='orders.order')),
                ('file', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='files.orderfile')),
                ('alert', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='notifications.alert')),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'db_table': 'audit_log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['created_at'], name='idx_audit_created_at'),
                    models.Index(fields=['action'], name='idx_audit_action'),
                    models.Index(fields=['entity_type', 'entity_id'], name='idx_audit_entity'),
                    models.Index(fields=['user'], name='idx_audit_user'),
                    models.Index(fields=['order'], name='idx_audit_order'),
                ],
            },
        ),
    ]
