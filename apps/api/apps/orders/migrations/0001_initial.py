# Initial migration for orders app - order, tooth, order_comment, trial_record

import uuid
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('labs', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_number', models.CharField(max_length=50, unique=True)),
                ('patient_name', models.CharField(max_length=255)),
                ('patient_id', models.CharField(blank=True, max_length=100)),
                ('description', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('desired_delivery_date', models.DateField(blank=True, null=True)),
                ('ai_prompt', models.TextField(blank=True)),
                ('teeth_numbers', models.CharField(blank=True, max_length=255)),
                ('initial_tooth_states', models.JSONField(blank=True, null=True)),
                ('is_digital_scan', models.BooleanField(default=False)),
                ('scanner_type', models.CharField(
                    blank=True,
                    choices=[
                        ('iTero', 'iTero'),
                        ('Medit', 'Medit'),
                        ('ThreeShape', '3Shape'),
                        ('Carestream', 'Carestream'),
                        ('DentalWings', 'Dental Wings'),
                        ('Otro', 'Otro'),
                    ],
                    max_length=20
                )),
                ('case_type', models.CharField(
                    choices=[
                        ('nuevo', 'Nuevo'),
                        ('garantia', 'Garantía'),
                        ('reparacion_ajuste', 'Reparación / ajuste'),
                        ('regreso_prueba', 'Regreso de prueba'),
                    ],
                    default='nuevo',
                    max_length=20
                )),
                ('warranty_reason', models.TextField(blank=True)),
                ('submission_type', models.CharField(
                    blank=True,
                    choices=[('prueba', 'Prueba'), ('terminado', 'Terminado')],
                    max_length=20
                )),
                ('occlusion', models.JSONField(blank=True, null=True)),
                ('articulated_by', models.CharField(blank=True, max_length=50)),
                ('material_sent', models.JSONField(blank=True, null=True)),
                ('is_urgent', models.BooleanField(default=False)),
                ('status', models.CharField(
                    choices=[
                        ('DRAFT', 'Draft'),
                        ('PENDING_REVIEW', 'Pending review'),
                        ('MATERIALS_SENT', 'Materials sent'),
                        ('NEEDS_INFO', 'Needs info'),
                        ('IN_PROGRESS', 'In progress'),
                        ('COMPLETED', 'Completed'),
                        ('CANCELLED', 'Cancelled'),
                    ],
                    default='DRAFT',
                    max_length=20
                )),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('materials_sent_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinic', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='labs.clinic')),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='doctor_orders', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='created_orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'db_table': 'dental_order',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_order_status'),
                    models.Index(fields=['clinic'], name='idx_order_clinic'),
                    models.Index(fields=['doctor'], name='idx_order_doctor'),
                    models.Index(fields=['completed_at'], name='idx_order_completed_at'),
                    models.Index(fields=['deleted_at'], name='idx_order_deleted_at'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Tooth',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tooth_number', models.CharField(max_length=2)),
                ('material', models.CharField(blank=True, max_length=100)),
                ('material_brand', models.CharField(blank=True, max_length=100)),
                ('color_info', models.JSONField(blank=True, null=True)),
                ('restoration_type', models.CharField(blank=True, max_length=50)),
                ('is_implant_work', models.BooleanField(default=False)),
                ('implant_info', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='teeth', to='orders.order')),
            ],
            options={
                'verbose_name': 'Tooth',
                'verbose_name_plural': 'Teeth',
                'db_table': 'order_tooth',
                'ordering': ['tooth_number'],
                'unique_together': {('order', 'tooth_number')},
            },
        ),
        migrations.CreateModel(
            name='OrderComment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('content', models.TextField(validators=[django.core.validators.MinLengthValidator(1), django.core.validators.MaxLengthValidator(2000)])),
                ('is_internal', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='orders.order')),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Order Comment',
                'verbose_name_plural': 'Order Comments',
                'db_table': 'order_comment',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='TrialRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('trial_type', models.CharField(
                    choices=[
                        ('estructura', 'Estructura'),
                        ('biscocho', 'Biscocho'),
                        ('estetica', 'Estética'),
                        ('encerado', 'Encerado'),
                        ('oclusion', 'Oclusión'),
                        ('altura_dvo', 'Altura / DVO'),
                        ('color', 'Color'),
                        ('encaje', 'Encaje'),
                        ('rodetes', 'Rodetes'),
                        ('dientes', 'Dientes'),
                        ('provisional', 'Provisional'),
                        ('alineacion', 'Alineación'),
                        ('metal', 'Metal'),
                        ('implante', 'Implante'),
                    ],
                    max_length=20
                )),
                ('note', models.TextField(blank=True)),
                ('completed', models.BooleanField(default=False)),
                ('recorded_at', models.DateTimeField(blank=True, null=True)),
                ('approved', models.BooleanField(blank=True, null=True)),
                ('client_notes', models.TextField(blank=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trials', to='orders.order')),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='recorded_trials', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Trial Record',
                'verbose_name_plural': 'Trial Records',
                'db_table': 'trial_record',
                'ordering': ['created_at'],
            },
        ),
    ]
