"""
Orders models: order, tooth, order_comment, trial_record
"""
import uuid
from django.conf import settings
from django.core.validators import MaxLengthValidator, MinLengthValidator
from django.db import models


# ============================================================================
# Enums
# ============================================================================

class OrderStatusChoices(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    PENDING_REVIEW = 'PENDING_REVIEW', 'Pending review'
    MATERIALS_SENT = 'MATERIALS_SENT', 'Materials sent'
    NEEDS_INFO = 'NEEDS_INFO', 'Needs info'
    IN_PROGRESS = 'IN_PROGRESS', 'In progress'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class CaseTypeChoices(models.TextChoices):
    NUEVO = 'nuevo', 'Nuevo'
    GARANTIA = 'garantia', 'Garantía'
    REPARACION_AJUSTE = 'reparacion_ajuste', 'Reparación / ajuste'
    REGRESO_PRUEBA = 'regreso_prueba', 'Regreso de prueba'


class ScannerTypeChoices(models.TextChoices):
    ITERO = 'iTero', 'iTero'
    MEDIT = 'Medit', 'Medit'
    THREE_SHAPE = 'ThreeShape', '3Shape'
    CARESTREAM = 'Carestream', 'Carestream'
    DENTAL_WINGS = 'DentalWings', 'Dental Wings'
    OTRO = 'Otro', 'Otro'


class SubmissionTypeChoices(models.TextChoices):
    PRUEBA = 'prueba', 'Prueba'
    TERMINADO = 'terminado', 'Terminado'


class TrialTypeChoices(models.TextChoices):
    ESTRUCTURA = 'estructura', 'Estructura'
    BISCOCHO = 'biscocho', 'Biscocho'
    ESTETICA = 'estetica', 'Estética'
    ENCERADO = 'encerado', 'Encerado'
    OCLUSION = 'oclusion', 'Oclusión'
    ALTURA_DVO = 'altura_dvo', 'Altura / DVO'
    COLOR = 'color', 'Color'
    ENCAJE = 'encaje', 'Encaje'
    RODETES = 'rodetes', 'Rodetes'
    DIENTES = 'dientes', 'Dientes'
    PROVISIONAL = 'provisional', 'Provisional'
    ALINEACION = 'alineacion', 'Alineación'
    METAL = 'metal', 'Metal'
    IMPLANTE = 'implante', 'Implante'


# Statuses in which clinic staff may still edit an order
EDITABLE_STATUSES = (OrderStatusChoices.DRAFT, OrderStatusChoices.NEEDS_INFO)


# ============================================================================
# Order
# ============================================================================

class Order(models.Model):
    """
    Dental work order.

    BUSINESS RULES:
    - status only moves along the edges in apps.orders.state_machine
    - editable by clinic staff only while DRAFT or NEEDS_INFO
    - deletable only while DRAFT (soft delete via deleted_at)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=50, unique=True)

    patient_name = models.CharField(max_length=255)
    patient_id = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    desired_delivery_date = models.DateField(null=True, blank=True)
    ai_prompt = models.TextField(blank=True)

    teeth_numbers = models.CharField(max_length=255, blank=True)
    initial_tooth_states = models.JSONField(null=True, blank=True)

    is_digital_scan = models.BooleanField(default=False)
    scanner_type = models.CharField(
        max_length=20,
        choices=ScannerTypeChoices.choices,
        blank=True
    )
    case_type = models.CharField(
        max_length=20,
        choices=CaseTypeChoices.choices,
        default=CaseTypeChoices.NUEVO
    )
    warranty_reason = models.TextField(blank=True)
    submission_type = models.CharField(
        max_length=20,
        choices=SubmissionTypeChoices.choices,
        blank=True
    )
    occlusion = models.JSONField(null=True, blank=True)
    articulated_by = models.CharField(max_length=50, blank=True)
    material_sent = models.JSONField(null=True, blank=True)
    is_urgent = models.BooleanField(default=False)

    status = models.CharField(
        max_length=20,
        choices=OrderStatusChoices.choices,
        default=OrderStatusChoices.DRAFT
    )

    clinic = models.ForeignKey(
        'labs.Clinic',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='doctor_orders'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='created_orders'
    )

    submitted_at = models.DateTimeField(null=True, blank=True)
    materials_sent_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'dental_order'
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_order_status'),
            models.Index(fields=['clinic'], name='idx_order_clinic'),
            models.Index(fields=['doctor'], name='idx_order_doctor'),
            models.Index(fields=['completed_at'], name='idx_order_completed_at'),
            models.Index(fields=['deleted_at'], name='idx_order_deleted_at'),
        ]

    def __str__(self):
        return self.order_number

    @property
    def is_editable(self):
        return self.status in EDITABLE_STATUSES


class Tooth(models.Model):
    """Per-tooth work details (FDI numbering 11-48)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='teeth'
    )
    tooth_number = models.CharField(max_length=2)
    material = models.CharField(max_length=100, blank=True)
    material_brand = models.CharField(max_length=100, blank=True)
    color_info = models.JSONField(null=True, blank=True)
    restoration_type = models.CharField(max_length=50, blank=True)
    is_implant_work = models.BooleanField(default=False)
    implant_info = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'order_tooth'
        verbose_name = 'Tooth'
        verbose_name_plural = 'Teeth'
        ordering = ['tooth_number']
        unique_together = [('order', 'tooth_number')]

    def __str__(self):
        return f"{self.order.order_number} #{self.tooth_number}"


class OrderComment(models.Model):
    """
    Comment thread on an order.

    BUSINESS RULE: internal comments are lab-only and hidden from clinic staff.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='order_comments'
    )
    content = models.TextField(
        validators=[MinLengthValidator(1), MaxLengthValidator(2000)]
    )
    is_internal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'order_comment'
        verbose_name = 'Order Comment'
        verbose_name_plural = 'Order Comments'
        ordering = ['created_at']

    def __str__(self):
        return f"Comment on {self.order.order_number} by {self.author.email}"


class TrialRecord(models.Model):
    """
    One fitting/approval round ("prueba") between the lab and the doctor.

    The lab records the trial; the doctor answers with approved/rejected
    plus notes, which completes it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='trials'
    )
    trial_type = models.CharField(max_length=20, choices=TrialTypeChoices.choices)
    note = models.TextField(blank=True)
    completed = models.BooleanField(default=False)
    recorded_at = models.DateTimeField(null=True, blank=True)
    approved = models.BooleanField(null=True, blank=True)
    client_notes = models.TextField(blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='recorded_trials'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'trial_record'
        verbose_name = 'Trial Record'
        verbose_name_plural = 'Trial Records'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.order.order_number} {self.trial_type}"
