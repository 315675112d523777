"""
Labs models: laboratory, clinic

A laboratory is the tenant root. Clinics hang off a laboratory and own
the doctors, assistants and clinic admins that place orders.
"""
import uuid
from django.db import models


class Laboratory(models.Model):
    """Dental laboratory (tenant)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    address = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'laboratory'
        verbose_name = 'Laboratory'
        verbose_name_plural = 'Laboratories'
        ordering = ['name']

    def __str__(self):
        return self.name


class Clinic(models.Model):
    """
    Dental clinic served by a laboratory.

    Clinics are deactivated rather than deleted once they have orders.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    laboratory = models.ForeignKey(
        Laboratory,
        on_delete=models.PROTECT,
        related_name='clinics'
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    address = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic'
        verbose_name = 'Clinic'
        verbose_name_plural = 'Clinics'
        ordering = ['name']
        indexes = [
            models.Index(fields=['laboratory'], name='idx_clinic_laboratory'),
            models.Index(fields=['is_active'], name='idx_clinic_active'),
        ]

    def __str__(self):
        return self.name
