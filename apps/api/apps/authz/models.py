"""
Authz models: auth_user, doctor_clinic, doctor_assistant
"""
import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin


# ============================================================================
# Enums
# ============================================================================

class RoleChoices(models.TextChoices):
    """
    Fixed application roles. Every user has exactly one.

    - ADMIN: platform administrator (approves registrations)
    - LAB_ADMIN / LAB_COLLABORATOR: laboratory staff
    - CLINIC_ADMIN / DOCTOR / CLINIC_ASSISTANT: clinic staff
    """
    ADMIN = 'ADMIN', 'Admin'
    LAB_ADMIN = 'LAB_ADMIN', 'Lab admin'
    LAB_COLLABORATOR = 'LAB_COLLABORATOR', 'Lab collaborator'
    CLINIC_ADMIN = 'CLINIC_ADMIN', 'Clinic admin'
    DOCTOR = 'DOCTOR', 'Doctor'
    CLINIC_ASSISTANT = 'CLINIC_ASSISTANT', 'Clinic assistant'


LAB_ROLES = frozenset({RoleChoices.LAB_ADMIN, RoleChoices.LAB_COLLABORATOR})
CLINIC_ROLES = frozenset({
    RoleChoices.CLINIC_ADMIN,
    RoleChoices.DOCTOR,
    RoleChoices.CLINIC_ASSISTANT,
})


# ============================================================================
# User Management
# ============================================================================

class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_approved', True)
        extra_fields.setdefault('role', RoleChoices.ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Application user.

    Tenant links depend on role:
    - laboratory: set for LAB_ADMIN / LAB_COLLABORATOR
    - clinic: set for CLINIC_ADMIN / CLINIC_ASSISTANT
    - doctors reach clinics through DoctorClinic; active_clinic is the one
      new orders go to

    Self-registered users start with is_approved=False and cannot log in
    until an ADMIN approves them.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255)
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    role = models.CharField(
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.DOCTOR
    )
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Required for admin access

    is_approved = models.BooleanField(default=False)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_users'
    )

    laboratory = models.ForeignKey(
        'labs.Laboratory',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='staff'
    )
    clinic = models.ForeignKey(
        'labs.Clinic',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='staff'
    )
    active_clinic = models.ForeignKey(
        'labs.Clinic',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['email'], name='idx_user_email'),
            models.Index(fields=['role'], name='idx_user_role'),
            models.Index(fields=['is_approved'], name='idx_user_approved'),
        ]

    def __str__(self):
        return self.email

    @property
    def is_lab_user(self):
        return self.role in LAB_ROLES

    @property
    def is_clinic_user(self):
        return self.role in CLINIC_ROLES

    def get_laboratory_id(self):
        """
        Laboratory the user works for.

        Lab staff carry it directly; clinic staff inherit it from their clinic.
        """
        if self.laboratory_id:
            return self.laboratory_id
        clinic = self.clinic or self.active_clinic
        if clinic is not None:
            return clinic.laboratory_id
        if self.role == RoleChoices.DOCTOR:
            membership = self.doctor_clinics.select_related('clinic').first()
            if membership:
                return membership.clinic.laboratory_id
        return None


# ============================================================================
# Memberships
# ============================================================================

class DoctorClinic(models.Model):
    """
    Doctor membership in a clinic.

    BUSINESS RULE: a doctor has at least one membership and exactly one
    of them is primary.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    doctor = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='doctor_clinics'
    )
    clinic = models.ForeignKey(
        'labs.Clinic',
        on_delete=models.CASCADE,
        related_name='doctor_memberships'
    )
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'doctor_clinic'
        verbose_name = 'Doctor Clinic'
        verbose_name_plural = 'Doctor Clinics'
        unique_together = [('doctor', 'clinic')]
        indexes = [
            models.Index(fields=['clinic'], name='idx_doctor_clinic_clinic'),
        ]

    def __str__(self):
        return f"{self.doctor.email} @ {self.clinic.name}"


class DoctorAssistant(models.Model):
    """Assignment of a clinic assistant to a doctor."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    doctor = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='assistant_assignments'
    )
    assistant = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='doctor_assignments'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'doctor_assistant'
        verbose_name = 'Doctor Assistant'
        verbose_name_plural = 'Doctor Assistants'
        unique_together = [('doctor', 'assistant')]

    def __str__(self):
        return f"{self.assistant.email} -> {self.doctor.email}"
