"""
Management command to create a demo laboratory, clinic and one user per role.

Usage:
    python manage.py seed_demo_users [--password secret]

This command is idempotent and safe to run multiple times.
FOR DEVELOPMENT ONLY.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.authz.models import DoctorAssistant, DoctorClinic, RoleChoices, User
from apps.labs.models import Clinic, Laboratory

DEMO_LAB_NAME = 'Laboratorio Demo'
DEMO_CLINIC_NAME = 'Clínica Demo'

DEMO_USERS = [
    ('lab.admin@demo.labwise', 'Ana Laboratorio', RoleChoices.LAB_ADMIN),
    ('lab.colaborador@demo.labwise', 'Luis Técnico', RoleChoices.LAB_COLLABORATOR),
    ('clinica.admin@demo.labwise', 'Carla Clínica', RoleChoices.CLINIC_ADMIN),
    ('doctor@demo.labwise', 'Dr. Daniel Demo', RoleChoices.DOCTOR),
    ('asistente@demo.labwise', 'Sofía Asistente', RoleChoices.CLINIC_ASSISTANT),
]


class Command(BaseCommand):
    help = 'Ensure a demo laboratory, clinic and one approved user per role exist'

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            default='demo1234',
            help='Password set on every demo user (default: demo1234)'
        )

    @transaction.atomic
    def handle(self, *args, **options):
        laboratory, created = Laboratory.objects.get_or_create(name=DEMO_LAB_NAME)
        self._report('laboratory', laboratory.name, created)

        clinic, created = Clinic.objects.get_or_create(
            name=DEMO_CLINIC_NAME,
            laboratory=laboratory,
        )
        self._report('clinic', clinic.name, created)

        users = {}
        for email, name, role in DEMO_USERS:
            user, created = User.objects.get_or_create(
                email=email,
                defaults={'name': name, 'role': role, 'is_approved': True},
            )
            user.set_password(options['password'])
            if role in (RoleChoices.LAB_ADMIN, RoleChoices.LAB_COLLABORATOR):
                user.laboratory = laboratory
            elif role == RoleChoices.DOCTOR:
                user.active_clinic = clinic
            else:
                user.clinic = clinic
            user.save()
            users[role] = user
            self._report('user', email, created)

        doctor = users[RoleChoices.DOCTOR]
        DoctorClinic.objects.get_or_create(
            doctor=doctor,
            clinic=clinic,
            defaults={'is_primary': True},
        )
        DoctorAssistant.objects.get_or_create(
            doctor=doctor,
            assistant=users[RoleChoices.CLINIC_ASSISTANT],
        )

        self.stdout.write(self.style.SUCCESS('Done'))

    def _report(self, kind, label, created):
        if created:
            self.stdout.write(self.style.SUCCESS(f'  Created {kind}: {label}'))
        else:
            self.stdout.write(f'  - {kind} exists: {label}')
