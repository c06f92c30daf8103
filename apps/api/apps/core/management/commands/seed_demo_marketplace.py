"""
Seed demo accounts for local development.

Creates one patient and one approved clinic (manager + doctor) with a
small pricelist. Safe to run repeatedly.
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.authz.models import RoleChoices, User
from apps.authz.services import register_user
from apps.clinics.models import Clinic, ClinicMember, MemberRoleChoices, PricelistItem, SpecialtyChoices

DEMO_PASSWORD = 'demo12345'

DEMO_PRICELIST = [
    (SpecialtyChoices.THERAPY, 'THER-FILL', 'Composite filling', Decimal('4500.00'), Decimal('7000.00')),
    (SpecialtyChoices.THERAPY, 'THER-ENDO', 'Root canal treatment', Decimal('12000.00'), Decimal('18000.00')),
    (SpecialtyChoices.SURGERY, 'SURG-EXTR', 'Tooth extraction', Decimal('3000.00'), Decimal('6000.00')),
    (SpecialtyChoices.ORTHOPEDICS, 'ORTH-CROWN', 'Ceramic crown', Decimal('25000.00'), Decimal('40000.00')),
    (SpecialtyChoices.HYGIENE, 'HYG-CLEAN', 'Professional cleaning', Decimal('3500.00'), Decimal('3500.00')),
]


class Command(BaseCommand):
    help = 'Create demo patient, clinic staff and pricelist (development only)'

    def _ensure_user(self, email, role):
        user = User.objects.filter(email=email).first()
        if user is None:
            user = register_user(email, DEMO_PASSWORD, role, first_name='Demo')
            self.stdout.write(self.style.SUCCESS(f'Created {role} "{email}"'))
        return user

    @transaction.atomic
    def handle(self, *args, **options):
        self._ensure_user('patient@demo.local', RoleChoices.PATIENT)
        manager = self._ensure_user('manager@demo.local', RoleChoices.CLINIC_MANAGER)
        doctor = self._ensure_user('doctor@demo.local', RoleChoices.CLINIC_DOCTOR)

        clinic, created = Clinic.objects.get_or_create(
            license_number='DEMO-0001',
            defaults={
                'name': 'Demo Dental Clinic',
                'city': 'Moscow',
                'district': 'Central',
                'price_segment': 'business',
                'is_active': True,
            }
        )
        if created:
            self.stdout.write(self.style.SUCCESS(f'Created clinic "{clinic.name}"'))

        ClinicMember.objects.get_or_create(
            user=manager, defaults={'clinic': clinic, 'member_role': MemberRoleChoices.MANAGER}
        )
        ClinicMember.objects.get_or_create(
            user=doctor, defaults={'clinic': clinic, 'member_role': MemberRoleChoices.DOCTOR}
        )

        for specialty, code, name, price_from, price_to in DEMO_PRICELIST:
            PricelistItem.objects.get_or_create(
                clinic=clinic,
                procedure_code=code,
                is_active=True,
                defaults={
                    'specialty': specialty,
                    'procedure_name': name,
                    'price_from': price_from,
                    'price_to': price_to,
                }
            )

        self.stdout.write(self.style.SUCCESS(f'Demo marketplace ready (password: {DEMO_PASSWORD})'))
