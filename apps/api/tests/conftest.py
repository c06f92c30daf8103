"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Authenticated API clients by role
- Model instances (Study, TreatmentPlan, Clinic, PricelistItem, OfferRequest, Offer)
"""
import datetime
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.authz.identity import resolve_caller
from apps.authz.models import RoleChoices, User
from apps.clinics.models import Clinic, ClinicMember, MemberRoleChoices, PricelistItem
from apps.offers.models import Offer, OfferRequest
from apps.patients.models import Patient
from apps.plans.models import PlanItem, TreatmentPlan
from apps.studies.models import Study


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    """Keep uploaded artifacts and reports out of the source tree."""
    settings.MEDIA_ROOT = str(tmp_path)
    return tmp_path


# ============================================================================
# Users
# ============================================================================

def make_user(email, role):
    return User.objects.create_user(email=email, password='testpass123', role=role)


def make_patient_user(email='patient@test.com', **profile):
    user = make_user(email, RoleChoices.PATIENT)
    Patient.objects.create(user=user, first_name='Test', last_name='Patient', **profile)
    return user


def make_clinic(name='Smile Clinic', license_number='LIC-001', city='Moscow', district='Central',
                price_segment='business', is_active=True):
    return Clinic.objects.create(
        name=name,
        license_number=license_number,
        city=city,
        district=district,
        price_segment=price_segment,
        is_active=is_active,
    )


def make_clinic_user(clinic, email, member_role=MemberRoleChoices.MANAGER):
    role = RoleChoices.CLINIC_MANAGER if member_role == MemberRoleChoices.MANAGER else RoleChoices.CLINIC_DOCTOR
    user = make_user(email, role)
    ClinicMember.objects.create(user=user, clinic=clinic, member_role=member_role)
    return user


def client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def patient_user(db):
    return make_patient_user()


@pytest.fixture
def patient(patient_user):
    return patient_user.patient_profile


@pytest.fixture
def patient_caller(patient_user):
    return resolve_caller(patient_user)


@pytest.fixture
def patient_client(patient_user):
    return client_for(patient_user)


@pytest.fixture
def other_patient_user(db):
    return make_patient_user(email='other.patient@test.com')


@pytest.fixture
def other_patient_caller(other_patient_user):
    return resolve_caller(other_patient_user)


@pytest.fixture
def other_patient_client(other_patient_user):
    return client_for(other_patient_user)


@pytest.fixture
def clinic(db):
    """Approved clinic."""
    return make_clinic()


@pytest.fixture
def other_clinic(db):
    return make_clinic(name='Bright Teeth', license_number='LIC-002', district='North')


@pytest.fixture
def manager_user(clinic):
    return make_clinic_user(clinic, 'manager@test.com')


@pytest.fixture
def manager_caller(manager_user):
    return resolve_caller(manager_user)


@pytest.fixture
def manager_client(manager_user):
    return client_for(manager_user)


@pytest.fixture
def doctor_user(clinic):
    return make_clinic_user(clinic, 'doctor@test.com', member_role=MemberRoleChoices.DOCTOR)


@pytest.fixture
def doctor_caller(doctor_user):
    return resolve_caller(doctor_user)


@pytest.fixture
def doctor_client(doctor_user):
    return client_for(doctor_user)


@pytest.fixture
def other_manager_user(other_clinic):
    return make_clinic_user(other_clinic, 'other.manager@test.com')


@pytest.fixture
def other_manager_caller(other_manager_user):
    return resolve_caller(other_manager_user)


@pytest.fixture
def other_manager_client(other_manager_user):
    return client_for(other_manager_user)


# ============================================================================
# Studies and plans
# ============================================================================

@pytest.fixture
def make_study(db):
    def _make(patient, status='created', **fields):
        fields.setdefault('modality', 'CBCT')
        fields.setdefault('study_date', datetime.date(2025, 3, 1))
        return Study.objects.create(patient=patient, status=status, **fields)
    return _make


@pytest.fixture
def study(patient, make_study):
    return make_study(patient)


@pytest.fixture
def processing_study(patient, make_study):
    return make_study(patient, status='processing', analysis_uid='remote-uid-1')


@pytest.fixture
def make_plan(db):
    def _make(study, items=None, version=1, source='diagnocat'):
        plan = TreatmentPlan.objects.create(study=study, version=version, source=source)
        for item in items or [
            {'specialty': 'therapy', 'procedure_code': 'THER-FILL', 'procedure_name': 'Composite filling',
             'tooth_number': 16, 'quantity': 1},
            {'specialty': 'surgery', 'procedure_code': 'SURG-EXTR', 'procedure_name': 'Tooth extraction',
             'tooth_number': 38, 'quantity': 1},
        ]:
            PlanItem.objects.create(plan=plan, **item)
        return plan
    return _make


@pytest.fixture
def completed_study(patient, make_study):
    return make_study(patient, status='completed', analysis_uid='remote-uid-2')


@pytest.fixture
def plan(completed_study, make_plan):
    return make_plan(completed_study)


# ============================================================================
# Pricelist and offers
# ============================================================================

@pytest.fixture
def make_pricelist_item(db):
    def _make(clinic, procedure_code='THER-FILL', specialty='therapy', procedure_name='Composite filling',
              price_from='4000.00', price_to='6000.00'):
        return PricelistItem.objects.create(
            clinic=clinic,
            specialty=specialty,
            procedure_code=procedure_code,
            procedure_name=procedure_name,
            price_from=Decimal(price_from),
            price_to=Decimal(price_to),
        )
    return _make


@pytest.fixture
def offer_request(patient, plan):
    offer_request = OfferRequest.objects.create(patient=patient, plan=plan)
    offer_request.selected_items.set(plan.items.all())
    return offer_request


@pytest.fixture
def make_offer(db):
    def _make(offer_request, clinic, total_price='10000.00', status='pending'):
        return Offer.objects.create(
            offer_request=offer_request,
            clinic=clinic,
            total_price=Decimal(total_price),
            status=status,
        )
    return _make
