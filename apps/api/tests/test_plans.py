"""
Treatment plan store: versioning, immutability, access and estimates.
"""
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from rest_framework import status

from apps.clinics.models import Clinic
from apps.core.exceptions import ValidationError
from apps.plans.models import TreatmentPlan
from apps.plans.services import create_plan_version, validate_findings


pytestmark = pytest.mark.django_db


class TestVersioning:

    def test_versions_increase_per_study(self, completed_study):
        first = create_plan_version(completed_study, [])
        second = create_plan_version(completed_study, [], source='manual')

        assert (first.version, second.version) == (1, 2)
        assert second.source == 'manual'

    def test_versions_are_independent_between_studies(self, completed_study, patient, make_study):
        other = make_study(patient, status='completed')
        create_plan_version(completed_study, [])

        assert create_plan_version(other, []).version == 1

    def test_duplicate_version_violates_constraint(self, plan):
        with pytest.raises(IntegrityError):
            TreatmentPlan.objects.create(study=plan.study, version=plan.version)

    def test_saved_plan_is_immutable(self, plan):
        plan.source = 'modified'
        with pytest.raises(DjangoValidationError):
            plan.save()

    def test_unknown_source_rejected(self, completed_study):
        with pytest.raises(ValidationError):
            create_plan_version(completed_study, [], source='imported')


class TestFindingValidation:

    @pytest.mark.parametrize('finding', [
        {'specialty': 'cosmetics', 'procedure_name': 'Whitening'},
        {'specialty': 'therapy', 'procedure_name': ''},
        {'specialty': 'therapy', 'procedure_name': 'Filling', 'tooth_number': 19},
        {'specialty': 'therapy', 'procedure_name': 'Filling', 'tooth_number': 51},
        {'specialty': 'therapy', 'procedure_name': 'Filling', 'quantity': -2},
    ])
    def test_bad_finding_rejected(self, finding):
        with pytest.raises(ValidationError) as exc:
            validate_findings([finding])
        assert exc.value.details == {'finding_index': 0}

    def test_defaults_applied(self):
        [item] = validate_findings([{'specialty': 'surgery', 'procedure_name': 'Extraction', 'tooth_number': '48'}])

        assert item['tooth_number'] == 48
        assert item['quantity'] == 1
        assert item['procedure_code'] == ''


class TestPlanApi:

    def test_list_plans_ascending(self, patient_client, completed_study, make_plan):
        make_plan(completed_study, version=2, source='modified')
        make_plan(completed_study, version=1)

        response = patient_client.get('/api/v1/plans/', {'study': str(completed_study.id)})

        assert response.status_code == status.HTTP_200_OK
        assert [p['version'] for p in response.data] == [1, 2]
        assert len(response.data[0]['items']) == 2

    def test_list_requires_study_param(self, patient_client):
        response = patient_client.get('/api/v1/plans/')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_foreign_study_plans_not_found(self, other_patient_client, plan):
        response = other_patient_client.get('/api/v1/plans/', {'study': str(plan.study_id)})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_plan_detail(self, patient_client, plan):
        response = patient_client.get(f'/api/v1/plans/{plan.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['version'] == 1

    def test_foreign_plan_detail_not_found(self, other_patient_client, plan):
        response = other_patient_client.get(f'/api/v1/plans/{plan.id}/')
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestEstimate:

    def test_estimate_uses_active_items_of_active_clinics(
        self, patient_client, plan, clinic, other_clinic, make_pricelist_item
    ):
        make_pricelist_item(clinic, 'THER-FILL', price_from='4000.00', price_to='6000.00')
        make_pricelist_item(other_clinic, 'THER-FILL', price_from='3500.00', price_to='5000.00')
        make_pricelist_item(clinic, 'SURG-EXTR', specialty='surgery', procedure_name='Extraction',
                            price_from='3000.00', price_to='3000.00')

        inactive = make_pricelist_item(clinic, 'THER-FILL', price_from='100.00', price_to='100.00')
        inactive.is_active = False
        inactive.save()

        response = patient_client.get(f'/api/v1/plans/{plan.id}/estimate/')

        assert response.status_code == status.HTTP_200_OK
        therapy = response.data['estimates']['therapy']
        assert therapy['count'] == 1
        assert Decimal(therapy['min']) == Decimal('3500.00')
        assert Decimal(therapy['max']) == Decimal('6000.00')
        assert Decimal(response.data['total_min']) == Decimal('6500.00')
        assert Decimal(response.data['total_max']) == Decimal('9000.00')

    def test_unapproved_clinic_prices_ignored(self, patient_client, plan, make_pricelist_item):
        pending = Clinic.objects.create(name='New Clinic', license_number='LIC-NEW', city='Moscow', is_active=False)
        make_pricelist_item(pending, 'THER-FILL')

        response = patient_client.get(f'/api/v1/plans/{plan.id}/estimate/')

        therapy = response.data['estimates']['therapy']
        assert therapy['priced_count'] == 0
        assert Decimal(response.data['total_min']) == Decimal('0')

    def test_quantity_multiplies_prices(self, patient_client, completed_study, make_plan, clinic, make_pricelist_item):
        plan = make_plan(completed_study, items=[
            {'specialty': 'hygiene', 'procedure_code': 'HYG-CLEAN', 'procedure_name': 'Cleaning', 'quantity': 2},
        ])
        make_pricelist_item(clinic, 'HYG-CLEAN', specialty='hygiene', price_from='1000.00', price_to='1500.00')

        response = patient_client.get(f'/api/v1/plans/{plan.id}/estimate/')

        hygiene = response.data['estimates']['hygiene']
        assert Decimal(hygiene['min']) == Decimal('2000.00')
        assert Decimal(hygiene['max']) == Decimal('3000.00')
