"""
Tests for registration, /me and the role gate.
"""
import pytest
from rest_framework import status

from apps.authz.identity import resolve_caller
from apps.authz.models import User
from apps.core.exceptions import ForbiddenError
from apps.patients.models import Patient


pytestmark = pytest.mark.django_db


class TestRegistration:

    def test_register_patient_creates_profile(self, api_client):
        response = api_client.post('/api/v1/auth/register/', {
            'email': 'new.patient@test.com',
            'password': 'strongpass123',
            'role': 'patient',
            'first_name': 'Anna',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['role'] == 'patient'
        user = User.objects.get(email='new.patient@test.com')
        assert Patient.objects.filter(user=user, first_name='Anna').exists()

    def test_register_clinic_manager_has_no_patient_profile(self, api_client):
        response = api_client.post('/api/v1/auth/register/', {
            'email': 'boss@clinic.com',
            'password': 'strongpass123',
            'role': 'clinic_manager',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert not Patient.objects.filter(user__email='boss@clinic.com').exists()

    def test_duplicate_email_is_conflict(self, api_client, patient_user):
        response = api_client.post('/api/v1/auth/register/', {
            'email': patient_user.email,
            'password': 'strongpass123',
            'role': 'patient',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error_type'] == 'conflict'

    def test_admin_role_cannot_self_register(self, api_client):
        response = api_client.post('/api/v1/auth/register/', {
            'email': 'root@test.com',
            'password': 'strongpass123',
            'role': 'admin',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'validation_error'
        assert not User.objects.filter(email='root@test.com').exists()


class TestMe:

    def test_me_returns_role_and_patient_id(self, patient_client, patient):
        response = patient_client.get('/api/v1/auth/me/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['role'] == 'patient'
        assert response.data['patient_id'] == str(patient.id)
        assert response.data['clinic_id'] is None

    def test_me_returns_clinic_id_for_staff(self, doctor_client, clinic):
        response = doctor_client.get('/api/v1/auth/me/')

        assert response.data['role'] == 'clinic_doctor'
        assert response.data['clinic_id'] == str(clinic.id)

    def test_me_requires_authentication(self, api_client):
        response = api_client.get('/api/v1/auth/me/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestCallerResolution:

    def test_unbound_clinic_user_has_no_clinic(self, db):
        user = User.objects.create_user(email='solo@clinic.com', password='x', role='clinic_manager')
        caller = resolve_caller(user)

        assert caller.is_clinic_manager
        assert caller.clinic_id is None
        with pytest.raises(ForbiddenError):
            caller.require_clinic()

    def test_patient_cannot_act_as_clinic(self, patient_caller):
        with pytest.raises(ForbiddenError):
            patient_caller.require_clinic()

    def test_role_mismatch_is_403(self, patient_client, manager_client):
        assert patient_client.get('/api/v1/clinic/pricelist/').status_code == status.HTTP_403_FORBIDDEN
        assert manager_client.get('/api/v1/studies/').status_code == status.HTTP_403_FORBIDDEN


class TestPatientProfile:

    def test_patch_preferences(self, patient_client, patient):
        response = patient_client.patch('/api/v1/patients/me/', {
            'preferred_city': 'Kazan',
            'preferred_price_segment': 'economy',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        patient.refresh_from_db()
        assert patient.preferred_city == 'Kazan'
        assert patient.preferred_price_segment == 'economy'

    def test_unknown_price_segment_rejected(self, patient_client):
        response = patient_client.patch('/api/v1/patients/me/', {
            'preferred_price_segment': 'luxury',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
