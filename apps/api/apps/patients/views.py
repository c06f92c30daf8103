"""
Patient profile endpoint.
"""
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.permissions import IsPatient
from apps.core.exceptions import NotFoundError
from .models import Patient
from .serializers import PatientProfileSerializer


class PatientMeView(CallerMixin, APIView):
    """
    GET/PATCH /api/v1/patients/me/

    The caller's own profile, including default offer preferences.
    """
    permission_classes = [IsPatient]

    def get_object(self):
        patient = Patient.objects.select_related('user').filter(id=self.caller.patient_id).first()
        if patient is None:
            raise NotFoundError('Patient profile not found')
        return patient

    def get(self, request):
        return Response(PatientProfileSerializer(self.get_object()).data)

    def patch(self, request):
        serializer = PatientProfileSerializer(self.get_object(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
