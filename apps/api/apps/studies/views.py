"""
Study views.

Patients only. The status endpoint is the polling target: clients repeat
it every ``poll_after_seconds`` until the status is terminal.
"""
from django.conf import settings
from django.http import HttpResponse
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.permissions import IsPatient
from apps.core.exceptions import ValidationError
from . import services
from .models import StudyStatusChoices
from .serializers import StudyCreateSerializer, StudySerializer, UploadTokenSerializer

TERMINAL = (StudyStatusChoices.COMPLETED, StudyStatusChoices.FAILED)


class StudyListCreateView(CallerMixin, APIView):
    """
    GET  /api/v1/studies/  - caller's studies, newest first
    POST /api/v1/studies/  - {modality, study_date}
    """
    permission_classes = [IsPatient]

    def get(self, request):
        studies = services.list_studies_for_patient(self.caller)
        return Response(StudySerializer(studies, many=True).data)

    def post(self, request):
        serializer = StudyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        study = services.create_study(
            self.caller,
            modality=serializer.validated_data['modality'],
            study_date=serializer.validated_data['study_date'],
        )
        return Response(StudySerializer(study).data, status=status.HTTP_201_CREATED)


class StudyDetailView(CallerMixin, APIView):
    """GET /api/v1/studies/{id}/"""
    permission_classes = [IsPatient]

    def get(self, request, pk):
        return Response(StudySerializer(services.get_study(self.caller, pk)).data)


class StudyInitUploadView(CallerMixin, APIView):
    """POST /api/v1/studies/{id}/init-upload/"""
    permission_classes = [IsPatient]

    def post(self, request, pk):
        token = services.init_upload(self.caller, pk)
        return Response(UploadTokenSerializer(token).data)


class StudyUploadView(CallerMixin, APIView):
    """POST /api/v1/studies/{id}/upload/ (multipart field ``file``)"""
    permission_classes = [IsPatient]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, pk):
        upload = request.FILES.get('file')
        if upload is None:
            raise ValidationError('Multipart field "file" is required')
        study = services.submit_file(self.caller, pk, upload, upload.name)
        return Response(StudySerializer(study).data, status=status.HTTP_202_ACCEPTED)


class StudyStatusView(CallerMixin, APIView):
    """GET /api/v1/studies/{id}/status/"""
    permission_classes = [IsPatient]

    def get(self, request, pk):
        current = services.get_status(self.caller, pk)
        return Response({
            'id': str(pk),
            'status': current,
            'poll_after_seconds': None if current in TERMINAL else settings.STUDY_STATUS_POLL_INTERVAL_SECONDS,
        })


class StudyReportView(CallerMixin, APIView):
    """GET /api/v1/studies/{id}/report/ - PDF attachment."""
    permission_classes = [IsPatient]

    def get(self, request, pk):
        content, filename = services.get_report_artifact(self.caller, pk)
        response = HttpResponse(content, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response
