"""
Treatment plan views (patient, read-only).
"""
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.permissions import IsPatient
from apps.core.exceptions import ValidationError
from . import services
from .serializers import PlanEstimateSerializer, TreatmentPlanSerializer


class PlanListView(CallerMixin, APIView):
    """GET /api/v1/plans/?study={id} - all versions of a study's plan, ascending."""
    permission_classes = [IsPatient]

    def get(self, request):
        study_id = request.query_params.get('study')
        if not study_id:
            raise ValidationError('Query parameter "study" is required')
        plans = services.list_plans_for_study(self.caller, study_id)
        return Response(TreatmentPlanSerializer(plans, many=True).data)


class PlanDetailView(CallerMixin, APIView):
    """GET /api/v1/plans/{id}/"""
    permission_classes = [IsPatient]

    def get(self, request, pk):
        plan = services.get_plan(self.caller, pk)
        return Response(TreatmentPlanSerializer(plan).data)


class PlanEstimateView(CallerMixin, APIView):
    """GET /api/v1/plans/{id}/estimate/"""
    permission_classes = [IsPatient]

    def get(self, request, pk):
        estimate = services.estimate_plan(self.caller, pk)
        return Response(PlanEstimateSerializer(estimate).data)
