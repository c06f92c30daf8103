"""
Clinic views: profile, members, pricelist and the public directory.
"""
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.permissions import ClinicStaffReadManagerWrite, IsClinicManager
from . import services
from .serializers import (
    AddMemberSerializer,
    ClinicMemberSerializer,
    ClinicSerializer,
    PricelistItemSerializer,
    PricelistItemWriteSerializer,
    PublicClinicSerializer,
)


class ClinicProfileView(CallerMixin, APIView):
    """
    GET/POST/PATCH /api/v1/clinic/profile/

    POST creates the profile (inactive until approved by an admin).
    """
    permission_classes = [ClinicStaffReadManagerWrite]

    def get(self, request):
        clinic = services.get_my_clinic(self.caller)
        return Response(ClinicSerializer(clinic).data)

    def post(self, request):
        serializer = ClinicSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        clinic = services.create_clinic(self.caller, serializer.validated_data)
        return Response(ClinicSerializer(clinic).data, status=status.HTTP_201_CREATED)

    def patch(self, request):
        serializer = ClinicSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        clinic = services.update_clinic(self.caller, serializer.validated_data)
        return Response(ClinicSerializer(clinic).data)


class ClinicMembersView(CallerMixin, APIView):
    """POST /api/v1/clinic/members/ - bind a clinic_doctor account to the caller's clinic."""
    permission_classes = [IsClinicManager]

    def post(self, request):
        serializer = AddMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member = services.add_clinic_member(self.caller, serializer.validated_data['email'])
        return Response(ClinicMemberSerializer(member).data, status=status.HTTP_201_CREATED)


class PricelistView(CallerMixin, APIView):
    """
    GET  /api/v1/clinic/pricelist/  - active items of the caller's clinic
    POST /api/v1/clinic/pricelist/  - add an item (clinic manager)
    """
    permission_classes = [ClinicStaffReadManagerWrite]

    def get(self, request):
        items = services.list_items(self.caller)
        return Response(PricelistItemSerializer(items, many=True).data)

    def post(self, request):
        serializer = PricelistItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = services.add_item(self.caller, serializer.validated_data)
        return Response(PricelistItemSerializer(item).data, status=status.HTTP_201_CREATED)


class PricelistItemView(CallerMixin, APIView):
    """DELETE /api/v1/clinic/pricelist/{id}/ - soft delete."""
    permission_classes = [IsClinicManager]

    def delete(self, request, pk):
        services.delete_item(self.caller, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PublicClinicListView(APIView):
    """
    GET /api/v1/clinics/?city=&district=&price_segment=

    Public directory of approved clinics.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        params = request.query_params
        clinics = services.list_active_clinics(
            city=params.get('city', ''),
            district=params.get('district', ''),
            price_segment=params.get('price_segment', ''),
        )
        return Response(PublicClinicSerializer(clinics, many=True).data)
