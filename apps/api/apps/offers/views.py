"""
Offer views: requests (patient), offers (clinic) and acceptance.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.permissions import IsClinicStaff, IsPatient, IsPatientOrClinicStaff
from apps.orders.serializers import OrderSerializer
from . import services
from .serializers import (
    OfferRequestCreateSerializer,
    OfferRequestSerializer,
    OfferSerializer,
    OfferSubmitSerializer,
)

PREFERENCE_FIELDS = ('preferred_city', 'preferred_district', 'preferred_price_segment')


class OfferRequestListCreateView(CallerMixin, APIView):
    """
    GET  /api/v1/offer-requests/  - patient: own requests; clinic: open requests matching the clinic
    POST /api/v1/offer-requests/  - patient opens a request
    """
    permission_classes = [IsPatientOrClinicStaff]

    def get(self, request):
        if self.caller.is_patient:
            offer_requests = services.list_offer_requests_for_patient(self.caller)
        else:
            offer_requests = services.list_open_requests_for_clinic(self.caller)
        return Response(OfferRequestSerializer(offer_requests, many=True).data)

    def post(self, request):
        serializer = OfferRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        offer_request = services.open_offer_request(
            self.caller,
            plan_id=data['plan_id'],
            selected_item_ids=data['selected_item_ids'],
            preferences={k: data[k] for k in PREFERENCE_FIELDS if k in data},
        )
        return Response(OfferRequestSerializer(offer_request).data, status=status.HTTP_201_CREATED)


class OfferRequestDetailView(CallerMixin, APIView):
    """GET /api/v1/offer-requests/{id}/"""
    permission_classes = [IsPatientOrClinicStaff]

    def get(self, request, pk):
        offer_request = services.get_offer_request(self.caller, pk)
        return Response(OfferRequestSerializer(offer_request).data)


class OfferRequestOffersView(CallerMixin, APIView):
    """GET /api/v1/offer-requests/{id}/offers/"""
    permission_classes = [IsPatientOrClinicStaff]

    def get(self, request, pk):
        offers = services.list_offers_for_request(self.caller, pk)
        return Response(OfferSerializer(offers, many=True).data)


class OfferListCreateView(CallerMixin, APIView):
    """
    GET  /api/v1/offers/  - offers of the caller's clinic
    POST /api/v1/offers/  - submit (or replace) the clinic's offer on a request
    """
    permission_classes = [IsClinicStaff]

    def get(self, request):
        offers = services.list_offers_for_clinic(self.caller)
        return Response(OfferSerializer(offers, many=True).data)

    def post(self, request):
        serializer = OfferSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        terms = dict(serializer.validated_data)
        offer_request_id = terms.pop('offer_request_id')
        if 'lines' in terms:
            terms['lines'] = [dict(line) for line in terms['lines']]
        offer = services.submit_offer(self.caller, offer_request_id, terms)
        return Response(OfferSerializer(offer).data, status=status.HTTP_201_CREATED)


class OfferAcceptView(CallerMixin, APIView):
    """POST /api/v1/offers/{id}/accept/ - returns the created order."""
    permission_classes = [IsPatient]

    def post(self, request, pk):
        order = services.accept_offer(self.caller, pk)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
