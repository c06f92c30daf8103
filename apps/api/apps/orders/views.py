"""
Order views.
"""
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.permissions import IsClinicStaff, IsPatientOrClinicStaff
from . import services
from .serializers import OrderSerializer, OrderStatusUpdateSerializer


class OrderListView(CallerMixin, APIView):
    """GET /api/v1/orders/"""
    permission_classes = [IsPatientOrClinicStaff]

    def get(self, request):
        return Response(OrderSerializer(services.list_orders(self.caller), many=True).data)


class OrderDetailView(CallerMixin, APIView):
    """GET /api/v1/orders/{id}/"""
    permission_classes = [IsPatientOrClinicStaff]

    def get(self, request, pk):
        return Response(OrderSerializer(services.get_order(self.caller, pk)).data)


class OrderStatusView(CallerMixin, APIView):
    """
    POST /api/v1/orders/{id}/status/

    Body: {status, consultation_date?, reason?}
    """
    permission_classes = [IsClinicStaff]

    def post(self, request, pk):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = services.update_order_status(
            self.caller,
            pk,
            serializer.validated_data['status'],
            consultation_date=serializer.validated_data.get('consultation_date'),
            reason=serializer.validated_data.get('reason', ''),
        )
        return Response(OrderSerializer(order).data)
