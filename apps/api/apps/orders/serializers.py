from rest_framework import serializers
from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    total_price = serializers.DecimalField(source='offer.total_price', max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'offer',
            'offer_request',
            'patient',
            'clinic',
            'clinic_name',
            'total_price',
            'status',
            'consultation_date',
            'treatment_started_at',
            'treatment_completed_at',
            'cancellation_reason',
            'cancelled_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField()
    consultation_date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
