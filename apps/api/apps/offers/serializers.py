"""
Offer serializers.

Write serializers only shape input; matching rules live in services.
"""
from rest_framework import serializers
from .models import Offer, OfferLine, OfferRequest


class OfferLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = OfferLine
        fields = ['id', 'plan_item', 'pricelist_item', 'specialty', 'procedure_code', 'procedure_name', 'price']
        read_only_fields = fields


class OfferSerializer(serializers.ModelSerializer):
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    lines = OfferLineSerializer(many=True, read_only=True)

    class Meta:
        model = Offer
        fields = [
            'id',
            'offer_request',
            'clinic',
            'clinic_name',
            'total_price',
            'discount_percent',
            'estimated_days',
            'has_installment',
            'installment_terms',
            'special_offer',
            'status',
            'decided_at',
            'created_at',
            'updated_at',
            'lines',
        ]
        read_only_fields = fields


class OfferRequestSerializer(serializers.ModelSerializer):
    selected_item_ids = serializers.PrimaryKeyRelatedField(source='selected_items', many=True, read_only=True)

    class Meta:
        model = OfferRequest
        fields = [
            'id',
            'plan',
            'selected_item_ids',
            'preferred_city',
            'preferred_district',
            'preferred_price_segment',
            'status',
            'closed_at',
            'created_at',
        ]
        read_only_fields = fields


class OfferRequestCreateSerializer(serializers.Serializer):
    plan_id = serializers.UUIDField()
    selected_item_ids = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    # Omitted preferences fall back to the patient profile
    preferred_city = serializers.CharField(required=False, allow_blank=True)
    preferred_district = serializers.CharField(required=False, allow_blank=True)
    preferred_price_segment = serializers.CharField(required=False, allow_blank=True)


class OfferLineInputSerializer(serializers.Serializer):
    pricelist_item_id = serializers.UUIDField()
    plan_item_id = serializers.UUIDField(required=False, allow_null=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class OfferSubmitSerializer(serializers.Serializer):
    offer_request_id = serializers.UUIDField()
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=0)
    estimated_days = serializers.IntegerField(required=False, allow_null=True)
    has_installment = serializers.BooleanField(required=False, default=False)
    installment_terms = serializers.CharField(required=False, allow_blank=True, default='')
    special_offer = serializers.CharField(required=False, allow_blank=True, default='')
    lines = OfferLineInputSerializer(many=True, required=False)
