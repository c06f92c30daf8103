"""
Clinic serializers.

Write serializers only shape input; business rules live in services.
"""
from rest_framework import serializers
from .models import Clinic, ClinicMember, PricelistItem


class ClinicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Clinic
        fields = [
            'id',
            'name',
            'legal_name',
            'license_number',
            'year_established',
            'city',
            'district',
            'address',
            'phone',
            'email',
            'website',
            'price_segment',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'is_active', 'created_at', 'updated_at']
        # Uniqueness is enforced by the service layer (ConflictError)
        extra_kwargs = {'license_number': {'validators': []}}


class PublicClinicSerializer(serializers.ModelSerializer):
    """Directory listing; no legal or license data."""

    class Meta:
        model = Clinic
        fields = ['id', 'name', 'city', 'district', 'address', 'phone', 'website', 'price_segment']
        read_only_fields = fields


class ClinicMemberSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = ClinicMember
        fields = ['id', 'email', 'clinic', 'member_role', 'created_at']
        read_only_fields = fields


class AddMemberSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PricelistItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PricelistItem
        fields = [
            'id',
            'clinic',
            'specialty',
            'procedure_code',
            'procedure_name',
            'price_from',
            'price_to',
            'is_active',
            'created_at',
        ]
        read_only_fields = fields


class PricelistItemWriteSerializer(serializers.Serializer):
    specialty = serializers.CharField()
    procedure_code = serializers.CharField(required=False, allow_blank=True, default='')
    procedure_name = serializers.CharField()
    price_from = serializers.DecimalField(max_digits=12, decimal_places=2)
    price_to = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
