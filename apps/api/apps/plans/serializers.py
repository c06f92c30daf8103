from rest_framework import serializers
from .models import PlanItem, TreatmentPlan


class PlanItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlanItem
        fields = [
            'id',
            'specialty',
            'procedure_code',
            'procedure_name',
            'tooth_number',
            'quantity',
            'diagnosis',
            'notes',
        ]
        read_only_fields = fields


class TreatmentPlanSerializer(serializers.ModelSerializer):
    items = PlanItemSerializer(many=True, read_only=True)

    class Meta:
        model = TreatmentPlan
        fields = ['id', 'study', 'version', 'source', 'created_at', 'items']
        read_only_fields = fields


class SpecialtyEstimateSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    priced_count = serializers.IntegerField()
    min = serializers.DecimalField(max_digits=14, decimal_places=2)
    max = serializers.DecimalField(max_digits=14, decimal_places=2)


class PlanEstimateSerializer(serializers.Serializer):
    plan_id = serializers.UUIDField()
    estimates = serializers.DictField(child=SpecialtyEstimateSerializer())
    total_min = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_max = serializers.DecimalField(max_digits=14, decimal_places=2)
