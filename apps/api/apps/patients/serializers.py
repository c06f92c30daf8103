from rest_framework import serializers
from .models import Patient


class PatientProfileSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = Patient
        fields = [
            'id',
            'email',
            'first_name',
            'last_name',
            'date_of_birth',
            'phone',
            'preferred_city',
            'preferred_district',
            'preferred_price_segment',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'email', 'created_at', 'updated_at']
