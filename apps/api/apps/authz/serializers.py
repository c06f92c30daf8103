"""
Authz serializers: registration and current user.
"""
from rest_framework import serializers
from apps.authz.models import SELF_REGISTER_ROLES, User


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=[(r.value, r.label) for r in SELF_REGISTER_ROLES])
    first_name = serializers.CharField(required=False, allow_blank=True, default='')
    last_name = serializers.CharField(required=False, allow_blank=True, default='')


class UserSerializer(serializers.ModelSerializer):
    """
    Current user, with the profile ids the caller resolves to.
    """
    patient_id = serializers.SerializerMethodField()
    clinic_id = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'first_name',
            'last_name',
            'role',
            'patient_id',
            'clinic_id',
            'created_at',
        ]
        read_only_fields = fields

    def get_patient_id(self, obj):
        caller = self.context.get('caller')
        return str(caller.patient_id) if caller and caller.patient_id else None

    def get_clinic_id(self, obj):
        caller = self.context.get('caller')
        return str(caller.clinic_id) if caller and caller.clinic_id else None
