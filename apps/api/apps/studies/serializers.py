from rest_framework import serializers
from .models import Study


class StudySerializer(serializers.ModelSerializer):
    has_report = serializers.SerializerMethodField()

    class Meta:
        model = Study
        fields = [
            'id',
            'patient',
            'modality',
            'study_date',
            'status',
            'original_filename',
            'artifact_size',
            'error_message',
            'has_report',
            'uploaded_at',
            'processing_started_at',
            'completed_at',
            'created_at',
        ]
        read_only_fields = fields

    def get_has_report(self, obj):
        return bool(obj.report) or (obj.status == 'completed' and bool(obj.analysis_uid))


class StudyCreateSerializer(serializers.Serializer):
    # Enum and date checks are done by the service so errors carry one message shape
    modality = serializers.CharField()
    study_date = serializers.CharField()


class UploadTokenSerializer(serializers.Serializer):
    study_id = serializers.UUIDField()
    upload_url = serializers.CharField()
    allowed_extensions = serializers.ListField(child=serializers.CharField())
    max_upload_bytes = serializers.IntegerField()
