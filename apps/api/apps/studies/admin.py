from django.contrib import admin
from .models import Study


@admin.register(Study)
class StudyAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'modality', 'status', 'study_date', 'created_at']
    list_filter = ['status', 'modality']
    search_fields = ['id', 'analysis_uid', 'patient__user__email']
    readonly_fields = [
        'id', 'patient', 'status', 'artifact', 'original_filename', 'artifact_size',
        'analysis_uid', 'analysis_result', 'error_message', 'report',
        'uploaded_at', 'processing_started_at', 'completed_at', 'created_at', 'updated_at',
    ]

    def has_delete_permission(self, request, obj=None):
        return False
