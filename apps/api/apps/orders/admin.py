from django.contrib import admin
from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'clinic', 'patient', 'status', 'consultation_date', 'created_at']
    list_filter = ['status']
    search_fields = ['id', 'clinic__name']
    readonly_fields = [
        'id', 'offer', 'offer_request', 'patient', 'clinic', 'status',
        'treatment_started_at', 'treatment_completed_at', 'cancelled_at', 'created_at', 'updated_at',
    ]

    def has_delete_permission(self, request, obj=None):
        return False
