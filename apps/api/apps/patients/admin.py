from django.contrib import admin
from .models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'user', 'preferred_city', 'preferred_price_segment', 'created_at']
    list_filter = ['preferred_price_segment']
    search_fields = ['user__email', 'last_name', 'preferred_city']
    readonly_fields = ['id', 'created_at', 'updated_at']
