from django.contrib import admin
from .models import Clinic, ClinicMember, PricelistItem


class ClinicMemberInline(admin.TabularInline):
    model = ClinicMember
    extra = 0
    readonly_fields = ['created_at']


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ['name', 'city', 'district', 'price_segment', 'is_active', 'created_at']
    list_filter = ['is_active', 'price_segment', 'city']
    search_fields = ['name', 'legal_name', 'license_number']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [ClinicMemberInline]
    actions = ['approve_clinics']

    @admin.action(description='Approve selected clinics')
    def approve_clinics(self, request, queryset):
        updated = queryset.filter(is_active=False).update(is_active=True)
        self.message_user(request, f'{updated} clinic(s) approved')


@admin.register(PricelistItem)
class PricelistItemAdmin(admin.ModelAdmin):
    list_display = ['procedure_name', 'clinic', 'specialty', 'price_from', 'price_to', 'is_active']
    list_filter = ['is_active', 'specialty']
    search_fields = ['procedure_name', 'procedure_code', 'clinic__name']
    readonly_fields = ['id', 'deleted_at', 'created_at', 'updated_at']
