from django.contrib import admin
from .models import Offer, OfferLine, OfferRequest


class OfferLineInline(admin.TabularInline):
    model = OfferLine
    extra = 0
    readonly_fields = ['plan_item', 'pricelist_item', 'specialty', 'procedure_code', 'procedure_name', 'price']
    can_delete = False


@admin.register(OfferRequest)
class OfferRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'plan', 'preferred_city', 'preferred_price_segment', 'status', 'created_at']
    list_filter = ['status', 'preferred_price_segment']
    search_fields = ['id', 'preferred_city', 'preferred_district']
    readonly_fields = ['id', 'patient', 'plan', 'selected_items', 'status', 'closed_at', 'created_at', 'updated_at']


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ['id', 'offer_request', 'clinic', 'total_price', 'discount_percent', 'status', 'created_at']
    list_filter = ['status', 'has_installment']
    search_fields = ['id', 'clinic__name']
    readonly_fields = ['id', 'offer_request', 'clinic', 'status', 'decided_at', 'created_at', 'updated_at']
    inlines = [OfferLineInline]
