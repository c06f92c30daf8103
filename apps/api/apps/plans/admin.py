from django.contrib import admin
from .models import PlanItem, TreatmentPlan


class PlanItemInline(admin.TabularInline):
    model = PlanItem
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(TreatmentPlan)
class TreatmentPlanAdmin(admin.ModelAdmin):
    list_display = ['id', 'study', 'version', 'source', 'created_at']
    list_filter = ['source']
    readonly_fields = ['id', 'study', 'version', 'source', 'created_at']
    inlines = [PlanItemInline]

    def has_change_permission(self, request, obj=None):
        return False
