# opd_core/visits/admin.py
from django.contrib import admin

from opd_core.visits.models import Visit, VisitEvent


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "status", "doctor", "registered_at")
    list_filter = ("status",)
    search_fields = ("patient__op_number", "patient__name")
    raw_id_fields = ("patient", "doctor", "registered_by")


@admin.register(VisitEvent)
class VisitEventAdmin(admin.ModelAdmin):
    list_display = ("visit", "code", "from_status", "to_status", "actor_user", "timestamp")
    list_filter = ("code",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
