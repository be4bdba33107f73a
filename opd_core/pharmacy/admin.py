# opd_core/pharmacy/admin.py
from django.contrib import admin

from opd_core.pharmacy.models import Medicine, MedicineBatch, PrescribedMedicine


class MedicineBatchInline(admin.TabularInline):
    model = MedicineBatch
    extra = 0
    readonly_fields = ("quantity_received", "received_at", "added_by")


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)
    inlines = [MedicineBatchInline]


@admin.register(PrescribedMedicine)
class PrescribedMedicineAdmin(admin.ModelAdmin):
    list_display = ("visit", "medicine", "quantity", "dispensed", "dispensed_at")
    list_filter = ("dispensed",)
    raw_id_fields = ("visit",)
