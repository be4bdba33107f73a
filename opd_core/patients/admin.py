# opd_core/patients/admin.py
from django.contrib import admin

from opd_core.patients.models import OpNumberSeries, Patient, PendingFamilyMember, PendingRegistration


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("op_number", "name", "patient_type", "phone", "primary", "created_at")
    list_filter = ("patient_type",)
    search_fields = ("op_number", "name", "aadhar", "phone")
    readonly_fields = ("op_number", "aadhar")


class PendingFamilyMemberInline(admin.TabularInline):
    model = PendingFamilyMember
    extra = 0


@admin.register(PendingRegistration)
class PendingRegistrationAdmin(admin.ModelAdmin):
    list_display = ("name", "aadhar", "patient_type", "submitted_at", "approved_at")
    list_filter = ("patient_type",)
    search_fields = ("name", "aadhar", "phone")
    inlines = [PendingFamilyMemberInline]


admin.site.register(OpNumberSeries)
