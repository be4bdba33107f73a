# opd_core/lab/admin.py
from django.contrib import admin

from opd_core.lab.models import LabTest, OrderedLabTest


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


@admin.register(OrderedLabTest)
class OrderedLabTestAdmin(admin.ModelAdmin):
    list_display = ("visit", "lab_test", "ordered_at", "report_uploaded_at")
    raw_id_fields = ("visit",)
