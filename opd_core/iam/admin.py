# opd_core/iam/admin.py
from django.contrib import admin

from opd_core.iam.models import StaffProfile


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "mobile", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username", "user__email", "mobile")
