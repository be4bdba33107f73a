# opd_core/lab/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from opd_core.lab.models import LabTest


class LabTestSerializer(serializers.ModelSerializer):
    class Meta:
        model = LabTest
        fields = ["id", "name", "description"]
        read_only_fields = ["id"]
        # Duplicate names are reported by the service as a 409.
        extra_kwargs = {"name": {"validators": []}}


class UploadReportSerializer(serializers.Serializer):
    report_url = serializers.URLField(max_length=1024)


class OrderedLabTestResultSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    visit_id = serializers.IntegerField()
    lab_test_id = serializers.IntegerField()
    report_url = serializers.CharField()
    report_uploaded_at = serializers.DateTimeField()
