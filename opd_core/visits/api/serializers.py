# opd_core/visits/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from opd_core.patients.api.serializers import PatientSerializer


class CreateVisitSerializer(serializers.Serializer):
    op_number = serializers.CharField(max_length=32)
    reason_for_visit = serializers.CharField(required=False, allow_blank=True, default="")


class MedicineLineInputSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class LabOrderInputSerializer(serializers.Serializer):
    id = serializers.IntegerField()


class CompleteConsultationSerializer(serializers.Serializer):
    diagnosis = serializers.CharField()
    prescribedMedicines = MedicineLineInputSerializer(many=True, required=False, default=list)
    orderedLabTests = LabOrderInputSerializer(many=True, required=False, default=list)


class UpdateDiagnosisSerializer(serializers.Serializer):
    diagnosis = serializers.CharField()


class AddMedicinesSerializer(serializers.Serializer):
    prescribedMedicines = MedicineLineInputSerializer(many=True, required=False, default=list)


class StaffRefSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()


class PrescribedMedicineSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    medicine_id = serializers.IntegerField()
    name = serializers.CharField(source="medicine.name")
    quantity = serializers.IntegerField()
    dispensed = serializers.BooleanField()
    dispensed_at = serializers.DateTimeField(allow_null=True)
    dispenser = StaffRefSerializer(source="dispensed_by", allow_null=True)


class OrderedLabTestSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    lab_test_id = serializers.IntegerField()
    name = serializers.CharField(source="lab_test.name")
    ordered_at = serializers.DateTimeField()
    report_url = serializers.CharField(allow_null=True)
    report_uploaded_at = serializers.DateTimeField(allow_null=True)


class VisitSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    patient_id = serializers.IntegerField()
    status = serializers.CharField()
    reason_for_visit = serializers.CharField()
    diagnosis = serializers.CharField()
    registered_at = serializers.DateTimeField()
    consultation_completed_at = serializers.DateTimeField(allow_null=True)
    lab_reports_submitted_at = serializers.DateTimeField(allow_null=True)
    dispensed_at = serializers.DateTimeField(allow_null=True)
    doctor = StaffRefSerializer(allow_null=True)
    creator = StaffRefSerializer(source="registered_by", allow_null=True)


class VisitDetailSerializer(VisitSerializer):
    medicines = PrescribedMedicineSerializer(source="prescribed_medicines", many=True)
    lab_tests = OrderedLabTestSerializer(source="ordered_lab_tests", many=True)


class PatientHistorySerializer(serializers.Serializer):
    patient = PatientSerializer()
    visits = VisitDetailSerializer(many=True)


class TimelineEventSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    code = serializers.CharField()
    title = serializers.CharField(allow_blank=True)
    from_status = serializers.CharField(allow_null=True)
    to_status = serializers.CharField(allow_null=True)
    actor = serializers.CharField(allow_null=True)
    at = serializers.DateTimeField()
    meta = serializers.DictField()


class VisitTimelineSerializer(serializers.Serializer):
    visit = VisitSerializer()
    events = TimelineEventSerializer(many=True)
