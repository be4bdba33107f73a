# opd_core/patients/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from opd_core.common.validators import (
    BLOOD_GROUPS,
    GENDERS,
    MARITAL_STATUSES,
    RELATIONS,
    aadhar_validator,
    employee_designation_validator,
    digits_validator,
    phone_validator,
)
from opd_core.patients.models import Patient, PatientType, PendingFamilyMember, PendingRegistration


class FamilyMemberInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    relation = serializers.ChoiceField(choices=RELATIONS)
    dob = serializers.DateField()
    blood_group = serializers.ChoiceField(choices=BLOOD_GROUPS)
    aadhar = serializers.CharField(validators=[aadhar_validator])
    phone = serializers.CharField(validators=[phone_validator])
    email = serializers.EmailField()
    gender = serializers.ChoiceField(choices=GENDERS)
    physical_challenges = serializers.CharField(required=False, allow_blank=True, default="None")
    pre_existing_conditions = serializers.CharField(required=False, allow_blank=True, default="None")


class RegistrationInputSerializer(serializers.Serializer):
    """
    Shared by the OP desk and the public portal.
    University members must carry an employee designation ("TF - Physics").
    """
    name = serializers.CharField(max_length=255)
    aadhar = serializers.CharField(validators=[aadhar_validator])
    phone = serializers.CharField(validators=[phone_validator])
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    gender = serializers.ChoiceField(choices=GENDERS)
    marital_status = serializers.ChoiceField(choices=MARITAL_STATUSES, required=False, allow_blank=True, default="")
    dob = serializers.DateField(required=False, allow_null=True)
    blood_group = serializers.ChoiceField(choices=BLOOD_GROUPS, required=False, allow_blank=True, default="")
    guardian = serializers.CharField(required=False, allow_blank=True, default="")
    designation = serializers.CharField(
        required=False, allow_blank=True, default="", validators=[employee_designation_validator]
    )
    id_number = serializers.CharField(required=False, allow_blank=True, default="")
    date_of_joining = serializers.DateField(required=False, allow_null=True)
    duration = serializers.CharField(required=False, allow_blank=True, default="", validators=[digits_validator])
    physical_challenges = serializers.CharField(required=False, allow_blank=True, default="None")
    pre_existing_conditions = serializers.CharField(required=False, allow_blank=True, default="None")
    emergency_contact = serializers.CharField(
        required=False, allow_blank=True, default="", validators=[digits_validator]
    )
    address = serializers.CharField(required=False, allow_blank=True, default="")
    patient_type = serializers.ChoiceField(
        choices=[PatientType.UNIVERSITY, PatientType.NON_UNIVERSITY],
        default=PatientType.UNIVERSITY,
    )
    is_employee = serializers.BooleanField(required=False, default=False)
    family_details = FamilyMemberInputSerializer(many=True, required=False, default=list)

    def validate(self, attrs):
        # Every university registration is an employee record; dependants hang off it.
        attrs["is_employee"] = attrs.get("patient_type") == PatientType.UNIVERSITY
        if attrs.get("patient_type") == PatientType.UNIVERSITY:
            if not attrs.get("designation"):
                raise serializers.ValidationError({"designation": ["Designation is required for university members."]})
        elif attrs.get("family_details"):
            raise serializers.ValidationError(
                {"family_details": ["Only university members can register family members."]}
            )
        return attrs


class OpRegistrationInputSerializer(RegistrationInputSerializer):
    reason_for_visit = serializers.CharField(required=False, allow_blank=True, default="")


class PatientSerializer(serializers.ModelSerializer):
    primary_op_number = serializers.CharField(source="primary.op_number", read_only=True, default=None)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Patient
        fields = [
            "id",
            "op_number",
            "name",
            "aadhar",
            "phone",
            "email",
            "gender",
            "marital_status",
            "dob",
            "blood_group",
            "guardian",
            "designation",
            "id_number",
            "date_of_joining",
            "duration",
            "physical_challenges",
            "pre_existing_conditions",
            "emergency_contact",
            "address",
            "patient_type",
            "is_employee",
            "relation",
            "primary",
            "primary_op_number",
            "createdAt",
        ]
        read_only_fields = fields


class PendingFamilyMemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = PendingFamilyMember
        fields = [
            "id",
            "name",
            "relation",
            "dob",
            "blood_group",
            "aadhar",
            "phone",
            "email",
            "gender",
            "physical_challenges",
            "pre_existing_conditions",
        ]
        read_only_fields = fields


class PendingRegistrationSerializer(serializers.ModelSerializer):
    family_details = PendingFamilyMemberSerializer(source="family_members", many=True, read_only=True)
    createdAt = serializers.DateTimeField(source="submitted_at", read_only=True)

    class Meta:
        model = PendingRegistration
        fields = [
            "id",
            "name",
            "aadhar",
            "phone",
            "email",
            "gender",
            "marital_status",
            "dob",
            "blood_group",
            "guardian",
            "designation",
            "id_number",
            "date_of_joining",
            "duration",
            "physical_challenges",
            "pre_existing_conditions",
            "emergency_contact",
            "address",
            "patient_type",
            "is_employee",
            "submitted_at",
            "createdAt",
            "family_details",
        ]
        read_only_fields = fields


class VisitSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    status = serializers.CharField()
    reason_for_visit = serializers.CharField()
    diagnosis = serializers.CharField()
    registered_at = serializers.DateTimeField()


class PatientDetailsSerializer(serializers.Serializer):
    primary = PatientSerializer()
    family = PatientSerializer(many=True)
    visits = VisitSummarySerializer(many=True)
