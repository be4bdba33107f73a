# opd_core/patients/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.common.permissions import OpDeskPermission
from opd_core.patients.api.serializers import (
    OpRegistrationInputSerializer,
    PatientDetailsSerializer,
    PatientSerializer,
    PendingRegistrationSerializer,
    RegistrationInputSerializer,
)
from opd_core.patients.selectors import (
    family_of,
    get_patient_by_op_number,
    get_pending_registration,
)
from opd_core.patients.services import PatientService, RegistrationService
from opd_core.queues.projections import op_approval_queue
from opd_core.visits.selectors import VisitSelectors


def _split_family(validated: dict) -> tuple[dict, list]:
    data = dict(validated)
    family = data.pop("family_details", []) or []
    return data, family


class PublicRegisterView(APIView):
    """
    POST /public/register

    Self-service pre-registration. No OP number until the OP desk approves it.
    """
    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(request=RegistrationInputSerializer, responses={201: OpenApiTypes.OBJECT}, tags=["Public"])
    def post(self, request):
        ser = RegistrationInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data, family = _split_family(ser.validated_data)

        pending = RegistrationService.submit_public(data=data, family_details=family)
        return Response(
            {
                "msg": "Registration submitted. Please visit the OP desk for approval.",
                "registration": PendingRegistrationSerializer(pending).data,
            },
            status=status.HTTP_201_CREATED,
        )


class OpRegisterView(APIView):
    """POST /op/register - staff-entered registration, OP number assigned immediately."""
    permission_classes = [OpDeskPermission]

    @extend_schema(request=OpRegistrationInputSerializer, responses={201: OpenApiTypes.OBJECT}, tags=["OP"])
    def post(self, request):
        ser = OpRegistrationInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data, family = _split_family(ser.validated_data)
        reason = data.pop("reason_for_visit", "")

        result = PatientService.register_patient(
            actor_user_id=request.user.id,
            data=data,
            family_details=family,
            reason_for_visit=reason,
        )
        return Response(
            {
                "msg": f"Patient registered with OP number {result.patient.op_number}.",
                "patient": PatientSerializer(result.patient).data,
                "family": PatientSerializer(result.family, many=True).data,
                "visit_id": result.visit.id if result.visit else None,
            },
            status=status.HTTP_201_CREATED,
        )


class PatientDetailsView(APIView):
    """GET /op/patient-details/<op_number> -> {primary, family, visits}"""
    permission_classes = [OpDeskPermission]

    @extend_schema(responses={200: PatientDetailsSerializer}, tags=["OP"])
    def get(self, request, op_number: str):
        patient = get_patient_by_op_number(op_number=op_number)
        payload = {
            "primary": patient,
            "family": list(family_of(patient)),
            "visits": list(VisitSelectors.visits_with_details(patient_id=patient.id)),
        }
        return Response(PatientDetailsSerializer(payload).data)


class PendingApprovalsView(APIView):
    """GET /op/pending-approvals - FIFO approval queue."""
    permission_classes = [OpDeskPermission]

    @extend_schema(responses={200: PendingRegistrationSerializer(many=True)}, tags=["OP"])
    def get(self, request):
        return Response(PendingRegistrationSerializer(op_approval_queue(), many=True).data)


class PendingPatientView(APIView):
    """GET /op/pending-patient/<aadhar>"""
    permission_classes = [OpDeskPermission]

    @extend_schema(responses={200: PendingRegistrationSerializer}, tags=["OP"])
    def get(self, request, aadhar: str):
        return Response(PendingRegistrationSerializer(get_pending_registration(aadhar=aadhar)).data)


class ApprovePatientView(APIView):
    """POST /op/approve-patient/<aadhar>"""
    permission_classes = [OpDeskPermission]

    @extend_schema(request=None, responses={200: OpenApiTypes.OBJECT}, tags=["OP"])
    def post(self, request, aadhar: str):
        result = RegistrationService.approve(aadhar=aadhar, actor_user_id=request.user.id)
        return Response(
            {
                "msg": f"Patient approved with OP number {result.patient.op_number}.",
                "patient": PatientSerializer(result.patient).data,
                "family": PatientSerializer(result.family, many=True).data,
            },
            status=status.HTTP_200_OK,
        )
