# opd_core/visits/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.common.permissions import DoctorPermission, OpDeskPermission
from opd_core.queues.projections import doctor_queue
from opd_core.visits.api.serializers import (
    AddMedicinesSerializer,
    CompleteConsultationSerializer,
    CreateVisitSerializer,
    PatientHistorySerializer,
    UpdateDiagnosisSerializer,
    VisitSerializer,
    VisitTimelineSerializer,
)
from opd_core.visits.selectors import VisitSelectors
from opd_core.visits.services import VisitService


def _visit_response(visit, *, msg: str, http_status=status.HTTP_200_OK) -> Response:
    visit = VisitSelectors.get_visit(visit_id=visit.id)
    return Response({"msg": msg, "visit": VisitSerializer(visit).data}, status=http_status)


class CreateVisitView(APIView):
    """POST /op/create-visit {op_number, reason_for_visit}"""
    permission_classes = [OpDeskPermission]

    @extend_schema(request=CreateVisitSerializer, responses={201: OpenApiTypes.OBJECT}, tags=["OP"])
    def post(self, request):
        ser = CreateVisitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        visit = VisitService.create_visit(actor_user_id=request.user.id, **ser.validated_data)
        return _visit_response(visit, msg="Visit created.", http_status=status.HTTP_201_CREATED)


class DoctorQueueView(APIView):
    """GET /doctor/registered-ops - New Patient / Lab Reports Ready, oldest first."""
    permission_classes = [DoctorPermission]

    @extend_schema(responses={200: OpenApiTypes.OBJECT}, tags=["Doctor"])
    def get(self, request):
        return Response(doctor_queue())


class PatientHistoryView(APIView):
    """GET /doctor/patient-history/<patient_id>"""
    permission_classes = [DoctorPermission]

    @extend_schema(responses={200: PatientHistorySerializer}, tags=["Doctor"])
    def get(self, request, patient_id: int):
        return Response(PatientHistorySerializer(VisitSelectors.patient_history(patient_id=patient_id)).data)


class CompleteConsultationView(APIView):
    """POST /doctor/complete-consultation/<visit_id>"""
    permission_classes = [DoctorPermission]

    @extend_schema(request=CompleteConsultationSerializer, responses={200: OpenApiTypes.OBJECT}, tags=["Doctor"])
    def post(self, request, visit_id: int):
        ser = CompleteConsultationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        visit = VisitService.complete_consultation(
            visit_id=visit_id,
            actor_user_id=request.user.id,
            diagnosis=data["diagnosis"],
            prescribed_medicines=data["prescribedMedicines"],
            ordered_lab_tests=data["orderedLabTests"],
        )
        return _visit_response(visit, msg="Consultation completed.")


class UpdateDiagnosisView(APIView):
    """PUT /doctor/update-diagnosis/<visit_id> - post-lab review only."""
    permission_classes = [DoctorPermission]

    @extend_schema(request=UpdateDiagnosisSerializer, responses={200: OpenApiTypes.OBJECT}, tags=["Doctor"])
    def put(self, request, visit_id: int):
        ser = UpdateDiagnosisSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        visit = VisitService.update_diagnosis(
            visit_id=visit_id,
            actor_user_id=request.user.id,
            diagnosis=ser.validated_data["diagnosis"],
        )
        return _visit_response(visit, msg="Diagnosis updated.")


class AddMedicinesView(APIView):
    """POST /doctor/add-medicines/<visit_id> - closes the post-lab review."""
    permission_classes = [DoctorPermission]

    @extend_schema(request=AddMedicinesSerializer, responses={200: OpenApiTypes.OBJECT}, tags=["Doctor"])
    def post(self, request, visit_id: int):
        ser = AddMedicinesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        visit = VisitService.add_post_lab_medicines(
            visit_id=visit_id,
            actor_user_id=request.user.id,
            prescribed_medicines=ser.validated_data["prescribedMedicines"],
        )
        return _visit_response(visit, msg="Post-lab review completed.")


class VisitTimelineView(APIView):
    """GET /visits/<visit_id>/timeline"""
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: VisitTimelineSerializer}, tags=["Visits"])
    def get(self, request, visit_id: int):
        visit = VisitSelectors.get_visit(visit_id=visit_id)
        payload = {"visit": visit, "events": VisitSelectors.timeline_items(visit_id=visit.id)}
        return Response(VisitTimelineSerializer(payload).data)
