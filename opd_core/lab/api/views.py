# opd_core/lab/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.common.permissions import CataloguePermission, LabPermission
from opd_core.lab.api.serializers import LabTestSerializer, OrderedLabTestResultSerializer, UploadReportSerializer
from opd_core.lab.selectors import list_lab_tests
from opd_core.lab.services import LabCatalogService, LabReportService
from opd_core.queues.projections import lab_queue


class LabQueueView(APIView):
    """GET /lab/queue - one row per pending test."""
    permission_classes = [LabPermission]

    @extend_schema(responses={200: OpenApiTypes.OBJECT}, tags=["Lab"])
    def get(self, request):
        return Response(lab_queue())


class UploadReportView(APIView):
    """POST /lab/upload-report/<ordered_lab_test_id> {report_url}"""
    permission_classes = [LabPermission]

    @extend_schema(request=UploadReportSerializer, responses={200: OrderedLabTestResultSerializer}, tags=["Lab"])
    def post(self, request, ordered_lab_test_id: int):
        ser = UploadReportSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        order = LabReportService.upload_report(
            ordered_lab_test_id=ordered_lab_test_id,
            report_url=ser.validated_data["report_url"],
            actor_user_id=request.user.id,
        )
        return Response({"msg": "Report uploaded.", "test": OrderedLabTestResultSerializer(order).data})


class LabTestListView(APIView):
    """GET /office/lab-tests"""
    permission_classes = [CataloguePermission]

    @extend_schema(responses={200: LabTestSerializer(many=True)}, tags=["Office"])
    def get(self, request):
        return Response(LabTestSerializer(list_lab_tests(), many=True).data)


class AddLabTestView(APIView):
    """POST /office/add-lab-test {name, description}"""
    permission_classes = [CataloguePermission]

    @extend_schema(request=LabTestSerializer, responses={201: LabTestSerializer}, tags=["Office"])
    def post(self, request):
        ser = LabTestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lab_test = LabCatalogService.add_lab_test(
            actor_user_id=request.user.id,
            name=ser.validated_data["name"],
            description=ser.validated_data.get("description", ""),
        )
        return Response(
            {"msg": f"Lab test '{lab_test.name}' added.", "labTest": LabTestSerializer(lab_test).data},
            status=status.HTTP_201_CREATED,
        )
