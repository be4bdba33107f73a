# opd_core/pharmacy/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.common.permissions import CataloguePermission, OfficePermission, PharmacyPermission
from opd_core.pharmacy.api.serializers import AddStockSerializer, MedicineBatchSerializer, MedicineSerializer
from opd_core.pharmacy.selectors import list_medicines, total_stock
from opd_core.pharmacy.services import DispenseService, InventoryService
from opd_core.queues.projections import pharmacy_queue
from opd_core.visits.api.serializers import VisitSerializer
from opd_core.visits.selectors import VisitSelectors


class PharmacyQueueView(APIView):
    """GET /pharmacy/queue - visits ready to dispense, with stock warnings."""
    permission_classes = [PharmacyPermission]

    @extend_schema(responses={200: OpenApiTypes.OBJECT}, tags=["Pharmacy"])
    def get(self, request):
        return Response(pharmacy_queue())


class IssueMedicinesView(APIView):
    """POST /pharmacy/issue-medicines/<visit_id> - all pending lines or nothing."""
    permission_classes = [PharmacyPermission]

    @extend_schema(request=None, responses={200: OpenApiTypes.OBJECT}, tags=["Pharmacy"])
    def post(self, request, visit_id: int):
        visit = DispenseService.issue_medicines(visit_id=visit_id, actor_user_id=request.user.id)
        visit = VisitSelectors.get_visit(visit_id=visit.id)
        return Response({"msg": "Medicines dispensed.", "visit": VisitSerializer(visit).data})


class AddMedicineView(APIView):
    """POST /office/add-medicine {name, stock, supplier_info}"""
    permission_classes = [OfficePermission]

    @extend_schema(request=AddStockSerializer, responses={201: OpenApiTypes.OBJECT}, tags=["Office"])
    def post(self, request):
        ser = AddStockSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        batch = InventoryService.add_stock(
            actor_user_id=request.user.id,
            name=data["name"],
            quantity=data["stock"],
            supplier_info=data["supplier_info"],
        )
        return Response(
            {
                "msg": f"Added {batch.quantity_received} units of {batch.medicine.name}.",
                "medicine": {
                    "id": batch.medicine_id,
                    "name": batch.medicine.name,
                    "totalStock": total_stock(batch.medicine_id),
                },
                "batch": MedicineBatchSerializer(batch).data,
            },
            status=status.HTTP_201_CREATED,
        )


class MedicineListView(APIView):
    """GET /office/medicines - catalogue with totalStock and batches."""
    permission_classes = [CataloguePermission]

    @extend_schema(responses={200: MedicineSerializer(many=True)}, tags=["Office"])
    def get(self, request):
        return Response(MedicineSerializer(list_medicines(), many=True).data)
