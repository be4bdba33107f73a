# opd_core/iam/api/staff.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.common.permissions import MasterPermission
from opd_core.iam.api.serializers import (
    MessageSerializer,
    StaffCreateSerializer,
    StaffSerializer,
    StaffUpdateSerializer,
)
from opd_core.iam.filters import StaffFilter
from opd_core.iam.selectors import get_staff, list_staff
from opd_core.iam.services import StaffService


class StaffListCreateView(APIView):
    """
    GET  /master/staff        (?role=Doctor&username=...)
    POST /master/staff
    """
    permission_classes = [MasterPermission]

    @extend_schema(responses={200: StaffSerializer(many=True)}, tags=["Master"])
    def get(self, request):
        qs = StaffFilter(request.query_params, queryset=list_staff()).qs
        return Response(StaffSerializer(qs, many=True).data)

    @extend_schema(request=StaffCreateSerializer, responses={201: StaffSerializer}, tags=["Master"])
    def post(self, request):
        ser = StaffCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        user = StaffService.create_staff(actor_user_id=request.user.id, **ser.validated_data)
        return Response(StaffSerializer(get_staff(user_id=user.id)).data, status=status.HTTP_201_CREATED)


class StaffDetailView(APIView):
    """
    PUT    /master/staff/<id>
    DELETE /master/staff/<id>
    """
    permission_classes = [MasterPermission]

    @extend_schema(request=StaffUpdateSerializer, responses={200: StaffSerializer}, tags=["Master"])
    def put(self, request, user_id: int):
        ser = StaffUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        user = StaffService.update_staff(actor_user_id=request.user.id, user_id=user_id, data=ser.validated_data)
        return Response(StaffSerializer(get_staff(user_id=user.id)).data)

    @extend_schema(request=None, responses={200: MessageSerializer}, tags=["Master"])
    def delete(self, request, user_id: int):
        StaffService.delete_staff(actor_user_id=request.user.id, user_id=user_id)
        return Response({"msg": "Staff member removed."}, status=status.HTTP_200_OK)
