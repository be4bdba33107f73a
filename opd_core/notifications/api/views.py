# opd_core/notifications/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiTypes, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from opd_core.notifications.selectors import topic_versions


class TopicVersionsView(APIView):
    """
    GET /notifications/topics

    Poll endpoint for invalidation topics: {topic: version}.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Notifications"], responses={200: OpenApiTypes.OBJECT})
    def get(self, request):
        return Response(topic_versions())
