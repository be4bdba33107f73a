# opd_core/common/middleware.py
from __future__ import annotations

from django.utils.deprecation import MiddlewareMixin

from opd_core.common.api.exceptions import ensure_request_id


class RequestIdMiddleware(MiddlewareMixin):
    """
    Attaches request.request_id (honouring an inbound X-Request-ID) and echoes it
    on the response so client error reports can be matched to server logs.
    """

    HEADER_META_KEY = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        inbound = (request.META.get(self.HEADER_META_KEY) or "").strip()
        if inbound and len(inbound) <= 64:
            request.request_id = inbound
        ensure_request_id(request)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid:
            response[self.RESPONSE_HEADER] = rid
        return response
