# hm_desk/common/middleware.py
from __future__ import annotations

import logging
import re
import time

from django.utils.deprecation import MiddlewareMixin

from hm_desk.common.api.exceptions import REQUEST_ID_HEADER, ensure_request_id

logger = logging.getLogger(__name__)

# accept caller-supplied ids only when they look like ids
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


class RequestIdMiddleware(MiddlewareMixin):
    """
    Tags every request with a request_id (caller's X-Request-Id when valid, else generated),
    echoes it on the response and logs one line per API call.

    The same id appears in error envelopes built by the DRF exception handler.
    """

    META_KEY = "HTTP_X_REQUEST_ID"
    LOGGED_PREFIXES = ("/api/",)

    def process_request(self, request):
        incoming = (request.META.get(self.META_KEY) or "").strip()
        if incoming and _REQUEST_ID_RE.match(incoming):
            request.request_id = incoming
        ensure_request_id(request)
        request._started_at = time.monotonic()
        return None

    def process_response(self, request, response):
        rid = ensure_request_id(request)
        response[REQUEST_ID_HEADER] = rid

        path = getattr(request, "path", "") or ""
        if any(path.startswith(p) for p in self.LOGGED_PREFIXES):
            started = getattr(request, "_started_at", None)
            elapsed_ms = (time.monotonic() - started) * 1000 if started is not None else 0.0
            logger.info(
                "%s %s -> %s (%.1f ms) request_id=%s",
                request.method,
                path,
                response.status_code,
                elapsed_ms,
                rid,
            )
        return response
