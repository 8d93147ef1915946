"""Request correlation and body-size guard for the storefront API.

``RequestIdMiddleware`` gives every request an id, taken from a sane
``X-Request-ID`` header when the client (or an upstream proxy) sent one
and generated otherwise. The id is kept on ``request.request_id`` and in
``REQUEST_ID_CTX`` so log records and outgoing backend calls can carry it
without it being passed around, and it is echoed on the response.

``ApiSizeLimitMiddleware`` rejects oversized bodies on ``/api/`` before
any view parses them.
"""

import contextvars
import os
import re
import uuid

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
MAX_API_BYTES = int(os.getenv("API_MAX_BYTES", str(64 * 1024)))

# Client-supplied ids end up in logs and backend headers.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class RequestIdMiddleware(MiddlewareMixin):
    """Assign, expose and echo a per-request identifier.

    Attributes:
        HEADER (str): Incoming header as found in ``request.META``.
        RESPONSE_HEADER (str): Header set on every response.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        rid = request.META.get(self.HEADER, "")
        if not _REQUEST_ID_RE.match(rid):
            rid = str(uuid.uuid4())
        request.request_id = rid
        request._request_id_token = REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        """Echo the id and restore the ContextVar for the next request on this thread."""
        response[self.RESPONSE_HEADER] = getattr(request, "request_id", REQUEST_ID_CTX.get())
        token = getattr(request, "_request_id_token", None)
        if token is not None:
            REQUEST_ID_CTX.reset(token)
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    """Answer 413 for ``/api/`` requests whose declared body exceeds ``MAX_API_BYTES``."""

    def process_request(self, request):
        if not request.path.startswith("/api/"):
            return None
        clen = request.META.get("CONTENT_LENGTH")
        if clen and clen.isdigit() and int(clen) > MAX_API_BYTES:
            return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
        return None
