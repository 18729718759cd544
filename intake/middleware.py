"""Middleware: per-request correlation IDs and response hardening.

Form drafts and staged photos are personal data, so no API response is
cacheable. Previews are user-uploaded bytes served back to the browser and
get a CSP that forbids them from running anything.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
PREVIEW_PATH_PREFIX = "/api/intake/previews/"

# Client IDs are echoed into logs and headers, so only short safe tokens pass
_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


def current_request_id() -> str:
    """ID of the request being handled, or ``-`` outside a request."""
    return request_id_var.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID used in log lines and echoed in the response.

    A well-formed ``X-Request-ID`` from the client is kept so a submit can
    be traced from the browser; anything else is replaced with a fresh one.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        rid = supplied if _CLIENT_ID_RE.match(supplied) else uuid.uuid4().hex
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        if request.url.path.startswith(PREVIEW_PATH_PREFIX):
            response.headers["Content-Security-Policy"] = "default-src 'none'; sandbox"
        return response
