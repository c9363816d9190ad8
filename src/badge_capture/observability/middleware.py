"""
badge_capture.observability.middleware

HTTP middleware for request-scoped context.

Responsibilities:
- Generate/propagate request IDs and bind them into structlog contextvars.
- Resolve the submitting client's IP once per request (proxy header, then socket peer).
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Every request gets a request id (caller-provided `x-request-id` wins)
    - `request.state.client_ip` is populated for the rate limiter and submission record
    """

    def __init__(self, app: ASGIApp, *, client_ip_header: str = "cf-connecting-ip") -> None:
        super().__init__(app)
        self._client_ip_header = client_ip_header.lower()

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.client_ip = resolve_client_ip(request, header=self._client_ip_header)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        try:
            response: Response = await call_next(request)
        finally:
            # Avoid leaking context across requests under async concurrency.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


def resolve_client_ip(request: Request, *, header: str) -> str:
    direct = request.headers.get(header, "").strip()
    if direct:
        return direct
    # X-Forwarded-For is "client, proxy1, proxy2"; the left-most entry is the origin client.
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else ""


# --- Module Notes -----------------------------------------------------------
# The client ip is not bound into log context; it is stored with the
# submission record and used as the rate-limit identity only.
