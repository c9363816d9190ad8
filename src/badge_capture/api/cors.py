"""
badge_capture.api.cors

Cross-origin handling for the browser form that posts submissions.

Responsibilities:
- Answer every preflight (`OPTIONS *`) with 204 and the permitted methods/headers.
- Echo an allowed origin on every response and mark it `Vary: Origin`.
"""

from __future__ import annotations

from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOW_METHODS = "GET,POST,OPTIONS"
ALLOW_HEADERS = "content-type"
PREFLIGHT_MAX_AGE = "86400"


class CorsMiddleware(BaseHTTPMiddleware):
    """
    With an empty allow-list the caller's origin is echoed (or `*` when the request
    carries none). With an allow-list, unknown origins get no allow-origin header.
    """

    def __init__(self, app: ASGIApp, *, allowed_origins: Iterable[str] = ()) -> None:
        super().__init__(app)
        self._allowed = frozenset(o.rstrip("/") for o in allowed_origins)

    def allow_origin(self, origin: str) -> str | None:
        if not self._allowed:
            return origin or "*"
        if origin.rstrip("/") in self._allowed:
            return origin
        return None

    async def dispatch(self, request: Request, call_next) -> Response:
        origin = request.headers.get("origin", "")
        allowed = self.allow_origin(origin)

        if request.method == "OPTIONS":
            response = Response(status_code=204)
            response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
            response.headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE
        else:
            response = await call_next(request)

        if allowed is not None:
            response.headers["Access-Control-Allow-Origin"] = allowed
        response.headers["Vary"] = _merge_vary(response.headers.get("Vary"))
        return response


def _merge_vary(existing: str | None) -> str:
    if not existing:
        return "Origin"
    values = [v.strip() for v in existing.split(",") if v.strip()]
    if "origin" not in {v.lower() for v in values}:
        values.append("Origin")
    return ", ".join(values)
