"""
badge_capture.api.routers.badge

Submission endpoint for the badge capture form.

Responsibilities:
- Enforce the JSON content type (415 otherwise); other verbs get 405 from routing.
- Collect request metadata (client ip, user agent) and delegate to `SubmissionService`.
- Render the service verdict as a JSON response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.status import HTTP_415_UNSUPPORTED_MEDIA_TYPE

from badge_capture.api.deps import submission_service_dep
from badge_capture.services.submission_service import SubmissionService
from badge_capture.submission.models import RequestMetadata

router = APIRouter(tags=["badge"])


@router.post("/badge")
async def submit_badge(
    request: Request,
    service: SubmissionService = Depends(submission_service_dep),
) -> Response:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return PlainTextResponse(
            "Expected application/json", status_code=HTTP_415_UNSUPPORTED_MEDIA_TYPE
        )

    metadata = RequestMetadata(
        # Populated by RequestContextMiddleware.
        ip=getattr(request.state, "client_ip", ""),
        user_agent=request.headers.get("user-agent", ""),
    )
    result = await service.handle(await request.body(), metadata)
    return JSONResponse(result.to_response(), status_code=result.status_code)


# --- Module Notes -----------------------------------------------------------
# The body is read raw (not via a Pydantic model) so malformed JSON and wrong field
# types surface as the same structured 400 the service produces for validation.
