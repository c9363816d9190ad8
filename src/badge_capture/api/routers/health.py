"""
badge_capture.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide the liveness probe (`/health`, plain-text `OK`).
- Provide a readiness view (`/readyz`) listing which submission steps have a collaborator.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from badge_capture.api.deps import settings_dep, submission_service_dep
from badge_capture.services.submission_service import SubmissionService
from badge_capture.settings import Settings

router = APIRouter()


@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "OK"


@router.get("/readyz")
async def readyz(
    service: SubmissionService = Depends(submission_service_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, object]:
    # Reports wiring only; no collaborator is called from a probe.
    return {
        "status": "ready",
        "mail_provider": settings.mail_provider,
        "configured_steps": service.configured_steps(),
    }


# --- Module Notes -----------------------------------------------------------
# Orchestrators typically point liveness at /health and readiness gating at /readyz.
