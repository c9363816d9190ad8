"""
badge_capture.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Encapsulate app.state access patterns (settings, submission service).
"""

from __future__ import annotations

from fastapi import Request

from badge_capture.services.submission_service import SubmissionService
from badge_capture.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The settings object handed to `create_app`, not a fresh read of the environment.
    return request.app.state.settings  # type: ignore[attr-defined]


def submission_service_dep(request: Request) -> SubmissionService:
    # Built once in the lifespan of `badge_capture.api.app.create_app`.
    return request.app.state.submission_service  # type: ignore[attr-defined]
