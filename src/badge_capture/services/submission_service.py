"""
badge_capture.services.submission_service

Submission lifecycle service (the one place a request's outcome is decided).

Responsibilities:
- Parse and validate the inbound body; nothing external runs for invalid input.
- Build the submission record and execute the step graph.
- Aggregate step outcomes into one verdict and an HTTP status.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from badge_capture.collaborators.kv import KeyValueStore
from badge_capture.collaborators.webhook import AppsScriptLogger, build_webhook_logger
from badge_capture.observability.logging import get_logger
from badge_capture.orchestrator.graph import build_graph
from badge_capture.orchestrator.outcomes import (
    LOGGED,
    SENT,
    SKIPPED,
    STEP_LOG,
    STEP_NOTIFY,
    STEP_ORDER,
    STEP_PERSIST,
    STEP_RATE_LIMIT,
    is_failure,
)
from badge_capture.orchestrator.state import SubmissionState
from badge_capture.services.notifier import Notifier, build_notifier
from badge_capture.services.rate_limiter import RateLimiter
from badge_capture.services.record_store import RecordStore
from badge_capture.settings import Settings
from badge_capture.submission.models import RequestMetadata, ValidationFailed
from badge_capture.submission.validation import build_record, parse_body, validate

log = get_logger(__name__)

ERR_INTERNAL = "Internal error"


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    status_code: int
    ok: bool
    steps: dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    throttled: bool = False

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "ok": self.ok,
            "steps": dict(self.steps),
            "errors": list(self.errors),
        }
        if self.throttled:
            body["throttled"] = True
        return body


class SubmissionService:
    def __init__(
        self,
        *,
        settings: Settings,
        rate_limiter: RateLimiter | None = None,
        record_store: RecordStore | None = None,
        notifier: Notifier | None = None,
        webhook: AppsScriptLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._clock = clock or _utcnow
        self._configured = {
            STEP_RATE_LIMIT: rate_limiter is not None,
            STEP_PERSIST: record_store is not None,
            STEP_NOTIFY: notifier is not None,
            STEP_LOG: webhook is not None,
        }
        self._graph = build_graph(
            limiter=rate_limiter,
            store=record_store,
            notifier=notifier,
            webhook=webhook,
        )

    def configured_steps(self) -> dict[str, bool]:
        return dict(self._configured)

    async def handle(self, raw_body: bytes, metadata: RequestMetadata) -> SubmissionResult:
        try:
            validated = validate(
                parse_body(raw_body), require_consent=self._settings.require_consent
            )
        except ValidationFailed as e:
            log.info("submission_rejected", error_count=len(e.errors))
            return SubmissionResult(status_code=400, ok=False, errors=e.errors)

        try:
            record = build_record(validated, metadata, now=self._clock())
            initial: SubmissionState = {
                "record": record,
                "steps": {},
                "errors": [],
                "blocked": False,
            }
            final = await self._graph.ainvoke(initial)
        except Exception:
            # Step failures are recorded inside the graph; reaching here is a bug.
            log.exception("submission_crashed")
            return SubmissionResult(status_code=500, ok=False, errors=[ERR_INTERNAL])

        return self._verdict(final)

    def _verdict(self, final: dict[str, Any]) -> SubmissionResult:
        recorded = dict(final.get("steps") or {})
        steps = {name: recorded.get(name, SKIPPED) for name in STEP_ORDER}
        errors = list(final.get("errors") or [])
        throttled = bool(final.get("blocked"))

        # Accepted when the submission reached a human: the mail went out or the sheet has it.
        # Throttled is a soft success: 200 with rateLimit=blocked, never an error status.
        ok = throttled or steps[STEP_NOTIFY] == SENT or steps[STEP_LOG] == LOGGED
        status_code = 200 if ok else 502

        log.info(
            "submission_completed",
            ok=ok,
            status=status_code,
            steps=steps,
            failed_steps=[name for name, outcome in steps.items() if is_failure(outcome)],
        )
        return SubmissionResult(
            status_code=status_code,
            ok=ok,
            steps=steps,
            errors=errors,
            throttled=throttled,
        )


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_submission_service(
    settings: Settings,
    *,
    http: httpx.AsyncClient,
    kv_store: KeyValueStore | None,
    clock: Callable[[], datetime] | None = None,
) -> SubmissionService:
    rate_limiter = None
    record_store = None
    if kv_store is not None:
        rate_limiter = RateLimiter(
            kv_store,
            limit=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        )
        record_store = RecordStore(kv_store, ttl_seconds=settings.record_ttl_seconds)

    return SubmissionService(
        settings=settings,
        rate_limiter=rate_limiter,
        record_store=record_store,
        notifier=build_notifier(settings, http),
        webhook=build_webhook_logger(settings, http),
        clock=clock,
    )


# --- Module Notes -----------------------------------------------------------
# The success policy lives only in `_verdict`; the graph reports outcomes and never
# decides whether the submission as a whole succeeded.
