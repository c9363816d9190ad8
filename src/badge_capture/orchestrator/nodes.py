from __future__ import annotations

from typing import Any

from badge_capture.collaborators.kv import KeyValueStoreError
from badge_capture.collaborators.webhook import AppsScriptLogger
from badge_capture.observability.logging import get_logger
from badge_capture.orchestrator.outcomes import (
    BLOCKED,
    FAILED_EXCEPTION,
    LOGGED,
    SENT,
    SKIPPED_MISSING_CONFIG,
    STEP_LOG,
    STEP_NOTIFY,
    STEP_PERSIST,
    STEP_RATE_LIMIT,
    STORED,
    failed_status,
)
from badge_capture.orchestrator.state import SubmissionState
from badge_capture.services.notifier import Notifier
from badge_capture.services.rate_limiter import RateLimiter
from badge_capture.services.record_store import RecordStore

log = get_logger(__name__)

# Each node records its own collaborator failure, whatever the exception type; the
# step outcome is final once the node returns.

ERROR_TEXT_LIMIT = 200
EXCEPTION_TEXT_LIMIT = 180


def _done(step: str, outcome: str, **fields: Any) -> dict[str, Any]:
    log.info("step_completed", step=step, outcome=outcome, **fields)
    return {"steps": {step: outcome}}


def _failed(step: str, outcome: str, message: str) -> dict[str, Any]:
    log.warning("step_failed", step=step, outcome=outcome, error=message)
    return {"steps": {step: outcome}, "errors": [message]}


def _status_error(label: str, status_code: int, text: str) -> str:
    return f"{label} error {status_code}: {text[:ERROR_TEXT_LIMIT]}"


def _exception_error(label: str, exc: BaseException) -> str:
    text = str(exc) or type(exc).__name__
    return f"{label} exception: {text[:EXCEPTION_TEXT_LIMIT]}"


def _collaborator_failure(step: str, label: str, exc: Exception) -> dict[str, Any]:
    if isinstance(exc, KeyValueStoreError):
        return _failed(
            step, failed_status(exc.status_code), _status_error(label, exc.status_code, exc.text)
        )
    return _failed(step, FAILED_EXCEPTION, _exception_error(label, exc))


async def rate_limit_node(state: SubmissionState, *, limiter: RateLimiter | None) -> dict[str, Any]:
    """
    Counts the submission against the client's window. A store failure does not
    block the submission; only an explicit over-limit decision does.
    """

    if limiter is None:
        return _done(STEP_RATE_LIMIT, SKIPPED_MISSING_CONFIG)

    record = state["record"]
    try:
        decision = await limiter.check_and_increment(record.ip, at=record.captured_at)
    except Exception as e:
        return _collaborator_failure(STEP_RATE_LIMIT, "RateLimit", e)

    if not decision.allowed:
        log.info("submission_throttled", step=STEP_RATE_LIMIT, count=decision.count)
        return {"steps": {STEP_RATE_LIMIT: BLOCKED}, "blocked": True}
    return _done(STEP_RATE_LIMIT, STORED, count=decision.count)


async def persist_node(state: SubmissionState, *, store: RecordStore | None) -> dict[str, Any]:
    if store is None:
        return _done(STEP_PERSIST, SKIPPED_MISSING_CONFIG)

    record = state["record"]
    try:
        key = await store.persist(record)
    except Exception as e:
        return _collaborator_failure(STEP_PERSIST, "KV", e)
    return _done(STEP_PERSIST, STORED, key=key, badge=record.badge)


async def notify_node(state: SubmissionState, *, notifier: Notifier | None) -> dict[str, Any]:
    if notifier is None:
        return _done(STEP_NOTIFY, SKIPPED_MISSING_CONFIG)

    try:
        result = await notifier.notify(state["record"])
    except Exception as e:
        return _collaborator_failure(STEP_NOTIFY, notifier.provider, e)

    if not result.ok:
        return _failed(
            STEP_NOTIFY,
            failed_status(result.status_code),
            _status_error(notifier.provider, result.status_code, result.error_text),
        )

    if notifier.confirms_submitter:
        await _confirm_submitter(state, notifier=notifier)
    return _done(STEP_NOTIFY, SENT, provider=notifier.provider)


async def _confirm_submitter(state: SubmissionState, *, notifier: Notifier) -> None:
    # Best effort: the capture mail already went out.
    try:
        result = await notifier.confirm(state["record"])
    except Exception as e:
        log.warning(
            "confirmation_failed",
            provider=notifier.provider,
            error=_exception_error(notifier.provider, e),
        )
        return
    if not result.ok:
        log.warning(
            "confirmation_failed",
            provider=notifier.provider,
            error=_status_error(notifier.provider, result.status_code, result.error_text),
        )


async def log_node(state: SubmissionState, *, webhook: AppsScriptLogger | None) -> dict[str, Any]:
    if webhook is None:
        return _done(STEP_LOG, SKIPPED_MISSING_CONFIG)

    try:
        result = await webhook.log(state["record"])
    except Exception as e:
        return _collaborator_failure(STEP_LOG, webhook.name, e)

    if not result.ok:
        return _failed(
            STEP_LOG,
            failed_status(result.status_code),
            _status_error(webhook.name, result.status_code, result.error_text),
        )
    return _done(STEP_LOG, LOGGED)


def route_after_rate_limit(state: SubmissionState) -> str:
    if state.get("blocked"):
        return "end"
    return "persist"
