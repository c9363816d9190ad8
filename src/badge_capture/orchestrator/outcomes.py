"""
badge_capture.orchestrator.outcomes

Step names and the outcome vocabulary reported per step.
"""

from __future__ import annotations

STEP_RATE_LIMIT = "rateLimit"
STEP_PERSIST = "persist"
STEP_NOTIFY = "notify"
STEP_LOG = "log"

# Execution order; also the key order of the `steps` object in responses.
STEP_ORDER = (STEP_RATE_LIMIT, STEP_PERSIST, STEP_NOTIFY, STEP_LOG)

SKIPPED = "skipped"
SKIPPED_MISSING_CONFIG = "skipped_missing_config"
STORED = "stored"
SENT = "sent"
LOGGED = "logged"
BLOCKED = "blocked"
FAILED_EXCEPTION = "failed_exception"


def failed_status(status_code: int) -> str:
    return f"failed_{status_code}"


def is_failure(outcome: str) -> bool:
    return outcome.startswith("failed_")
