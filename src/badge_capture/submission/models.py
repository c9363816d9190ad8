"""
badge_capture.submission.models

Value types shared by validation, the orchestrator steps and the collaborators.

Responsibilities:
- Define the immutable `SubmissionRecord` built after validation passes.
- Define the validation failure raised before any side effect runs.
- Provide the payload shapes written to the key-value store and the webhook.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

STORAGE_KEY_PREFIX = "badge:"


class ValidationFailed(Exception):
    """
    Bad or missing input. Carries the complete, ordered list of problems so the
    client gets every error at once.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass(frozen=True, slots=True)
class RequestMetadata:
    ip: str = ""
    user_agent: str = ""


@dataclass(frozen=True, slots=True)
class ValidatedInput:
    email: str
    badge: str
    city: str
    consent: bool
    session_id: str
    referrer: str


@dataclass(frozen=True, slots=True)
class SubmissionRecord:
    """
    Normalized submission, lives for one request only.
    `storage_key` is fixed at construction so every step sees the same key.
    """

    email: str
    badge: str
    city: str
    consent: bool
    session_id: str
    referrer: str
    ip: str
    user_agent: str
    captured_at: datetime
    storage_key: str

    @property
    def timestamp(self) -> str:
        # ISO-8601 UTC with millisecond precision, e.g. 2026-01-02T03:04:05.678Z
        return self.captured_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_storage(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "city": self.city,
            "badge": self.badge,
            "consent": self.consent,
            "sessionId": self.session_id,
            "referrer": self.referrer,
            "ip": self.ip,
            "userAgent": self.user_agent,
            "ts": self.timestamp,
        }

    def to_webhook(self, *, secret: str) -> dict[str, Any]:
        # Field names match what the Apps Script sheet logger reads.
        return {
            "secret": secret,
            "email": self.email,
            "city": self.city,
            "badge": self.badge,
            "sessionId": self.session_id,
            "referrer": self.referrer,
            "consent": self.consent,
            "ip": self.ip,
            "ua": self.user_agent,
            "ts": self.timestamp,
        }


# --- Module Notes -----------------------------------------------------------
# A SubmissionRecord is only ever created by `submission.validation.build_record`,
# so holding one implies the input passed validation.
