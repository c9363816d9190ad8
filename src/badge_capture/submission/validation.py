"""
badge_capture.submission.validation

Inbound payload parsing and validation.

Responsibilities:
- Parse the raw request body into a JSON object.
- Validate required fields, collecting every violation instead of stopping at the first.
- Build the normalized `SubmissionRecord` from validated input and request metadata.
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import UTC, datetime
from typing import Any

from badge_capture.submission.models import (
    STORAGE_KEY_PREFIX,
    RequestMetadata,
    SubmissionRecord,
    ValidatedInput,
    ValidationFailed,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ERR_INVALID_JSON = "Invalid JSON body"
ERR_NOT_OBJECT = "Expected a JSON object"
ERR_EMAIL = "Missing or invalid email"
ERR_BADGE = "Missing badge"
ERR_CONSENT = "Consent required"


def parse_body(raw: bytes) -> dict[str, Any]:
    if not raw.strip():
        return {}
    # ValueError covers bad UTF-8, bad JSON and oversized integer literals;
    # RecursionError covers excessive nesting.
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise ValidationFailed([ERR_INVALID_JSON]) from e
    if not isinstance(data, dict):
        raise ValidationFailed([ERR_NOT_OBJECT])
    return data


def validate(data: dict[str, Any], *, require_consent: bool) -> ValidatedInput:
    errors: list[str] = []

    email = _text(data.get("email"))
    if not email or not EMAIL_PATTERN.match(email):
        errors.append(ERR_EMAIL)

    badge = _text(data.get("badge"))
    if not badge:
        errors.append(ERR_BADGE)

    raw_consent = data.get("consent")
    # Only a JSON `true` counts; "true", 1 and other truthy values do not.
    if require_consent and raw_consent is not True:
        errors.append(ERR_CONSENT)

    if errors:
        raise ValidationFailed(errors)

    return ValidatedInput(
        email=email,
        badge=badge,
        city=_text(data.get("city")),
        consent=raw_consent is True,
        session_id=_text(data.get("sessionId")),
        referrer=_text(data.get("referrer")),
    )


def build_record(
    validated: ValidatedInput,
    metadata: RequestMetadata,
    *,
    now: datetime | None = None,
) -> SubmissionRecord:
    captured_at = now or datetime.now(UTC)
    key_suffix = validated.session_id or str(uuid.uuid4())
    return SubmissionRecord(
        email=validated.email,
        badge=validated.badge,
        city=validated.city,
        consent=validated.consent,
        session_id=validated.session_id,
        referrer=validated.referrer,
        ip=metadata.ip,
        user_agent=metadata.user_agent,
        captured_at=captured_at,
        storage_key=f"{STORAGE_KEY_PREFIX}{key_suffix}",
    )


def _text(value: Any) -> str:
    # Non-string values are treated as absent.
    if not isinstance(value, str):
        return ""
    return value.strip()
