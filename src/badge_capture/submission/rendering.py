"""
badge_capture.submission.rendering

Deterministic plain-text rendering of the capture mail and the submitter confirmation.
"""

from __future__ import annotations

from badge_capture.submission.models import SubmissionRecord


def render_subject(site_name: str) -> str:
    return f"{site_name}: new badge"


def render_body(record: SubmissionRecord) -> str:
    lines = [
        f"Email: {record.email}",
        f"City: {record.city}",
        f"Badge: {record.badge}",
        f"Session: {record.session_id}",
        f"Referrer: {record.referrer}",
        f"IP: {record.ip}",
        f"UA: {record.user_agent}",
        f"When: {record.timestamp}",
    ]
    return "\n".join(lines)


def render_confirmation_subject(site_name: str) -> str:
    return f"{site_name}: badge saved"


def render_confirmation_body(record: SubmissionRecord) -> str:
    return f"Thanks! We saved your badge code {record.badge}."
