"""
badge_capture.orchestrator.state

Typed state schema used by the LangGraph orchestration engine.

Responsibilities:
- Define the contract between step nodes (inputs/outputs).
"""

from __future__ import annotations

from typing import Annotated, TypedDict

from badge_capture.orchestrator.reducers import append_errors, merge_steps
from badge_capture.submission.models import SubmissionRecord


class SubmissionState(TypedDict, total=False):
    # Input, set once before the graph runs.
    record: SubmissionRecord

    # Per-step outcomes, keyed by step name (see orchestrator.outcomes).
    steps: Annotated[dict[str, str], merge_steps]

    # Human-readable collaborator failures, in step order.
    errors: Annotated[list[str], append_errors]

    # Set by the rate-limit step when the client is over its window budget.
    blocked: bool


# --- Module Notes -----------------------------------------------------------
# `record` is a frozen dataclass; nodes never replace it, they only add outcomes.
