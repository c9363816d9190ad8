"""
badge_capture.orchestrator.reducers

Reducers define how LangGraph merges the partial updates each step node returns.

Why reducers:
- Every node reports only its own step outcome and its own error lines.
- The graph state accumulates them without any node reading or rewriting another's result.
"""

from __future__ import annotations


def merge_steps(left: dict[str, str] | None, right: dict[str, str] | None) -> dict[str, str]:
    """
    Shallow merge of step outcomes (right wins on key collision).
    """

    if not left:
        return dict(right or {})
    if not right:
        return dict(left)
    return {**left, **right}


def append_errors(left: list[str] | None, right: list[str] | None) -> list[str]:
    """
    Append-only reducer for error lines; preserves step execution order.
    """

    if not left:
        return list(right or [])
    if not right:
        return list(left)
    return [*left, *right]
