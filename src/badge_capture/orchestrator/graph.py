from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from badge_capture.collaborators.webhook import AppsScriptLogger
from badge_capture.orchestrator.nodes import (
    log_node,
    notify_node,
    persist_node,
    rate_limit_node,
    route_after_rate_limit,
)
from badge_capture.orchestrator.state import SubmissionState
from badge_capture.services.notifier import Notifier
from badge_capture.services.rate_limiter import RateLimiter
from badge_capture.services.record_store import RecordStore

StepNode = Callable[[SubmissionState], Awaitable[dict[str, Any]]]


def build_graph(
    *,
    limiter: RateLimiter | None,
    store: RecordStore | None,
    notifier: Notifier | None,
    webhook: AppsScriptLogger | None,
):
    """
    Returns a compiled LangGraph runnable: rate_limit → persist → notify → log.
    Unconfigured collaborators are passed as None and their step reports a skip.
    """

    try:
        from langgraph.graph import END, StateGraph  # type: ignore[import-not-found]
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "LangGraph is not available. Install the project dependencies (see pyproject.toml)."
        ) from e

    graph = StateGraph(SubmissionState)

    graph.add_node("rate_limit", _bind(rate_limit_node, limiter=limiter))
    graph.add_node("persist", _bind(persist_node, store=store))
    graph.add_node("notify", _bind(notify_node, notifier=notifier))
    graph.add_node("log", _bind(log_node, webhook=webhook))

    graph.set_entry_point("rate_limit")

    graph.add_conditional_edges(
        "rate_limit",
        route_after_rate_limit,
        {"persist": "persist", "end": END},
    )
    # Independent steps: each node records its own outcome and never stops the chain.
    graph.add_edge("persist", "notify")
    graph.add_edge("notify", "log")
    graph.add_edge("log", END)

    return graph.compile()


def _bind(fn: Callable[..., Awaitable[dict[str, Any]]], **deps: Any) -> StepNode:
    async def _wrapped(state: SubmissionState) -> dict[str, Any]:
        return await fn(state, **deps)

    return _wrapped
