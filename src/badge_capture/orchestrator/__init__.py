"""
badge_capture.orchestrator

Side-effect orchestration for one submission (LangGraph state machine).

Responsibilities:
- Typed state schema, reducers, step nodes, routing, and graph compilation.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Call sites should go through `services.submission_service`, which owns parsing,
# validation and the final verdict.
