"""
badge_capture.services

Service layer.

Responsibilities:
- Domain wrappers around collaborators (rate limiter, record store, notifier).
- The submission service that owns parse → validate → orchestrate → respond.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers call into `SubmissionService`; nothing in the API layer talks to a collaborator.
