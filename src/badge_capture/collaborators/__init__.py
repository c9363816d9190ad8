"""
badge_capture.collaborators

HTTP client boundaries for the external services a submission fans out to.

Responsibilities:
- Key-value store (rate-limit counters, stored submissions).
- Transactional mail providers.
- Spreadsheet-logging webhook.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Clients here report what the remote side said; deciding what a failure means for
# the submission is the orchestrator's job.
