"""
badge_capture.api

API package for the badge capture service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and cross-origin handling.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: transport checks (verb, content type) + delegation to services.
