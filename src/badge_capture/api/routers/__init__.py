"""
badge_capture.api.routers

HTTP routers (health probes and the submission endpoint).
"""

# Package marker.
