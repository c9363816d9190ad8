"""
badge_capture.submission

Submission domain: inbound payload validation, the normalized record, and mail rendering.
"""

# Package marker.
