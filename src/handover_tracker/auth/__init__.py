"""
handover_tracker.auth

Authentication/authorization package.

Responsibilities:
- JWT helpers and validation.
- FastAPI auth dependencies (Principal + role checks).
"""

# Package marker.
