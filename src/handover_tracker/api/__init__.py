"""
handover_tracker.api

API package for the Handover Tracker service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error envelopes and request models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + auth + delegation to services.
