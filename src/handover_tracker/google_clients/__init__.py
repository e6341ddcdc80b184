"""
handover_tracker.google_clients

Google API client package.

Responsibilities:
- Authenticate as a service account and call the Sheets and Drive REST APIs.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services depend on these clients, never on raw Google URLs.
