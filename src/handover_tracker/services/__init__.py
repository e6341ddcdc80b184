"""
handover_tracker.services

Service layer package.

Responsibilities:
- Own transactions (commit/rollback) for multi-step handover workflows.
- Apply access rules before touching records.
"""

# Package marker.
