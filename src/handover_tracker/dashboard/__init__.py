"""
handover_tracker.dashboard

Pure dashboard computations.

Responsibilities:
- Bucket handovers into due-date time categories.
- Build flat dashboard rows and aggregate them (grouping, stats, KPIs, filter options).
- Hold the handover status transition table.

Nothing in this package touches the database or the network.
"""

# Package marker.
