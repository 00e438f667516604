"""Issue Tracker.

A local-first, Jira-style command-line tracker:
- Epics, Stories and Tasks in a fixed three-level hierarchy
- the whole board persisted to a local JSON file
- configuration loaded from `.env` and structured logging
"""

__version__ = "0.1.0"

from issue_tracker.config import TrackerSettings

__all__ = ["__version__", "TrackerSettings"]
