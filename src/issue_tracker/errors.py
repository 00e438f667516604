"""Error kinds surfaced to the user.

Each error carries the process exit code the CLI returns for it.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all expected tracker failures."""

    exit_code: int = 1


class UsageError(TrackerError):
    """Malformed CLI invocation."""

    exit_code = 2

    def __init__(self, message: str, *, help_text: str = "") -> None:
        super().__init__(message)
        self.help_text = help_text


class ValidationError(TrackerError):
    """Invalid hierarchy or missing/invalid field."""

    exit_code = 3


class NotFoundError(TrackerError):
    """A referenced issue id does not exist."""

    exit_code = 4

    def __init__(self, issue_id: int) -> None:
        super().__init__(f"No issue found for id {issue_id}")
        self.issue_id = issue_id


class StorageError(TrackerError):
    """The data file could not be read, parsed or written."""

    exit_code = 5
