"""Issue model: Epics, Stories and Tasks held in a flat id-keyed board."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

SCHEMA_VERSION = 1


class IssueKind(str, Enum):
    EPIC = "epic"
    STORY = "story"
    TASK = "task"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Status(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    DONE = "done"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> Status:
        """Parse a user-supplied status name, accepting a few common aliases."""

        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        normalized = _STATUS_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown status {value!r} (expected one of: {choices})") from None


_STATUS_LABELS: dict[Status, str] = {
    Status.OPEN: "Open",
    Status.IN_PROGRESS: "In Progress",
    Status.RESOLVED: "Resolved",
    Status.DONE: "Done",
}

_STATUS_ALIASES: dict[str, str] = {
    "inprogress": "in-progress",
    "closed": "done",
}


# Which kind a parent must be, per child kind. Epics are always top-level.
ALLOWED_PARENT_KIND: dict[IssueKind, IssueKind | None] = {
    IssueKind.EPIC: None,
    IssueKind.STORY: IssueKind.EPIC,
    IssueKind.TASK: IssueKind.STORY,
}


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Issue(BaseModel):
    """A single Epic, Story or Task."""

    id: int = Field(gt=0)
    kind: IssueKind
    title: str
    description: str = ""
    status: Status = Status.OPEN
    parent_id: int | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def touch(self) -> None:
        self.updated_at = _utc_now()


class Board(BaseModel):
    """The whole issue collection.

    Issues reference their parent by id only; children are found by lookup.
    `last_item_id` is the highest id ever issued and never decreases, so ids
    are not reused after deletes.
    """

    schema_version: int = SCHEMA_VERSION
    last_item_id: int = Field(default=0, ge=0)
    issues: dict[int, Issue] = Field(default_factory=dict)

    def next_id(self) -> int:
        return self.last_item_id + 1

    def children_of(self, issue_id: int) -> list[Issue]:
        return sorted(
            (i for i in self.issues.values() if i.parent_id == issue_id),
            key=lambda i: i.id,
        )

    def sorted_issues(self) -> list[Issue]:
        return [self.issues[k] for k in sorted(self.issues)]
