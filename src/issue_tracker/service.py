"""Issue operations on an in-memory board.

`IssueService` is handed the board explicitly and never touches storage; the
caller decides when to persist.
"""

from __future__ import annotations

import logging

from issue_tracker.errors import NotFoundError, ValidationError
from issue_tracker.models import ALLOWED_PARENT_KIND, Board, Issue, IssueKind, Status

logger = logging.getLogger(__name__)

DEFAULT_MAX_TITLE_LENGTH = 54


def rollup_status(children: list[Issue]) -> Status:
    """Derive a parent's status from its children.

    Conditions are checked in order:
    - all done => done
    - all resolved or done => resolved
    - all open => open
    - otherwise => in progress

    A parent left without children goes back to open.
    """

    if not children:
        return Status.OPEN
    statuses = {c.status for c in children}
    if statuses == {Status.DONE}:
        return Status.DONE
    if statuses <= {Status.RESOLVED, Status.DONE}:
        return Status.RESOLVED
    if statuses == {Status.OPEN}:
        return Status.OPEN
    return Status.IN_PROGRESS


class IssueService:
    """Create, query, update and delete issues on a board."""

    def __init__(
        self,
        board: Board,
        *,
        auto_rollup: bool = True,
        max_title_length: int = DEFAULT_MAX_TITLE_LENGTH,
    ) -> None:
        self.board = board
        self.auto_rollup = auto_rollup
        self.max_title_length = max_title_length

    # Queries

    def get(self, issue_id: int) -> Issue:
        issue = self.board.issues.get(issue_id)
        if issue is None:
            raise NotFoundError(issue_id)
        return issue

    def children(self, issue_id: int) -> list[Issue]:
        self.get(issue_id)
        return self.board.children_of(issue_id)

    def roots(self) -> list[Issue]:
        return [i for i in self.board.sorted_issues() if i.parent_id is None]

    def list(self, *, kind: IssueKind | None = None, status: Status | None = None) -> list[Issue]:
        issues = self.board.sorted_issues()
        if kind is not None:
            issues = [i for i in issues if i.kind is kind]
        if status is not None:
            issues = [i for i in issues if i.status is status]
        return issues

    def descendants(self, issue_id: int) -> list[Issue]:
        out: list[Issue] = []
        for child in self.board.children_of(issue_id):
            out.append(child)
            out.extend(self.descendants(child.id))
        return out

    # Mutations

    def create(
        self,
        kind: IssueKind,
        title: str,
        description: str = "",
        parent_id: int | None = None,
    ) -> Issue:
        title = self._validate_title(title)
        self._validate_parent(kind, parent_id)

        issue = Issue(
            id=self.board.next_id(),
            kind=kind,
            title=title,
            description=description.strip(),
            parent_id=parent_id,
        )
        self.board.issues[issue.id] = issue
        self.board.last_item_id = issue.id
        logger.info(
            "Issue created",
            extra={"issue_id": issue.id, "kind": kind.value, "parent_id": parent_id},
        )

        self._rollup_from(parent_id)
        return issue

    def update_status(self, issue_id: int, status: Status) -> Issue:
        issue = self.get(issue_id)
        if issue.status is not status:
            issue.status = status
            issue.touch()
            logger.info(
                "Issue status updated",
                extra={"issue_id": issue_id, "status": status.value},
            )
        self._rollup_from(issue.parent_id)
        return issue

    def edit(
        self,
        issue_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> Issue:
        issue = self.get(issue_id)
        if title is None and description is None:
            return issue
        if title is not None:
            issue.title = self._validate_title(title)
        if description is not None:
            issue.description = description.strip()
        issue.touch()
        logger.info("Issue edited", extra={"issue_id": issue_id})
        return issue

    def move(self, issue_id: int, parent_id: int | None) -> Issue:
        """Attach an issue to a new parent, or detach it with `parent_id=None`."""

        issue = self.get(issue_id)
        self._validate_parent(issue.kind, parent_id)

        previous = issue.parent_id
        if previous == parent_id:
            return issue
        issue.parent_id = parent_id
        issue.touch()
        logger.info(
            "Issue moved",
            extra={"issue_id": issue_id, "from_parent": previous, "to_parent": parent_id},
        )

        self._rollup_from(previous)
        self._rollup_from(parent_id)
        return issue

    def delete(self, issue_id: int) -> list[Issue]:
        """Delete an issue and all of its descendants.

        Returns:
            The removed issues, the requested one first.
        """

        issue = self.get(issue_id)
        removed = [issue, *self.descendants(issue_id)]
        for r in removed:
            del self.board.issues[r.id]
        logger.info(
            "Issue deleted",
            extra={"issue_id": issue_id, "removed": [r.id for r in removed]},
        )

        self._rollup_from(issue.parent_id)
        return removed

    # Helpers

    def _validate_title(self, title: str) -> str:
        normalized = title.strip()
        if not normalized:
            raise ValidationError("Title is required")
        if len(normalized) > self.max_title_length:
            raise ValidationError(
                f"Title is too long ({len(normalized)} > {self.max_title_length} characters); "
                "keep it short and meaningful"
            )
        return normalized

    def _validate_parent(self, kind: IssueKind, parent_id: int | None) -> None:
        if parent_id is None:
            return

        expected = ALLOWED_PARENT_KIND[kind]
        if expected is None:
            raise ValidationError(f"{kind.label}s are top-level and cannot have a parent")

        parent = self.board.issues.get(parent_id)
        if parent is None:
            raise ValidationError(f"Parent issue #{parent_id} does not exist")
        if parent.kind is not expected:
            raise ValidationError(
                f"Parent of a {kind.label} must be of type {expected.label}, "
                f"not {parent.kind.label} #{parent_id}"
            )

    def _rollup_from(self, parent_id: int | None) -> None:
        if not self.auto_rollup:
            return

        while parent_id is not None:
            parent = self.board.issues.get(parent_id)
            if parent is None:
                return
            derived = rollup_status(self.board.children_of(parent_id))
            if derived is not parent.status:
                parent.status = derived
                parent.touch()
                logger.debug(
                    "Parent status rolled up",
                    extra={"issue_id": parent_id, "status": derived.value},
                )
            parent_id = parent.parent_id
