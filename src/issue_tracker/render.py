"""Terminal formatting for issues.

All functions here are pure: they return strings and leave printing to the
caller.
"""

from __future__ import annotations

import textwrap
from collections.abc import Iterable
from io import StringIO

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from issue_tracker.models import Board, Issue, Status

MAX_DESCRIPTION_WIDTH = 75
INDENT = "  "

STATUS_STYLES: dict[Status, str] = {
    Status.OPEN: "",
    Status.IN_PROGRESS: "yellow",
    Status.RESOLVED: "blue",
    Status.DONE: "green",
}


def wrap_text(text: str, width: int = MAX_DESCRIPTION_WIDTH) -> str:
    """Re-flow each line so none exceeds `width`, breaking between words.

    Existing line breaks are kept.
    """

    return "\n".join(
        textwrap.fill(
            " ".join(line.split()), width=width, break_long_words=False, break_on_hyphens=False
        )
        for line in text.strip().splitlines()
    )


def format_issue_line(issue: Issue) -> str:
    return f"#{issue.id} [{issue.kind.label}] {issue.title} ({issue.status.label})"


def format_issue_tree(board: Board, issues: Iterable[Issue] | None = None) -> str:
    """Render issues as an indented Epic > Story > Task hierarchy.

    When `issues` is given only those are shown; an issue whose parent is not
    among them is rendered at the top level.
    """

    selected = board.sorted_issues() if issues is None else sorted(issues, key=lambda i: i.id)
    if not selected:
        return "There are no issues. Create one with `create epic --title ...`."

    by_id = {i.id: i for i in selected}
    lines: list[str] = []

    def walk(issue: Issue, depth: int) -> None:
        lines.append(f"{INDENT * depth}{format_issue_line(issue)}")
        for child in board.children_of(issue.id):
            if child.id in by_id:
                walk(child, depth + 1)

    for issue in selected:
        if issue.parent_id is None or issue.parent_id not in by_id:
            walk(issue, 0)

    return "\n".join(lines)


def format_issue_table(issues: Iterable[Issue], *, color: bool = False) -> str:
    """Render issues as a rounded table rendered by Rich."""

    rows = list(issues)
    if not rows:
        return "No matching issues."

    table = Table(show_header=True, header_style="bold", box=box.ROUNDED)
    table.add_column("ID", justify="right", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Parent", justify="right", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Title", overflow="fold")

    for issue in rows:
        style = STATUS_STYLES[issue.status]
        status = f"[{style}]{issue.status.label}[/]" if style else issue.status.label
        table.add_row(
            str(issue.id),
            issue.kind.label,
            "" if issue.parent_id is None else str(issue.parent_id),
            status,
            escape(issue.title),
        )

    return _render(table, color=color)


def format_issue_detail(issue: Issue, board: Board) -> str:
    lines = [
        f"{issue.kind.label} #{issue.id}: {issue.title}",
        f"Status:  {issue.status.label}",
    ]
    if issue.parent_id is not None:
        parent = board.issues.get(issue.parent_id)
        parent_title = f" {parent.title}" if parent is not None else ""
        lines.append(f"Parent:  #{issue.parent_id}{parent_title}")
    lines.append(f"Created: {issue.created_at.isoformat(timespec='seconds')}")
    lines.append(f"Updated: {issue.updated_at.isoformat(timespec='seconds')}")

    lines.append("")
    lines.append(wrap_text(issue.description) if issue.description else "(no description)")

    children = board.children_of(issue.id)
    if children:
        lines.append("")
        lines.append(f"Children ({len(children)}):")
        lines.extend(f"{INDENT}{format_issue_line(c)}" for c in children)

    return "\n".join(lines)


def format_error(error: BaseException) -> str:
    return f"error: {error}"


def _render(renderable: Table, *, color: bool) -> str:
    buffer = StringIO()
    console = Console(
        file=buffer,
        force_terminal=color,
        color_system="standard" if color else None,
        no_color=not color,
        width=100,
    )
    console.print(renderable)
    return buffer.getvalue().rstrip()
