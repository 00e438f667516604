"""CLI entrypoint for the issue tracker.

Each invocation runs one command: the board is loaded once, the command is
applied, and the board is saved once if the command changed it.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as SettingsValidationError

from issue_tracker import __version__
from issue_tracker.config import TrackerSettings
from issue_tracker.errors import TrackerError, UsageError
from issue_tracker.logging import configure_logging
from issue_tracker.models import IssueKind, Status
from issue_tracker.render import (
    format_error,
    format_issue_detail,
    format_issue_line,
    format_issue_table,
    format_issue_tree,
)
from issue_tracker.service import IssueService
from issue_tracker.store import BoardStore

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(f"{self.prog}: {message}", help_text=self.format_help())


def _status(value: str) -> Status:
    try:
        return Status.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _issue_id(value: str) -> int:
    try:
        issue_id = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid issue id: {value!r}") from None
    if issue_id <= 0:
        raise argparse.ArgumentTypeError(f"invalid issue id: {value!r}")
    return issue_id


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="jira",
        description="Local-first issue tracker for Epics, Stories and Tasks",
    )
    parser.add_argument("--version", action="version", version=f"issue-tracker {__version__}")
    parser.add_argument(
        "--data-file",
        type=Path,
        default=None,
        help="JSON data file (overrides TRACKER_DATA_FILE)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create an Epic, Story or Task")
    create.add_argument("kind", choices=[k.value for k in IssueKind], help="Issue type")
    create.add_argument("--title", required=True, help="Short, meaningful title")
    create.add_argument("--description", default="", help="Longer description")
    create.add_argument(
        "--parent",
        type=_issue_id,
        default=None,
        help="Parent id: an Epic for Stories, a Story for Tasks",
    )

    list_ = subparsers.add_parser("list", help="List issues")
    list_.add_argument(
        "--kind", choices=[k.value for k in IssueKind], default=None, help="Only this type"
    )
    list_.add_argument("--status", type=_status, default=None, help="Only this status")
    list_.add_argument(
        "--format",
        choices=["tree", "table"],
        default="tree",
        help="Indented hierarchy (default) or a table",
    )

    show = subparsers.add_parser("show", help="Show one issue and its children")
    show.add_argument("id", type=_issue_id, help="Issue id")

    update = subparsers.add_parser("update", help="Change an issue's fields, status or parent")
    update.add_argument("id", type=_issue_id, help="Issue id")
    update.add_argument("--title", default=None, help="New title")
    update.add_argument("--description", default=None, help="New description")
    update.add_argument(
        "--status",
        type=_status,
        default=None,
        help="New status: open | in-progress | resolved | done",
    )
    parent_group = update.add_mutually_exclusive_group()
    parent_group.add_argument(
        "--parent", type=_issue_id, default=None, help="Move under this parent"
    )
    parent_group.add_argument("--detach", action="store_true", help="Remove the parent link")
    update.set_defaults(command_help=update.format_help())

    delete = subparsers.add_parser(
        "delete", help="Delete an issue together with all of its children"
    )
    delete.add_argument("id", type=_issue_id, help="Issue id")

    return parser


def _run(args: argparse.Namespace, service: IssueService) -> tuple[str, bool]:
    """Apply the parsed command.

    Returns:
        The text to print and whether the board was changed.
    """

    if args.command == "create":
        issue = service.create(
            IssueKind(args.kind),
            args.title,
            description=args.description,
            parent_id=args.parent,
        )
        return f"Created {format_issue_line(issue)}", True

    if args.command == "list":
        kind = IssueKind(args.kind) if args.kind else None
        issues = service.list(kind=kind, status=args.status)
        if args.format == "table":
            return format_issue_table(issues, color=sys.stdout.isatty()), False
        filtered = kind is not None or args.status is not None
        if filtered and not issues:
            return "No matching issues.", False
        return format_issue_tree(service.board, issues if filtered else None), False

    if args.command == "show":
        return format_issue_detail(service.get(args.id), service.board), False

    if args.command == "update":
        changes_parent = args.parent is not None or args.detach
        requested = [args.title, args.description, args.status]
        if all(v is None for v in requested) and not changes_parent:
            raise UsageError("update: nothing to change", help_text=args.command_help)

        issue = service.edit(args.id, title=args.title, description=args.description)
        if changes_parent:
            issue = service.move(args.id, None if args.detach else args.parent)
        if args.status is not None:
            issue = service.update_status(args.id, args.status)
        return f"Updated {format_issue_line(issue)}", True

    if args.command == "delete":
        removed = service.delete(args.id)
        lines = [f"Deleted {format_issue_line(removed[0])}"]
        lines.extend(f"  also deleted {format_issue_line(r)}" for r in removed[1:])
        return "\n".join(lines), True

    raise UsageError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        print(format_error(e), file=sys.stderr)
        print(e.help_text or parser.format_help(), file=sys.stderr)
        return e.exit_code

    try:
        settings = TrackerSettings()
    except SettingsValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, fmt=settings.log_format)

    store = BoardStore(args.data_file or settings.data_file)
    try:
        board = store.load()
        service = IssueService(
            board,
            auto_rollup=settings.auto_rollup,
            max_title_length=settings.max_title_length,
        )
        output, changed = _run(args, service)
        if changed:
            store.save(board)
        print(output)
        return 0

    except UsageError as e:
        print(format_error(e), file=sys.stderr)
        print(e.help_text or parser.format_help(), file=sys.stderr)
        return e.exit_code

    except TrackerError as e:
        logger.warning(str(e), extra={"command": args.command, "error": type(e).__name__})
        print(format_error(e), file=sys.stderr)
        return e.exit_code

    except Exception as e:
        logger.exception("Command failed", extra={"command": args.command})
        print(format_error(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
