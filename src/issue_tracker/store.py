"""JSON-file backed persistence for the issue board.

The whole board is read at startup and rewritten on save. Writes go to a
temporary file in the same directory which is then renamed over the target,
so a crash mid-write never leaves a truncated data file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from issue_tracker.errors import StorageError
from issue_tracker.models import ALLOWED_PARENT_KIND, SCHEMA_VERSION, Board, Issue

logger = logging.getLogger(__name__)


class BoardFile(BaseModel):
    """On-disk shape of the data file."""

    schema_version: int = SCHEMA_VERSION
    last_item_id: int = Field(default=0, ge=0)
    issues: list[Issue] = Field(default_factory=list)

    @classmethod
    def from_board(cls, board: Board) -> BoardFile:
        return cls(
            schema_version=board.schema_version,
            last_item_id=board.last_item_id,
            issues=board.sorted_issues(),
        )

    def to_board(self) -> Board:
        issues: dict[int, Issue] = {}
        for issue in self.issues:
            if issue.id in issues:
                raise StorageError(f"Duplicate issue id {issue.id} in data file")
            issues[issue.id] = issue
        return Board(
            schema_version=self.schema_version,
            last_item_id=self.last_item_id,
            issues=issues,
        )


def check_integrity(board: Board) -> None:
    """Raise StorageError if the board's parent links or id counter are inconsistent."""

    if board.schema_version > SCHEMA_VERSION:
        raise StorageError(
            f"Data file schema version {board.schema_version} is newer than supported "
            f"version {SCHEMA_VERSION}"
        )

    for key, issue in board.issues.items():
        if key != issue.id:
            raise StorageError(f"Issue stored under id {key} claims id {issue.id}")
        if issue.id > board.last_item_id:
            raise StorageError(
                f"Issue id {issue.id} exceeds last issued id {board.last_item_id}"
            )
        if issue.parent_id is None:
            continue

        expected = ALLOWED_PARENT_KIND[issue.kind]
        parent = board.issues.get(issue.parent_id)
        if parent is None:
            raise StorageError(
                f"{issue.kind.label} #{issue.id} references missing parent #{issue.parent_id}"
            )
        if expected is None or parent.kind is not expected:
            raise StorageError(
                f"{issue.kind.label} #{issue.id} cannot have "
                f"{parent.kind.label} #{parent.id} as parent"
            )


def _target_mode(path: Path) -> int:
    """Permission bits for the data file: keep the current ones, else honor the umask."""

    try:
        return path.stat().st_mode & 0o777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class BoardStore:
    """Load and save a Board from a single JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> Board:
        if not self._path.exists():
            logger.info("No data file found, starting empty", extra={"path": str(self._path)})
            return Board()

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read data file {self._path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StorageError(f"Data file {self._path} is not valid UTF-8: {e}") from e

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Data file {self._path} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise StorageError(f"Data file {self._path} has unexpected shape")

        try:
            board = BoardFile.model_validate(raw).to_board()
        except PydanticValidationError as e:
            raise StorageError(f"Data file {self._path} is corrupt: {e}") from e

        check_integrity(board)
        logger.info(
            "Board loaded",
            extra={"path": str(self._path), "issues": len(board.issues)},
        )
        return board

    def save(self, board: Board) -> None:
        payload = BoardFile.from_board(board).model_dump(mode="json")
        data = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, _target_mode(self._path))
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Could not write data file {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.info(
            "Board saved",
            extra={"path": str(self._path), "issues": len(board.issues)},
        )
