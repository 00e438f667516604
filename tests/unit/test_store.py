"""Unit tests for JSON file persistence."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from issue_tracker.errors import StorageError
from issue_tracker.models import Board, IssueKind, Status
from issue_tracker.service import IssueService
from issue_tracker.store import BoardStore


def test_missing_file_loads_empty_board(store: BoardStore) -> None:
    board = store.load()
    assert board.issues == {}
    assert board.last_item_id == 0


def test_save_then_load_roundtrip(store: BoardStore, populated: IssueService) -> None:
    populated.update_status(3, Status.DONE)
    populated.delete(5)

    store.save(populated.board)
    loaded = store.load()

    assert loaded == populated.board
    assert loaded.last_item_id == 5
    assert loaded.issues[3].status is Status.DONE
    assert loaded.issues[3].created_at == populated.board.issues[3].created_at


def test_save_writes_sorted_json_and_no_temp_files(
    store: BoardStore, populated: IssueService, data_file: Path
) -> None:
    store.save(populated.board)

    raw = json.loads(data_file.read_text(encoding="utf-8"))
    assert raw["schema_version"] == 1
    assert raw["last_item_id"] == 5
    assert [i["id"] for i in raw["issues"]] == [1, 2, 3, 4, 5]
    assert raw["issues"][1]["kind"] == "story"
    assert raw["issues"][1]["parent_id"] == 1
    assert [p.name for p in data_file.parent.iterdir()] == ["db.json"]


def test_save_replaces_existing_file(store: BoardStore, data_file: Path) -> None:
    service = IssueService(Board())
    service.create(IssueKind.EPIC, "First")
    store.save(service.board)
    service.create(IssueKind.EPIC, "Second")
    store.save(service.board)

    assert len(store.load().issues) == 2


def test_invalid_json_raises_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    data_file.write_text('{ "last_item_id": 0, "issues": [] "x": 1 }', encoding="utf-8")

    with pytest.raises(StorageError, match="not valid JSON"):
        store.load()


def test_non_utf8_file_raises_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    data_file.write_bytes(b"\xff\xfe garbage")

    with pytest.raises(StorageError, match="not valid UTF-8"):
        store.load()


def test_wrong_shape_raises_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    data_file.write_text("[]", encoding="utf-8")

    with pytest.raises(StorageError, match="unexpected shape"):
        store.load()


def test_invalid_record_raises_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    payload = {"last_item_id": 1, "issues": [{"id": 1, "kind": "bug", "title": "x"}]}
    data_file.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError, match="corrupt"):
        store.load()


def test_dangling_parent_raises_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    payload = {
        "last_item_id": 2,
        "issues": [{"id": 2, "kind": "task", "title": "orphan", "parent_id": 1}],
    }
    data_file.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError, match="missing parent"):
        store.load()


def test_wrong_parent_kind_raises_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    payload = {
        "last_item_id": 2,
        "issues": [
            {"id": 1, "kind": "epic", "title": "E"},
            {"id": 2, "kind": "task", "title": "T", "parent_id": 1},
        ],
    }
    data_file.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError, match="cannot have Epic #1 as parent"):
        store.load()


def test_duplicate_ids_raise_storage_error(store: BoardStore, data_file: Path) -> None:
    data_file.parent.mkdir(parents=True)
    payload = {
        "last_item_id": 1,
        "issues": [
            {"id": 1, "kind": "epic", "title": "A"},
            {"id": 1, "kind": "epic", "title": "B"},
        ],
    }
    data_file.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError, match="Duplicate issue id 1"):
        store.load()


def test_id_counter_behind_issues_raises_storage_error(
    store: BoardStore, data_file: Path
) -> None:
    data_file.parent.mkdir(parents=True)
    payload = {"last_item_id": 0, "issues": [{"id": 4, "kind": "epic", "title": "A"}]}
    data_file.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageError, match="exceeds last issued id"):
        store.load()


def test_write_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = BoardStore(blocker / "db.json")

    with pytest.raises(StorageError, match="Could not write"):
        store.save(Board())


def test_new_file_mode_follows_umask(store: BoardStore, data_file: Path) -> None:
    umask = os.umask(0o022)
    try:
        store.save(Board())
    finally:
        os.umask(umask)

    assert stat.S_IMODE(data_file.stat().st_mode) == 0o644


def test_save_keeps_existing_file_mode(store: BoardStore, data_file: Path) -> None:
    store.save(Board())
    os.chmod(data_file, 0o640)

    service = IssueService(Board())
    service.create(IssueKind.EPIC, "E")
    store.save(service.board)

    assert stat.S_IMODE(data_file.stat().st_mode) == 0o640
    assert len(store.load().issues) == 1
