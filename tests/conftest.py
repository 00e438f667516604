"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from issue_tracker.config import TrackerSettings
from issue_tracker.models import Board, IssueKind
from issue_tracker.service import IssueService
from issue_tracker.store import BoardStore

_ENV_VARS = (
    "TRACKER_DATA_FILE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "TRACKER_AUTO_ROLLUP",
    "TRACKER_MAX_TITLE_LENGTH",
)


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty working directory with no tracker env vars set."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Provide a data file path inside a not-yet-existing directory."""
    return tmp_path / "data" / "db.json"


@pytest.fixture
def store(data_file: Path) -> BoardStore:
    return BoardStore(data_file)


@pytest.fixture
def settings(clean_env: Path, data_file: Path) -> TrackerSettings:
    """Provide test settings pointing at the temporary data file."""
    return TrackerSettings(data_file=data_file, log_level="DEBUG")


@pytest.fixture
def service() -> IssueService:
    return IssueService(Board())


@pytest.fixture
def populated(service: IssueService) -> IssueService:
    """Board with Epic #1 > Story #2 > Tasks #3, #4 and a second Epic #5."""
    epic = service.create(IssueKind.EPIC, "E1", "First epic")
    story = service.create(IssueKind.STORY, "S1", parent_id=epic.id)
    service.create(IssueKind.TASK, "T1", parent_id=story.id)
    service.create(IssueKind.TASK, "T2", parent_id=story.id)
    service.create(IssueKind.EPIC, "E2")
    return service
