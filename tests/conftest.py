# pyright: standard
from pathlib import Path

import pytest

from gait.consts import SNAPSHOT_FILE_ENV
from gait.snapshot import SnapshotStore
from tests.helpers import SNAPSHOT_REL_PATH, FakeRepository


@pytest.fixture(autouse=True)
def clear_snapshot_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(SNAPSHOT_FILE_ENV, raising=False)


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / ".gait").mkdir(parents=True)
    return root


@pytest.fixture
def fake_repo(repo_root: Path) -> FakeRepository:
    return FakeRepository(repo_root)


@pytest.fixture
def store(repo_root: Path) -> SnapshotStore:
    return SnapshotStore(repo_root / SNAPSHOT_REL_PATH)
