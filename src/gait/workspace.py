from dataclasses import dataclass
from pathlib import Path

from gait.exceptions import ConfigurationError, InvalidInputError
from gait.lib.git import CommitLogWalker, GitRepository
from gait.lib.repo_find import find_snapshot_file
from gait.snapshot.store import SnapshotStore


@dataclass(frozen=True, slots=True)
class ActiveWorkspace:
    repo: CommitLogWalker
    store: SnapshotStore
    snapshot_path: Path
    # snapshot_path relative to repo.root, as git names it
    snapshot_rel_path: str

    @property
    def root(self) -> Path:
        return self.repo.root


def repo_relative(root: Path, path: Path) -> str:
    """
    Returns path relative to root in POSIX form.

    Raises:
        InvalidInputError: if path lies outside root.
    """
    absolute = path if path.is_absolute() else Path.cwd() / path
    try:
        return absolute.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        raise InvalidInputError(f"File '{path}' is outside the repository root.") from None


def load_workspace() -> ActiveWorkspace:
    repo_root, snapshot_path = find_snapshot_file()
    repo = GitRepository.discover(repo_root)
    try:
        rel_path = repo_relative(repo.root, snapshot_path)
    except InvalidInputError:
        raise ConfigurationError(
            f"Snapshot file {snapshot_path} is not inside the git repository {repo.root}."
        ) from None

    return ActiveWorkspace(
        repo=repo,
        store=SnapshotStore(snapshot_path),
        snapshot_path=snapshot_path,
        snapshot_rel_path=rel_path,
    )
