import os
from pathlib import Path

from gait.consts import GAIT_FOLDER_NAME, SNAPSHOT_FILE_ENV, SNAPSHOT_FILE_NAME
from gait.exceptions import ConfigurationError


def find_repo_root(start: Path | None = None) -> Path | None:
    """
    Walks upward from start (default: CWD) to the first directory holding a
    .gait folder or a .git entry.
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / GAIT_FOLDER_NAME).is_dir() or (parent / ".git").exists():
            return parent
    return None


def snapshot_path_for(repo_root: Path) -> Path:
    return repo_root / GAIT_FOLDER_NAME / SNAPSHOT_FILE_NAME


def find_snapshot_file() -> tuple[Path, Path]:
    """
    Locates the snapshot file, honouring GAIT_SNAPSHOT_FILE before searching parents.

    Returns (repo_root, snapshot_path). The snapshot file itself may not exist yet.
    """
    if env_path := os.environ.get(SNAPSHOT_FILE_ENV):
        path = Path(env_path)
        if not path.is_absolute():
            raise ConfigurationError(f"{SNAPSHOT_FILE_ENV} must be an absolute path")
        if not path.is_file():
            raise ConfigurationError(f"Snapshot file specified in {SNAPSHOT_FILE_ENV} does not exist: {path}")
        root = find_repo_root(path.parent) or path.parent
        return root, path

    root = find_repo_root()
    if root is None:
        raise ConfigurationError(f"No repository found: no '{GAIT_FOLDER_NAME}' or '.git' in any parent directory.")
    return root, snapshot_path_for(root)
