from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path
from typing import Protocol, final, runtime_checkable

from msgspec import Struct, field

from gait.exceptions import RevisionNotFoundError, ToolFailureError

# Field and record separators for `git log --pretty`; neither can occur in a subject line.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "%x1e%H%x1f%an%x1f%aI%x1f%s"


class CommitRecord(Struct, frozen=True):
    """
    Commit metadata as listed for one tracked path.

    path is the name the tracked file had at this commit, which differs from
    the current name when the log followed a rename.
    """

    hash: str
    author: str
    date: datetime
    message: str
    path: str | None = None


class WorkingTreeStatus(Struct, frozen=True):
    modified: frozenset[str] = field(default_factory=frozenset)
    added: frozenset[str] = field(default_factory=frozenset)
    untracked: frozenset[str] = field(default_factory=frozenset)

    def touches(self, path: str) -> bool:
        return path in self.modified or path in self.added or path in self.untracked


@runtime_checkable
class CommitLogWalker(Protocol):
    """
    Version-control capabilities the history reconstructor depends on.

    Paths are relative to root.
    """

    root: Path

    def list_commits(self, path: str, *, reverse: bool = True, follow_renames: bool = True) -> list[CommitRecord]: ...

    def read_file_at_commit(self, commit_hash: str, path: str) -> str: ...

    def changed_paths(self, commit_hash: str) -> set[str]: ...

    def working_tree_status(self) -> WorkingTreeStatus: ...


@final
class GitRepository:
    """
    CommitLogWalker backed by the `git` executable.
    """

    root: Path

    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def discover(cls, start: Path) -> GitRepository:
        """
        Opens the repository containing start.

        Raises:
            ToolFailureError: if git is unavailable or start is not inside a work tree.
        """
        result = _run_git(start, "rev-parse", "--show-toplevel")
        if result.returncode != 0:
            raise ToolFailureError(f"Not a git repository: {start}\n{result.stderr.strip()}")
        return cls(Path(result.stdout.strip()))

    # ---------- CommitLogWalker ----------

    def list_commits(self, path: str, *, reverse: bool = True, follow_renames: bool = True) -> list[CommitRecord]:
        """
        Lists the commits touching path. Oldest first when reverse is set.

        Raises:
            ToolFailureError: if git cannot enumerate the commits.
        """
        args = ["log", f"--pretty=format:{_LOG_FORMAT}", "--name-only"]
        if follow_renames:
            args.append("--follow")
        args.extend(["--", path])

        result = self._git(*args)
        if result.returncode != 0:
            raise ToolFailureError(f"Failed to retrieve git log for {path}: {result.stderr.strip()}")
        commits = parse_log_output(result.stdout)
        # --follow does not combine with --reverse; reverse locally.
        return commits[::-1] if reverse else commits

    def read_file_at_commit(self, commit_hash: str, path: str) -> str:
        """
        Raises:
            RevisionNotFoundError: if path does not exist at commit_hash.
        """
        result = self._git("show", f"{commit_hash}:{path}")
        if result.returncode != 0:
            raise RevisionNotFoundError(commit_hash, path)
        return result.stdout

    def changed_paths(self, commit_hash: str) -> set[str]:
        result = self._git("diff-tree", "--no-commit-id", "--name-only", "-r", "--root", commit_hash)
        if result.returncode != 0:
            raise ToolFailureError(f"Failed to list files changed in commit {commit_hash}: {result.stderr.strip()}")
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def working_tree_status(self) -> WorkingTreeStatus:
        result = self._git("status", "--porcelain=v1", "-z", "--untracked-files=all")
        if result.returncode != 0:
            raise ToolFailureError(f"Failed to retrieve git status: {result.stderr.strip()}")
        return parse_status_output(result.stdout)

    # ---------- Internal ----------

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        return _run_git(self.root, *args)


def _run_git(cwd: Path, *args: str) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            ["git", "-c", "core.quotepath=off", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        raise ToolFailureError(f"Could not run git: {e}") from e


def parse_log_output(output: str) -> list[CommitRecord]:
    """
    Parses `git log --name-only` output produced with _LOG_FORMAT.
    """
    commits: list[CommitRecord] = []
    for chunk in output.split(_RECORD_SEP):
        lines = chunk.strip("\n").split("\n")
        if not lines or not lines[0].strip():
            continue

        header = lines[0].split(_FIELD_SEP, 3)
        if len(header) < 4:
            continue
        commit_hash, author, date_str, message = header

        paths = [line.strip() for line in lines[1:] if line.strip()]
        commits.append(
            CommitRecord(
                hash=commit_hash,
                author=author,
                date=datetime.fromisoformat(date_str),
                message=message,
                path=paths[0] if paths else None,
            )
        )
    return commits


def parse_status_output(output: str) -> WorkingTreeStatus:
    """
    Parses `git status --porcelain=v1 -z` output.
    """
    modified: set[str] = set()
    added: set[str] = set()
    untracked: set[str] = set()

    entries = output.split("\0")
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue

        xy, path = entry[:2], entry[3:]
        if xy[0] in "RC":
            # Renames and copies are followed by the source path.
            i += 1

        match xy:
            case "??":
                untracked.add(path)
            case _ if "A" in xy:
                added.add(path)
            case _:
                modified.add(path)

    return WorkingTreeStatus(
        modified=frozenset(modified),
        added=frozenset(added),
        untracked=frozenset(untracked),
    )
