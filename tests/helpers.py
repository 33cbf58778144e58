# pyright: standard

from datetime import UTC, datetime, timedelta
from pathlib import Path

from gait.consts import GAIT_FOLDER_NAME, SNAPSHOT_FILE_NAME
from gait.exceptions import RevisionNotFoundError, ToolFailureError
from gait.lib.git import CommitRecord, WorkingTreeStatus
from gait.snapshot import (
    DeletedChats,
    DiffChange,
    FileDiff,
    InlineChat,
    Message,
    PanelChat,
    Snapshot,
    dumps_snapshot,
)

SNAPSHOT_REL_PATH = f"{GAIT_FOLDER_NAME}/{SNAPSHOT_FILE_NAME}"

_EPOCH = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def make_message(message_id: str, text: str | None = None, response: str = "ok", **kwargs) -> Message:
    return Message(id=message_id, request_text=text or f"prompt {message_id}", response_text=response, **kwargs)


def make_chat(chat_id: str, *messages: Message, created_on: str | None = None, **kwargs) -> PanelChat:
    return PanelChat(
        id=chat_id,
        editor_kind="Cursor",
        created_on=created_on or "2024-01-01T00:00:00+00:00",
        messages=list(messages),
        **kwargs,
    )


def make_inline_chat(
    inline_chat_id: str,
    file_path: str = "src/app.py",
    added: str = "",
    timestamp: str = "2024-01-01T00:00:00+00:00",
) -> InlineChat:
    return InlineChat(
        inline_chat_id=inline_chat_id,
        timestamp=timestamp,
        prompt=f"inline prompt {inline_chat_id}",
        file_diff=[FileDiff(file_path=file_path, diffs=[DiffChange(value=added, added=True)])],
    )


def make_snapshot(
    *chats: PanelChat,
    inline_chats: list[InlineChat] | None = None,
    deleted_message_ids: list[str] | None = None,
    deleted_chat_ids: list[str] | None = None,
) -> Snapshot:
    return Snapshot(
        panel_chats=list(chats),
        inline_chats=inline_chats or [],
        deleted_chats=DeletedChats(
            deleted_message_ids=deleted_message_ids or [],
            deleted_panel_chat_ids=deleted_chat_ids or [],
        ),
    )


def write_snapshot(repo_root: Path, snapshot: Snapshot) -> Path:
    path = repo_root / SNAPSHOT_REL_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    _ = path.write_text(dumps_snapshot(snapshot), encoding="utf-8")
    return path


class FakeRepository:
    """
    In-memory CommitLogWalker.

    Commits are added oldest first. Content may be a Snapshot or raw text
    (to simulate corrupt commits); None means the file is absent at that commit.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.commits: list[CommitRecord] = []
        self.contents: dict[str, str | None] = {}
        self.changes: dict[str, set[str]] = {}
        self.status = WorkingTreeStatus()
        self.fail_log = False
        self.failing_changed_paths: set[str] = set()

    def add_commit(
        self,
        commit_hash: str,
        content: Snapshot | str | None,
        *,
        message: str = "Update chats",
        changed: set[str] | None = None,
        path: str | None = None,
    ) -> CommitRecord:
        record = CommitRecord(
            hash=commit_hash,
            author="Test Author",
            date=_EPOCH + timedelta(hours=len(self.commits)),
            message=message,
            path=path,
        )
        self.commits.append(record)
        self.contents[commit_hash] = dumps_snapshot(content) if isinstance(content, Snapshot) else content
        self.changes[commit_hash] = {SNAPSHOT_REL_PATH, *(changed or set())}
        return record

    def list_commits(self, path: str, *, reverse: bool = True, follow_renames: bool = True) -> list[CommitRecord]:
        if self.fail_log:
            raise ToolFailureError(f"Failed to retrieve git log for {path}")
        return list(self.commits) if reverse else list(reversed(self.commits))

    def read_file_at_commit(self, commit_hash: str, path: str) -> str:
        content = self.contents.get(commit_hash)
        if content is None:
            raise RevisionNotFoundError(commit_hash, path)
        return content

    def changed_paths(self, commit_hash: str) -> set[str]:
        if commit_hash in self.failing_changed_paths:
            raise ToolFailureError(f"Failed to list files changed in commit {commit_hash}")
        return self.changes.get(commit_hash, set())

    def working_tree_status(self) -> WorkingTreeStatus:
        return self.status
