"""
Replays the commit history of the snapshot file to find, for every commit, the
chat records that first appeared there and are still alive today.

The walk is strictly oldest-to-newest: a message is attributed to the earliest
commit that carries it, so commits must be applied in order.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import TypeAlias

from msgspec.structs import replace

from gait.exceptions import NotFoundError, RevisionNotFoundError, SnapshotError, ToolFailureError
from gait.lib.git import CommitLogWalker, CommitRecord
from gait.snapshot.models import DeletedChats, InlineChat, Message, PanelChat, Snapshot, load_snapshot
from gait.snapshot.store import SnapshotStore

from .models import ActiveIds, CommitData, CommitKind, GitHistoryData, SeenIds, UncommittedData

CommitFilter: TypeAlias = Callable[[CommitRecord], bool]


class _CommitBuilder:
    """Mutable accumulator for one commit's CommitData."""

    def __init__(self, commit: CommitRecord, kind: CommitKind) -> None:
        self.commit = commit
        self.kind = kind
        self.chats: dict[str, PanelChat] = {}
        self.messages: dict[str, list[Message]] = {}
        self.inline_chats: list[InlineChat] = []

    def chat_messages(self, chat: PanelChat) -> list[Message]:
        # The first record of a chat id fixes its metadata for this commit.
        if chat.id not in self.chats:
            self.chats[chat.id] = replace(chat, messages=[])
            self.messages[chat.id] = []
        return self.messages[chat.id]

    def build(self) -> CommitData:
        panel_chats = [
            replace(chat, messages=self.messages[chat_id])
            for chat_id, chat in self.chats.items()
            if self.messages[chat_id]
        ]
        return CommitData(
            commit_hash=self.commit.hash,
            date=self.commit.date,
            message=self.commit.message,
            author=self.commit.author,
            kind=self.kind,
            panel_chats=panel_chats,
            inline_chats=list(self.inline_chats),
        )


def get_history(
    repo: CommitLogWalker,
    store: SnapshotStore,
    file_path: str,
    *,
    seen: SeenIds | None = None,
) -> GitHistoryData:
    """
    Reconstructs per-commit chat history for the snapshot at file_path.

    Args:
        repo: Commit log access; file_path is relative to repo.root.
        store: Source of the current snapshot (ledger and live ids) and of the
            pending buffer.
        seen: Optional accumulator shared with earlier walks.

    Raises:
        NotFoundError: if file_path does not exist in the working tree.
        ToolFailureError: if the commit list or the working tree status cannot
            be obtained.
    """
    _require_file(repo, file_path, "File")
    return _reconstruct(repo, store, file_path, seen=seen)


def get_history_for_commits_touching_target(
    repo: CommitLogWalker,
    store: SnapshotStore,
    file_path: str,
    target_path: str,
    *,
    seen: SeenIds | None = None,
) -> GitHistoryData:
    """
    Same walk as get_history, limited to commits that also changed target_path.
    """
    _require_file(repo, file_path, "File")
    _require_file(repo, target_path, "Target file")

    def touches_target(commit: CommitRecord) -> bool:
        try:
            changed = repo.changed_paths(commit.hash)
        except ToolFailureError as e:
            print(f"Warning: Skipping commit {commit.hash}: {e.message}", file=sys.stderr)
            return False
        return target_path in changed

    return _reconstruct(repo, store, file_path, commit_filter=touches_target, seen=seen)


def _require_file(repo: CommitLogWalker, path: str, label: str) -> None:
    absolute = Path(repo.root) / path
    if not absolute.exists():
        raise NotFoundError(f"{label} not found: {absolute}")


def _reconstruct(
    repo: CommitLogWalker,
    store: SnapshotStore,
    file_path: str,
    *,
    commit_filter: CommitFilter | None = None,
    seen: SeenIds | None = None,
) -> GitHistoryData:
    current = store.read_current()
    active = ActiveIds.from_snapshot(current, store.pending_panel_chats)
    seen = seen if seen is not None else SeenIds()

    commits = repo.list_commits(file_path, reverse=True, follow_renames=True)

    builders: dict[str, _CommitBuilder] = {}
    for commit in commits:
        kind = CommitKind.from_message(commit.message)
        if kind is CommitKind.DELETION:
            continue
        if commit_filter is not None and not commit_filter(commit):
            continue

        snapshot = _read_snapshot_at(repo, commit, file_path)
        if snapshot is None:
            continue

        builder = builders.setdefault(commit.hash, _CommitBuilder(commit, kind))
        _apply_commit_snapshot(snapshot, active, seen, builder)

    commit_data = [b.build() for b in builders.values()]
    commit_data = [c for c in commit_data if c.panel_chats or c.inline_chats]

    status = repo.working_tree_status()
    added: UncommittedData | None = None
    if status.touches(file_path):
        on_disk = store.read_disk()
        added = _surface_unseen(on_disk.panel_chats, on_disk.deleted_chats, active, seen, on_disk.inline_chats)

    uncommitted = _surface_unseen(store.pending_panel_chats, current.deleted_chats, active, seen)

    return GitHistoryData(
        commits=commit_data,
        added=added,
        uncommitted=uncommitted,
        drifted_message_ids=list(seen.drifted_message_ids),
    )


def _read_snapshot_at(repo: CommitLogWalker, commit: CommitRecord, file_path: str) -> Snapshot | None:
    path_at_commit = commit.path or file_path
    try:
        content = repo.read_file_at_commit(commit.hash, path_at_commit)
    except RevisionNotFoundError:
        print(
            f"Warning: Could not retrieve {path_at_commit} at commit {commit.hash}. "
            + "It might have been deleted or renamed.",
            file=sys.stderr,
        )
        return None

    try:
        return load_snapshot(content)
    except SnapshotError as e:
        print(f"Warning: Skipping commit {commit.hash}: {e.message}", file=sys.stderr)
        return None


def _apply_commit_snapshot(
    snapshot: Snapshot,
    active: ActiveIds,
    seen: SeenIds,
    builder: _CommitBuilder,
) -> None:
    """
    Adds to builder every live record of snapshot that no earlier commit carried.
    """
    # The commit's own ledger decides which chats existed at that point.
    deleted_chat_ids = snapshot.deleted_chats.panel_chat_ids

    for chat in snapshot.panel_chats:
        if chat.id in deleted_chat_ids:
            continue
        bucket = builder.chat_messages(chat)
        for message in chat.messages:
            if message.id not in active.message_ids:
                continue
            if seen.has_message(message.id):
                seen.note_resighting(message)
                continue
            bucket.append(message)
            seen.mark_message(message)

    for inline_chat in snapshot.inline_chats:
        inline_id = inline_chat.inline_chat_id
        if inline_id in active.inline_chat_ids and inline_id not in seen.inline_chat_ids:
            builder.inline_chats.append(inline_chat)
            seen.inline_chat_ids.add(inline_id)


def _surface_unseen(
    panel_chats: Sequence[PanelChat],
    ledger: DeletedChats,
    active: ActiveIds,
    seen: SeenIds,
    inline_chats: Iterable[InlineChat] = (),
) -> UncommittedData | None:
    """
    Collects live records no commit has carried and marks them as seen.
    Returns None when there is nothing to report.
    """
    deleted_chat_ids = ledger.panel_chat_ids
    deleted_message_ids = ledger.message_ids

    chats: list[PanelChat] = []
    for chat in panel_chats:
        if chat.id in deleted_chat_ids:
            continue
        messages: list[Message] = []
        for message in chat.messages:
            if message.id in deleted_message_ids or message.id not in active.message_ids:
                continue
            if seen.has_message(message.id):
                continue
            messages.append(message)
            seen.mark_message(message)
        if messages:
            chats.append(replace(chat, messages=messages))

    inline: list[InlineChat] = []
    for inline_chat in inline_chats:
        inline_id = inline_chat.inline_chat_id
        if inline_id in active.inline_chat_ids and inline_id not in seen.inline_chat_ids:
            inline.append(inline_chat)
            seen.inline_chat_ids.add(inline_id)

    if not chats and not inline:
        return None
    return UncommittedData(panel_chats=chats, inline_chats=inline)
