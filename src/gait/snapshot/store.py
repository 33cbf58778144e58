from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from msgspec.structs import replace

from gait.exceptions import InvalidInputError, PersistenceError, SnapshotError
from gait.lib.fs import atomic_write_text, read_file_safe

from .models import DeletedChats, Message, PanelChat, Snapshot, dumps_snapshot, empty_snapshot, load_snapshot


class SnapshotStore:
    """
    Read/write access to the current snapshot.

    Holds an in-memory working copy next to the durable JSON file. Every
    mutation replaces the working copy first and then rewrites the file, so a
    failed disk write never leaves the working copy half-applied.

    Not safe for concurrent writers: callers must serialize mutations.
    """

    path: Path
    _working: Snapshot | None
    _pending: list[PanelChat]

    def __init__(self, path: Path) -> None:
        self.path = path
        self._working = None
        self._pending = []

    # ---------- Reading ----------

    def read_current(self) -> Snapshot:
        """
        Returns the working snapshot, loading it from disk on first use.
        Never fails: a missing or corrupt file yields an empty snapshot.
        """
        if self._working is None:
            self._working = self.read_disk()
        return self._working

    def read_disk(self) -> Snapshot:
        """
        Reads the durable copy, bypassing the working copy.
        """
        if not self.path.exists():
            return empty_snapshot()

        content = read_file_safe(self.path)
        if content is None:
            print(f"Warning: Failed to read snapshot file {self.path}; using an empty snapshot.", file=sys.stderr)
            return empty_snapshot()

        try:
            return load_snapshot(content)
        except SnapshotError as e:
            print(f"Warning: {e.message} ({self.path}); using an empty snapshot.", file=sys.stderr)
            return empty_snapshot()

    def reload(self) -> Snapshot:
        """Drops the working copy and re-reads the file."""
        self._working = None
        return self.read_current()

    # ---------- Writing ----------

    def write_current(self, snapshot: Snapshot) -> None:
        """
        Applies snapshot as the working copy, then persists it.

        Raises:
            PersistenceError: if the file could not be written. The working copy
                keeps the new snapshot in that case.
        """
        self._working = snapshot
        try:
            atomic_write_text(self.path, dumps_snapshot(snapshot))
        except OSError as e:
            raise PersistenceError(f"Failed to write snapshot file {self.path}: {e}") from e

    def append_message(self, chat_id: str, message: Message, *, new_chat: PanelChat | None = None) -> None:
        """
        Appends message to the chat with chat_id.

        Replaying an append is a no-op: a message whose id is already in the chat
        is not added again. Unknown chat ids create a new chat, using new_chat
        for its metadata when given.
        """
        self.append_messages(chat_id, [message], new_chat=new_chat)

    def append_messages(
        self,
        chat_id: str,
        messages: Sequence[Message],
        *,
        new_chat: PanelChat | None = None,
    ) -> None:
        snapshot = self.read_current()
        panel_chats = list(snapshot.panel_chats)

        for pos, chat in enumerate(panel_chats):
            if chat.id != chat_id:
                continue
            known_ids = {m.id for m in chat.messages}
            fresh = _unique_by_id(m for m in messages if m.id not in known_ids)
            if not fresh:
                return
            panel_chats[pos] = replace(chat, messages=[*chat.messages, *fresh])
            break
        else:
            base = new_chat or PanelChat(id=chat_id, created_on=datetime.now(UTC).isoformat())
            panel_chats.append(replace(base, id=chat_id, messages=_unique_by_id(messages)))

        self.write_current(replace(snapshot, panel_chats=panel_chats))

    def delete_message(self, message_id: str) -> None:
        """
        Removes a message from the live snapshot and records it in the ledger.
        """
        snapshot = self.read_current()
        found = False
        panel_chats: list[PanelChat] = []
        for chat in snapshot.panel_chats:
            kept = [m for m in chat.messages if m.id != message_id]
            if len(kept) != len(chat.messages):
                found = True
                chat = replace(chat, messages=kept)
            panel_chats.append(chat)

        pending_found = self._drop_pending_message(message_id)
        if not found and not pending_found:
            raise InvalidInputError(f"Message with ID '{message_id}' not found.")

        ledger = snapshot.deleted_chats
        if message_id not in ledger.message_ids:
            ledger = replace(ledger, deleted_message_ids=[*ledger.deleted_message_ids, message_id])

        self.write_current(replace(snapshot, panel_chats=panel_chats, deleted_chats=ledger))

    def delete_chat(self, chat_id: str) -> None:
        """
        Removes a panel chat from the live snapshot and records it in the ledger.
        """
        snapshot = self.read_current()
        panel_chats = [chat for chat in snapshot.panel_chats if chat.id != chat_id]
        pending_before = len(self._pending)
        self._pending = [chat for chat in self._pending if chat.id != chat_id]

        if len(panel_chats) == len(snapshot.panel_chats) and len(self._pending) == pending_before:
            raise InvalidInputError(f"PanelChat with ID '{chat_id}' not found.")

        ledger: DeletedChats = snapshot.deleted_chats
        if chat_id not in ledger.panel_chat_ids:
            ledger = replace(ledger, deleted_panel_chat_ids=[*ledger.deleted_panel_chat_ids, chat_id])

        self.write_current(replace(snapshot, panel_chats=panel_chats, deleted_chats=ledger))

    def delete_inline_chat(self, inline_chat_id: str) -> None:
        snapshot = self.read_current()
        inline_chats = [c for c in snapshot.inline_chats if c.inline_chat_id != inline_chat_id]
        if len(inline_chats) == len(snapshot.inline_chats):
            raise InvalidInputError(f"Inline chat with ID '{inline_chat_id}' not found.")
        self.write_current(replace(snapshot, inline_chats=inline_chats))

    def associate_file_with_message(self, message_id: str, file_path: str) -> bool:
        """
        Adds file_path to the message's kv_store["file_paths"].

        Looks in the stored snapshot first, then in the pending buffer.
        Returns False when the message is unknown or already associated.
        """
        snapshot = self.read_current()
        for pos, chat in enumerate(snapshot.panel_chats):
            updated = _associate_in_chat(chat, message_id, file_path)
            if updated is None:
                continue
            if updated is chat:
                return False
            panel_chats = list(snapshot.panel_chats)
            panel_chats[pos] = updated
            self.write_current(replace(snapshot, panel_chats=panel_chats))
            return True

        for pos, chat in enumerate(self._pending):
            updated = _associate_in_chat(chat, message_id, file_path)
            if updated is None:
                continue
            if updated is chat:
                return False
            self._pending[pos] = updated
            return True

        return False

    # ---------- Pending (not yet stashed) chats ----------

    @property
    def pending_panel_chats(self) -> tuple[PanelChat, ...]:
        return tuple(self._pending)

    def stage_pending(self, chat: PanelChat) -> None:
        """
        Puts chat into the in-memory buffer of chats that are not on disk yet,
        replacing an earlier buffered version with the same id.
        """
        self._pending = [c for c in self._pending if c.id != chat.id]
        self._pending.append(chat)

    def clear_pending(self) -> None:
        self._pending = []

    # ---------- Internal ----------

    def _drop_pending_message(self, message_id: str) -> bool:
        found = False
        pending: list[PanelChat] = []
        for chat in self._pending:
            kept = [m for m in chat.messages if m.id != message_id]
            if len(kept) != len(chat.messages):
                found = True
                chat = replace(chat, messages=kept)
            pending.append(chat)
        self._pending = pending
        return found


def _unique_by_id(messages: Iterable[Message]) -> list[Message]:
    seen: set[str] = set()
    result: list[Message] = []
    for message in messages:
        if message.id in seen:
            continue
        seen.add(message.id)
        result.append(message)
    return result


def _associate_in_chat(chat: PanelChat, message_id: str, file_path: str) -> PanelChat | None:
    """
    Returns None if the message is not in chat, chat itself if nothing changed,
    or an updated copy.
    """
    for pos, message in enumerate(chat.messages):
        if message.id != message_id:
            continue
        paths = message.file_paths or []
        if file_path in paths:
            return chat
        kv_store = dict(message.kv_store or {})
        kv_store["file_paths"] = [*paths, file_path]
        messages = list(chat.messages)
        messages[pos] = replace(message, kv_store=kv_store)
        return replace(chat, messages=messages)
    return None
