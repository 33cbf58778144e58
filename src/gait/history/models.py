from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from msgspec import Struct, field

from gait.consts import DELETION_COMMIT_PREFIXES
from gait.snapshot.models import InlineChat, Message, PanelChat, Snapshot


class CommitKind(str, Enum):
    CONTENT = "content"
    DELETION = "deletion"

    @classmethod
    def from_message(cls, message: str) -> CommitKind:
        """A commit whose subject starts with a deletion prefix only records a deletion."""
        if message.startswith(DELETION_COMMIT_PREFIXES):
            return cls.DELETION
        return cls.CONTENT


class CommitData(Struct, frozen=True):
    """
    The chat records first attributable to one commit of the snapshot file.
    Derived on every walk, never persisted.

    kind: always CommitKind.CONTENT in walk output; deletion-marker commits are
        skipped before any CommitData is built for them.
    """

    commit_hash: str
    date: datetime
    message: str
    author: str
    kind: CommitKind = CommitKind.CONTENT
    panel_chats: list[PanelChat] = field(default_factory=list)
    inline_chats: list[InlineChat] = field(default_factory=list)


class UncommittedData(Struct, frozen=True):
    panel_chats: list[PanelChat] = field(default_factory=list)
    inline_chats: list[InlineChat] = field(default_factory=list)


class GitHistoryData(Struct, frozen=True):
    """
    Result of a history walk.

    added: records in the on-disk snapshot that no commit carries yet.
    uncommitted: records only present in the store's pending buffer.
    drifted_message_ids: ids seen again in a later commit with different
        content; the earliest content is the one reported.
    """

    commits: list[CommitData] = field(default_factory=list)
    added: UncommittedData | None = None
    uncommitted: UncommittedData | None = None
    drifted_message_ids: list[str] = field(default_factory=list)


class ActiveIds(Struct, frozen=True):
    """
    Record ids that survive to the present (not deleted in the current ledger).
    """

    panel_chat_ids: frozenset[str] = field(default_factory=frozenset)
    message_ids: frozenset[str] = field(default_factory=frozenset)
    inline_chat_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, pending: Iterable[PanelChat] = ()) -> ActiveIds:
        deleted_chat_ids = snapshot.deleted_chats.panel_chat_ids
        deleted_message_ids = snapshot.deleted_chats.message_ids

        chat_ids: set[str] = set()
        message_ids: set[str] = set()
        for chat in [*snapshot.panel_chats, *pending]:
            if chat.id in deleted_chat_ids:
                continue
            chat_ids.add(chat.id)
            message_ids.update(m.id for m in chat.messages if m.id not in deleted_message_ids)

        # Inline chats have no deletion ledger; every stored one is live.
        inline_ids = {c.inline_chat_id for c in snapshot.inline_chats}

        return cls(
            panel_chat_ids=frozenset(chat_ids),
            message_ids=frozenset(message_ids),
            inline_chat_ids=frozenset(inline_ids),
        )


class SeenIds(Struct):
    """
    Accumulator threaded through a walk: the first sighting of each record.

    Pass the same instance to several walks to keep records surfaced by one
    walk from being reported again by the next.
    """

    messages: dict[str, Message] = field(default_factory=dict)
    inline_chat_ids: set[str] = field(default_factory=set)
    drifted_message_ids: list[str] = field(default_factory=list)

    def has_message(self, message_id: str) -> bool:
        return message_id in self.messages

    def mark_message(self, message: Message) -> None:
        self.messages.setdefault(message.id, message)

    def note_resighting(self, message: Message) -> None:
        first = self.messages.get(message.id)
        if first is not None and first != message and message.id not in self.drifted_message_ids:
            self.drifted_message_ids.append(message.id)
