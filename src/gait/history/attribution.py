from __future__ import annotations

from collections.abc import Iterable

from msgspec import Struct, field

from .models import CommitData, GitHistoryData


class AttributionIndex(Struct, frozen=True):
    """
    Maps record ids to the commit that introduced them.
    """

    by_message_id: dict[str, CommitData] = field(default_factory=dict)
    by_inline_chat_id: dict[str, CommitData] = field(default_factory=dict)

    def commit_for_message(self, message_id: str) -> CommitData | None:
        return self.by_message_id.get(message_id)

    def commit_for_inline_chat(self, inline_chat_id: str) -> CommitData | None:
        return self.by_inline_chat_id.get(inline_chat_id)


def build_attribution_index(history: GitHistoryData | Iterable[CommitData]) -> AttributionIndex:
    """
    Builds both lookup maps in a single pass over the commits, oldest first.

    A walk attributes every id to at most one commit; should an id still appear
    twice, the earlier commit keeps it.
    """
    commits = history.commits if isinstance(history, GitHistoryData) else history

    by_message_id: dict[str, CommitData] = {}
    by_inline_chat_id: dict[str, CommitData] = {}
    for commit in commits:
        for chat in commit.panel_chats:
            for message in chat.messages:
                _ = by_message_id.setdefault(message.id, commit)
        for inline_chat in commit.inline_chats:
            _ = by_inline_chat_id.setdefault(inline_chat.inline_chat_id, commit)

    return AttributionIndex(by_message_id=by_message_id, by_inline_chat_id=by_inline_chat_id)
