"""
Per-file annotation on top of the range matcher.

Given the current snapshot and the content of one file, finds which inline
chats and panel messages produced which lines, resolving overlapping claims so
each line is claimed at most once among panel messages.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from datetime import UTC, datetime
from typing import TypeAlias

import regex
from msgspec import Struct, field

from gait.snapshot.models import InlineChat, Message, PanelChat, Snapshot

from .ranges import LineRange, covered_line_count, match_diff_to_lines, match_text_to_lines, split_lines

_CODE_BLOCK_REGEX = regex.compile(r"```(?:\w+)?\s*(.*?)```", regex.DOTALL)


class InlineMatch(Struct, frozen=True):
    range: LineRange
    inline_chat: InlineChat


class PanelMatch(Struct, frozen=True):
    range: LineRange
    panel_chat: PanelChat
    message: Message


LineMatch: TypeAlias = InlineMatch | PanelMatch


class FileAnnotations(Struct, frozen=True):
    """
    Matches for one file.

    associations: ids of messages whose code was found in the file but which
        are not yet associated with it; the caller decides whether to persist.
    """

    file_path: str
    inline: list[InlineMatch] = field(default_factory=list)
    panel: list[PanelMatch] = field(default_factory=list)
    associations: list[str] = field(default_factory=list)


def extract_code_blocks(text: str) -> list[str]:
    """Bodies of the fenced code blocks in a markdown response."""
    return [m.group(1).strip() for m in _CODE_BLOCK_REGEX.finditer(text)]


class RangeClaims:
    """
    First-claim-wins bookkeeping over line numbers.
    """

    def __init__(self) -> None:
        self._claimed: set[int] = set()

    def is_claimed(self, line: int) -> bool:
        return line in self._claimed

    def claim(self, rng: LineRange) -> list[LineRange]:
        """
        Claims the still unclaimed lines of rng.

        Returns them as maximal contiguous sub-ranges; a range whose lines are
        all taken yields nothing.
        """
        pieces: list[LineRange] = []
        run_start: int | None = None
        for line in rng.lines():
            if line in self._claimed:
                if run_start is not None:
                    pieces.append(LineRange(run_start, line - 1))
                    run_start = None
            elif run_start is None:
                run_start = line
        if run_start is not None:
            pieces.append(LineRange(run_start, rng.end))

        for piece in pieces:
            self._claimed.update(piece.lines())
        return pieces


def _live_messages(
    snapshot: Snapshot,
    pending: Iterable[PanelChat],
) -> Iterator[tuple[PanelChat, Message]]:
    deleted_chat_ids = snapshot.deleted_chats.panel_chat_ids
    deleted_message_ids = snapshot.deleted_chats.message_ids
    yielded: set[str] = set()
    for chat in [*snapshot.panel_chats, *pending]:
        if chat.id in deleted_chat_ids:
            continue
        for message in chat.messages:
            if message.id in deleted_message_ids or message.id in yielded:
                continue
            yielded.add(message.id)
            yield chat, message


def annotate_file(
    snapshot: Snapshot,
    file_path: str,
    content: str,
    pending: Sequence[PanelChat] = (),
) -> FileAnnotations:
    """
    Matches every inline chat diff and panel message code block against content.

    Args:
        file_path: Repository-relative path, compared with inline diffs'
            file_path and messages' kv_store["file_paths"].
        pending: Panel chats not stashed to disk yet.
    """
    lines = split_lines(content)

    inline: list[InlineMatch] = []
    for inline_chat in snapshot.inline_chats:
        for file_diff in inline_chat.file_diff:
            if file_diff.file_path != file_path:
                continue
            for rng in match_diff_to_lines(lines, file_diff.diffs):
                inline.append(InlineMatch(range=rng, inline_chat=inline_chat))

    claims = RangeClaims()
    panel: list[PanelMatch] = []
    associations: list[str] = []
    for chat, message in _live_messages(snapshot, pending):
        paths = message.file_paths
        # Messages already tied to other files are not considered for this one.
        if paths is not None and file_path not in paths:
            continue
        associated = paths is not None

        for block in extract_code_blocks(message.response_text or ""):
            ranges = match_text_to_lines(lines, block)
            if not associated and covered_line_count(ranges) > len(split_lines(block)) / 2:
                associations.append(message.id)
                associated = True
            for rng in ranges:
                for piece in claims.claim(rng):
                    panel.append(PanelMatch(range=piece, panel_chat=chat, message=message))

    return FileAnnotations(file_path=file_path, inline=inline, panel=panel, associations=associations)


def _timestamp_key(value: str | None) -> datetime:
    """Sort key for record timestamps; unknown or unparsable ones sort last."""
    if value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            pass
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.max.replace(tzinfo=UTC)


def match_timestamp(line_match: LineMatch) -> datetime:
    match line_match:
        case InlineMatch(inline_chat=inline_chat):
            return _timestamp_key(inline_chat.timestamp)
        case PanelMatch(panel_chat=panel_chat):
            return _timestamp_key(panel_chat.created_on)


def owner_at_line(annotations: FileAnnotations, line: int) -> LineMatch | None:
    """
    The record shown for a line: the oldest inline chat covering it, else the
    oldest panel chat covering it.
    """
    for candidates in (annotations.inline, annotations.panel):
        covering = [m for m in candidates if m.range.contains(line)]
        if covering:
            return min(covering, key=match_timestamp)
    return None


def line_owners(annotations: FileAnnotations) -> dict[int, LineMatch]:
    """
    Owner of every annotated line, keyed by zero-based line number.
    """
    lines = {
        line
        for m in [*annotations.inline, *annotations.panel]
        for line in m.range.lines()
    }
    owners: dict[int, LineMatch] = {}
    for line in sorted(lines):
        owner = owner_at_line(annotations, line)
        if owner is not None:
            owners[line] = owner
    return owners
