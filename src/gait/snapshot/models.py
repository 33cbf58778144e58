# pyright: standard
from __future__ import annotations

import sys
from collections.abc import Mapping
from typing import Any

import msgspec
from msgspec import Struct, field

from gait.consts import SCHEMA_VERSION
from gait.exceptions import SnapshotParseError, SnapshotValidationError
from gait.serialization import convert, to_pretty_json


class DiffChange(Struct, frozen=True):
    """One fragment of a line-level diff. Neither flag set means unchanged text."""

    value: str
    added: bool | None = None
    removed: bool | None = None


class FileDiff(Struct, frozen=True):
    file_path: str
    diffs: list[DiffChange] = field(default_factory=list)


class Message(Struct, frozen=True):
    """
    A single request/response turn of a panel chat.

    The id is unique across the whole snapshot, not only within its chat.
    """

    id: str
    request_text: str | None = field(default=None, name="messageText")
    response_text: str | None = field(default=None, name="responseText")
    model: str | None = None
    created_on: str | None = field(default=None, name="timestamp")
    kv_store: dict[str, Any] | None = None

    @property
    def file_paths(self) -> list[str] | None:
        """Files this message has been associated with, or None if never associated."""
        match self.kv_store:
            case {"file_paths": list(paths)}:
                return [p for p in paths if isinstance(p, str)]
            case _:
                return None


class PanelChat(Struct, frozen=True):
    id: str
    editor_kind: str | None = field(default=None, name="ai_editor")
    custom_title: str | None = field(default=None, name="customTitle")
    parent_id: str | None = None
    created_on: str | None = None
    messages: list[Message] = field(default_factory=list)
    kv_store: dict[str, Any] | None = None


class InlineChat(Struct, frozen=True):
    inline_chat_id: str
    timestamp: str | None = None
    parent_inline_chat_id: str | None = None
    prompt: str | None = None
    file_diff: list[FileDiff] = field(default_factory=list)
    kv_store: dict[str, Any] | None = None


class DeletedChats(Struct, frozen=True):
    deleted_message_ids: list[str] = field(default_factory=list, name="deletedMessageIDs")
    deleted_panel_chat_ids: list[str] = field(default_factory=list, name="deletedPanelChatIDs")

    @property
    def message_ids(self) -> frozenset[str]:
        return frozenset(self.deleted_message_ids)

    @property
    def panel_chat_ids(self) -> frozenset[str]:
        return frozenset(self.deleted_panel_chat_ids)


class Snapshot(Struct, frozen=True):
    """
    Immutable view of a stashed chat snapshot.

    Historical snapshots are only ever read. The current snapshot is changed by
    building a new Snapshot and handing it to the store.
    """

    schema_version: str = field(default=SCHEMA_VERSION, name="schemaVersion")
    panel_chats: list[PanelChat] = field(default_factory=list, name="panelChats")
    inline_chats: list[InlineChat] = field(default_factory=list, name="inlineChats")
    deleted_chats: DeletedChats = field(default_factory=DeletedChats, name="deletedChats")
    kv_store: dict[str, Any] = field(default_factory=dict)


def empty_snapshot() -> Snapshot:
    return Snapshot()


def _is_record_with_id(candidate: object, id_key: str) -> bool:
    match candidate:
        case {**fields} if isinstance(fields.get(id_key), str):
            return True
        case _:
            return False


def is_valid_snapshot(candidate: object) -> bool:
    """
    Structural check of decoded snapshot JSON.

    Collections may be absent (treated as empty); the deletion ledger is never
    required. Every panel chat needs an id and a messages list, every message an id.
    """
    if not isinstance(candidate, Mapping):
        return False

    panel_chats = candidate.get("panelChats")
    if panel_chats is not None and not isinstance(panel_chats, list):
        return False

    inline_chats = candidate.get("inlineChats")
    if inline_chats is not None and not isinstance(inline_chats, list | Mapping):
        return False

    for chat in panel_chats or []:
        if not _is_record_with_id(chat, "id"):
            return False
        messages = chat.get("messages")
        if not isinstance(messages, list):
            return False
        if not all(_is_record_with_id(message, "id") for message in messages):
            return False

    return True


_PANEL_CHAT_TEXT_FIELDS = ("ai_editor", "customTitle", "parent_id", "created_on")
_MESSAGE_TEXT_FIELDS = ("messageText", "responseText", "model", "timestamp")
_INLINE_CHAT_TEXT_FIELDS = ("timestamp", "parent_inline_chat_id", "prompt")


def _coerce_text_fields(record: Mapping[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    """
    Optional text fields written with another scalar type (epoch timestamps,
    numeric model names) are kept as their string form; anything else is dropped.
    """
    fixed = dict(record)
    for key in keys:
        match fixed.get(key):
            case None | str():
                pass
            case int() | float() as number:
                fixed[key] = str(number)
            case _:
                fixed[key] = None
    if not isinstance(fixed.get("kv_store"), Mapping):
        fixed["kv_store"] = None
    return fixed


def _normalize_panel_chat(chat: Mapping[str, Any]) -> dict[str, Any]:
    normalized = _coerce_text_fields(chat, _PANEL_CHAT_TEXT_FIELDS)
    normalized["messages"] = [_coerce_text_fields(m, _MESSAGE_TEXT_FIELDS) for m in chat["messages"]]
    return normalized


def _normalize_inline_chats(raw: object) -> list[dict[str, Any]]:
    """
    Keeps the inline chats that can be read; the rest are dropped with a warning.
    """
    match raw:
        case None:
            return []
        case Mapping() as keyed:
            candidates = list(keyed.values())
        case list() as items:
            candidates = items
        case _:
            return []

    kept: list[dict[str, Any]] = []
    for position, candidate in enumerate(candidates):
        if not isinstance(candidate, Mapping):
            print(f"Warning: Dropping inline chat #{position}: not an object.", file=sys.stderr)
            continue
        normalized = _coerce_text_fields(candidate, _INLINE_CHAT_TEXT_FIELDS)
        if normalized.get("file_diff") is None:
            normalized["file_diff"] = []
        try:
            _ = convert(normalized, InlineChat)
        except msgspec.ValidationError as e:
            label = candidate.get("inline_chat_id", f"#{position}")
            print(f"Warning: Dropping inline chat {label}: {e}", file=sys.stderr)
            continue
        kept.append(normalized)
    return kept


def _normalize_raw(raw: Mapping[str, Any]) -> dict[str, Any]:
    """
    Fills in collections that older (or newer) writers leave out or set to null,
    and repairs or drops individual records whose fields do not fit the schema.
    """
    normalized = dict(raw)

    normalized["panelChats"] = [_normalize_panel_chat(chat) for chat in raw.get("panelChats") or []]
    normalized["inlineChats"] = _normalize_inline_chats(raw.get("inlineChats"))

    ledger = normalized.get("deletedChats")
    ledger = dict(ledger) if isinstance(ledger, Mapping) else {}
    for key in ("deletedMessageIDs", "deletedPanelChatIDs"):
        ids = ledger.get(key)
        ledger[key] = [i for i in ids if isinstance(i, str)] if isinstance(ids, list) else []
    normalized["deletedChats"] = ledger

    if not isinstance(normalized.get("kv_store"), Mapping):
        normalized["kv_store"] = {}

    match normalized.get("schemaVersion"):
        case str():
            pass
        case None:
            normalized["schemaVersion"] = SCHEMA_VERSION
        case other:
            normalized["schemaVersion"] = str(other)

    return normalized


def snapshot_from_builtins(raw: object) -> Snapshot:
    """
    Validates and normalizes decoded JSON into a Snapshot.

    Raises:
        SnapshotValidationError: if the structure does not describe a snapshot.
    """
    if not isinstance(raw, Mapping) or not is_valid_snapshot(raw):
        raise SnapshotValidationError("Parsed content does not match the snapshot structure.")

    try:
        return convert(_normalize_raw(raw), Snapshot)
    except msgspec.ValidationError as e:
        raise SnapshotValidationError(f"Invalid snapshot: {e}") from e


def load_snapshot(data: str | bytes) -> Snapshot:
    """
    Parse snapshot JSON text.

    Raises:
        SnapshotParseError: if the text is not JSON.
        SnapshotValidationError: if the JSON is not a snapshot.
    """
    try:
        raw = msgspec.json.decode(data)
    except msgspec.DecodeError as e:
        raise SnapshotParseError(f"Snapshot is not valid JSON: {e}") from e
    return snapshot_from_builtins(raw)


def dumps_snapshot(snapshot: Snapshot) -> str:
    """
    Pretty-printed JSON, as stored in the repository.
    """
    return to_pretty_json(snapshot) + "\n"
