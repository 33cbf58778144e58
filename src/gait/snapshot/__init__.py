"""
Versioned chat snapshot: data model, validation and the current-snapshot store.
"""

from .models import (
    DeletedChats,
    DiffChange,
    FileDiff,
    InlineChat,
    Message,
    PanelChat,
    Snapshot,
    dumps_snapshot,
    empty_snapshot,
    is_valid_snapshot,
    load_snapshot,
    snapshot_from_builtins,
)
from .store import SnapshotStore

__all__ = [
    "DeletedChats",
    "DiffChange",
    "FileDiff",
    "InlineChat",
    "Message",
    "PanelChat",
    "Snapshot",
    "SnapshotStore",
    "dumps_snapshot",
    "empty_snapshot",
    "is_valid_snapshot",
    "load_snapshot",
    "snapshot_from_builtins",
]
