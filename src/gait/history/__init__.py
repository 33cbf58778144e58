"""
History reconstruction over the commits of the snapshot file.

Provides:
- CommitData / GitHistoryData result types
- get_history and get_history_for_commits_touching_target walks
- AttributionIndex lookups from record ids to introducing commits
"""

from .attribution import AttributionIndex, build_attribution_index
from .models import ActiveIds, CommitData, CommitKind, GitHistoryData, SeenIds, UncommittedData
from .reconstruct import get_history, get_history_for_commits_touching_target

__all__ = [
    "ActiveIds",
    "AttributionIndex",
    "CommitData",
    "CommitKind",
    "GitHistoryData",
    "SeenIds",
    "UncommittedData",
    "build_attribution_index",
    "get_history",
    "get_history_for_commits_touching_target",
]
