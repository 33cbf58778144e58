"""
Locating AI-produced code in the current version of a file.
"""

from .annotate import (
    FileAnnotations,
    InlineMatch,
    LineMatch,
    PanelMatch,
    RangeClaims,
    annotate_file,
    extract_code_blocks,
    line_owners,
    owner_at_line,
)
from .ranges import (
    LineRange,
    is_meaningful_line,
    match_diff_to_lines,
    match_text_to_lines,
    merge_ranges,
)

__all__ = [
    "FileAnnotations",
    "InlineMatch",
    "LineMatch",
    "LineRange",
    "PanelMatch",
    "RangeClaims",
    "annotate_file",
    "extract_code_blocks",
    "is_meaningful_line",
    "line_owners",
    "match_diff_to_lines",
    "match_text_to_lines",
    "merge_ranges",
    "owner_at_line",
]
