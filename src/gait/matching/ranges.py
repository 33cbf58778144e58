"""
Finds where a block of AI-produced text lives in the current version of a file.

Lines are compared after trimming. Matching is order-insensitive: a change is
reduced to its set of distinct added lines, and the current file is scanned for
lines in that set. Heuristics then throw away matches that are too trivial or
too ambiguous to trust.
"""

from collections import Counter
from collections.abc import Iterator, Sequence

import regex
from msgspec import Struct

from gait.consts import LARGE_CHANGE_THRESHOLD
from gait.snapshot.models import DiffChange

_ALNUM_REGEX = regex.compile(r"[\p{L}\p{N}]")

# Import/include style statements: common enough that a lone match proves nothing.
_IMPORT_REGEX = regex.compile(
    r"^(?:"
    + r"import\s"
    + r"|from\s+\S+\s+import\s"
    + r"|#\s*(?:include|import)\b"
    + r"|@import\s"
    + r"|using\s+[\w.]+\s*;"
    + r")"
)


class LineRange(Struct, frozen=True, order=True):
    """Closed range of zero-based line numbers."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid line range [{self.start}, {self.end}].")

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def contains(self, line: int) -> bool:
        return self.start <= line <= self.end

    def lines(self) -> range:
        return range(self.start, self.end + 1)


def has_alphanumeric(line: str) -> bool:
    return _ALNUM_REGEX.search(line) is not None


def is_meaningful_line(line: str) -> bool:
    """
    True for lines with alphanumeric content that are not import/include statements.
    """
    stripped = line.strip()
    return has_alphanumeric(stripped) and _IMPORT_REGEX.match(stripped) is None


def split_lines(content: str) -> list[str]:
    return content.split("\n")


def added_line_set(changes: Sequence[DiffChange]) -> set[str]:
    """Distinct, trimmed, non-blank lines of every added fragment."""
    return {
        line.strip()
        for change in changes
        if change.added
        for line in change.value.split("\n")
        if line.strip()
    }


def _consecutive_runs(numbers: Sequence[int]) -> Iterator[tuple[int, int]]:
    """Yields (first, last) of each maximal run of consecutive sorted numbers."""
    if not numbers:
        return
    start = prev = numbers[0]
    for n in numbers[1:]:
        if n != prev + 1:
            yield start, prev
            start = n
        prev = n
    yield start, prev


def match_diff_to_lines(lines: Sequence[str], changes: Sequence[DiffChange]) -> list[LineRange]:
    """
    Returns the ranges of lines that plausibly came from the added parts of changes.

    Small changes (fewer than LARGE_CHANGE_THRESHOLD distinct added lines) are
    matched line by line: a line counts only when it is meaningful and occurs
    exactly once in the file. Larger changes are matched by runs of consecutive
    matching lines: a run with two or more alphanumeric lines is kept whole,
    a run with a single one keeps just that line if it is meaningful and unique,
    anything else is dropped.
    """
    added = added_line_set(changes)
    if not added:
        return []

    matching: list[int] = []
    occurrences: Counter[str] = Counter()
    for i, line in enumerate(lines):
        trimmed = line.strip()
        if trimmed in added:
            matching.append(i)
            occurrences[trimmed] += 1

    if len(added) < LARGE_CHANGE_THRESHOLD:
        return [
            LineRange(i, i)
            for i in matching
            if is_meaningful_line(lines[i]) and occurrences[lines[i].strip()] == 1
        ]

    ranges: list[LineRange] = []
    for start, end in _consecutive_runs(matching):
        alnum_lines = [j for j in range(start, end + 1) if has_alphanumeric(lines[j])]
        match alnum_lines:
            case [_, _, *_]:
                ranges.append(LineRange(start, end))
            case [only] if occurrences[lines[only].strip()] == 1 and is_meaningful_line(lines[only]):
                ranges.append(LineRange(only, only))
            case _:
                pass
    return ranges


def match_text_to_lines(lines: Sequence[str], text: str) -> list[LineRange]:
    """Matches a flat text block, treated as one added fragment."""
    return match_diff_to_lines(lines, [DiffChange(value=text, added=True)])


def merge_ranges(ranges: Sequence[LineRange]) -> list[LineRange]:
    """
    Merges overlapping or adjacent ranges into maximal contiguous ranges.
    """
    merged: list[LineRange] = []
    for rng in sorted(ranges):
        if merged and rng.start <= merged[-1].end + 1:
            last = merged[-1]
            merged[-1] = LineRange(last.start, max(last.end, rng.end))
        else:
            merged.append(rng)
    return merged


def covered_line_count(ranges: Sequence[LineRange]) -> int:
    return sum(r.length for r in ranges)
