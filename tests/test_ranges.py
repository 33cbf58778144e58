# pyright: standard

import pytest

from gait.matching import LineRange, is_meaningful_line, match_diff_to_lines, match_text_to_lines, merge_ranges
from gait.snapshot import DiffChange


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("x = compute()", True),
        ("    return total", True),
        ("}", False),
        ("", False),
        ("   ", False),
        ("import os", False),
        ("from collections import Counter", False),
        ("#include <stdio.h>", False),
        ("#import <Foundation/Foundation.h>", False),
        ("@import url('a.css');", False),
        ("using System.Text;", False),
        ("important = True", True),
    ],
)
def test_is_meaningful_line(line: str, expected: bool) -> None:
    assert is_meaningful_line(line) is expected


def test_small_change_only_matches_unique_lines() -> None:
    # GIVEN a 3-line change where "return x" occurs twice in the file
    change = [DiffChange(value="a = compute()\nreturn x\nprint(a)\n", added=True)]
    lines = [
        "def f():",
        "    a = compute()",
        "    return x",
        "def g():",
        "    return x",
        "    print(a)",
    ]

    # WHEN matched
    ranges = match_diff_to_lines(lines, change)

    # THEN only the two unique lines are returned
    assert ranges == [LineRange(1, 1), LineRange(5, 5)]


def test_small_change_ignores_trivial_lines() -> None:
    change = [DiffChange(value="import os\n}\nvalue = 1", added=True)]
    lines = ["import os", "value = 1", "}"]

    assert match_diff_to_lines(lines, change) == [LineRange(1, 1)]


def test_large_change_accepts_whole_run_with_connective_lines() -> None:
    # GIVEN a 6-line contiguous match with 3 meaningful and 3 punctuation lines
    added = ["x = load()", "{", "y = transform(x)", "}", "save(y)", ");"]
    change = [DiffChange(value="\n".join(added), added=True)]
    lines = ["header()", *added, "footer()"]

    # WHEN matched
    ranges = match_diff_to_lines(lines, change)

    # THEN the full run is returned as one range
    assert ranges == [LineRange(1, 6)]


def test_large_change_rejects_run_with_single_ambiguous_line() -> None:
    # GIVEN a run where only "save(y)" is meaningful and it also occurs elsewhere
    added = ["{", "}", "save(y)", ");", "]", "["]
    change = [DiffChange(value="\n".join(added), added=True)]
    lines = ["save(y)", "other()", *added, "other()"]

    # WHEN matched
    ranges = match_diff_to_lines(lines, change)

    # THEN no range is returned for either occurrence
    assert ranges == []


def test_large_change_keeps_single_unique_meaningful_line() -> None:
    added = ["{", "}", "return total", ");", "]"]
    change = [DiffChange(value="\n".join(added), added=True)]
    lines = ["start()", "}", "return total", "middle()", "{", "end()"]

    ranges = match_diff_to_lines(lines, change)

    assert ranges == [LineRange(2, 2)]


def test_large_change_discards_runs_without_alphanumeric_lines() -> None:
    added = ["alpha()", "beta()", "gamma()", "delta()", "{", "}"]
    change = [DiffChange(value="\n".join(added), added=True)]
    lines = ["{", "}", "unrelated()", "alpha()", "beta()"]

    assert match_diff_to_lines(lines, change) == [LineRange(3, 4)]


def test_only_added_fragments_are_matched() -> None:
    change = [
        DiffChange(value="old_value = 1\n", removed=True),
        DiffChange(value="kept = 2\n"),
        DiffChange(value="new_value = 3\n", added=True),
    ]
    lines = ["old_value = 1", "kept = 2", "new_value = 3"]

    assert match_diff_to_lines(lines, change) == [LineRange(2, 2)]


def test_no_added_lines_means_no_ranges() -> None:
    assert match_diff_to_lines(["a = 1"], [DiffChange(value="   \n\n", added=True)]) == []
    assert match_diff_to_lines(["a = 1"], []) == []


def test_match_text_to_lines_trims_indentation() -> None:
    lines = ["class A:", "    def run(self):", "        return 42"]

    ranges = match_text_to_lines(lines, "def run(self):\n    return 42")

    assert ranges == [LineRange(1, 1), LineRange(2, 2)]


def test_merge_ranges() -> None:
    ranges = [LineRange(5, 6), LineRange(0, 1), LineRange(2, 2), LineRange(6, 8), LineRange(10, 10)]

    assert merge_ranges(ranges) == [LineRange(0, 2), LineRange(5, 8), LineRange(10, 10)]


def test_line_range_validation() -> None:
    assert LineRange(3, 5).length == 3
    assert LineRange(3, 5).contains(5)
    assert not LineRange(3, 5).contains(6)
    with pytest.raises(ValueError):
        _ = LineRange(5, 3)
    with pytest.raises(ValueError):
        _ = LineRange(-1, 2)
