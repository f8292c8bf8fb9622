from __future__ import annotations

import pytest

from line_patch.offsets import LineOffsetTracker, OffsetContractError, ReplacementRecord

CSS_PATH = "src/index.css"


def test_untracked_file_passes_lines_through_unchanged() -> None:
    tracker = LineOffsetTracker()

    assert tracker.adjust_line_number("src/app.ts", 42) == 42
    assert tracker.adjust_line_range("src/app.ts", 3, 9) == (3, 9)
    assert tracker.get_cumulative_offset("src/app.ts", 42) == 0
    assert tracker.is_tracking("src/app.ts") is False


def test_growth_before_range_shifts_both_bounds() -> None:
    tracker = LineOffsetTracker()
    record = tracker.record_replacement(CSS_PATH, 9, 39, 45)

    assert record == ReplacementRecord(
        original_first_line=9, original_last_line=39, new_line_count=45
    )
    assert record.replaced_line_count == 31
    assert record.line_delta == 14
    assert tracker.adjust_line_range(CSS_PATH, 51, 78) == (65, 92)


def test_second_replacement_in_adjusted_coordinates_accumulates() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement(CSS_PATH, 9, 39, 45)
    tracker.record_replacement(CSS_PATH, 65, 92, 34)

    assert tracker.adjust_line_number(CSS_PATH, 100) == 120
    assert tracker.get_cumulative_offset(CSS_PATH, 100) == 20


def test_lines_before_and_inside_replacement_do_not_shift() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement("a.js", 10, 20, 2)

    assert tracker.adjust_line_number("a.js", 9) == 9
    assert tracker.adjust_line_number("a.js", 10) == 10
    assert tracker.adjust_line_number("a.js", 15) == 15
    assert tracker.adjust_line_number("a.js", 20) == 20
    assert tracker.adjust_line_number("a.js", 21) == 12


def test_point_inside_replaced_range_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement("a.js", 10, 20, 2)

    with caplog.at_level("WARNING", logger="line_patch.offsets"):
        tracker.adjust_line_number("a.js", 12)

    assert "falls inside previously replaced lines 10-20" in caplog.text


def test_adjustment_is_pure_and_idempotent() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement("a.js", 5, 5, 3)

    first = tracker.adjust_line_range("a.js", 7, 9)
    second = tracker.adjust_line_range("a.js", 7, 9)

    assert first == second == (9, 11)
    assert tracker.file_summary("a.js")["replacement_count"] == 1


def test_records_are_applied_in_chronological_order() -> None:
    chronological = LineOffsetTracker()
    chronological.record_replacement("a.js", 10, 12, 13)
    chronological.record_replacement("a.js", 20, 20, 6)

    reversed_order = LineOffsetTracker()
    reversed_order.record_replacement("a.js", 20, 20, 6)
    reversed_order.record_replacement("a.js", 10, 12, 13)

    assert chronological.adjust_line_number("a.js", 14) == 29
    assert reversed_order.adjust_line_number("a.js", 14) == 24


def test_paths_are_tracked_independently() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement("a.js", 1, 1, 5)

    assert tracker.adjust_line_number("b.js", 10) == 10
    assert tracker.tracked_paths() == ("a.js",)


def test_deletion_shifts_later_lines_up() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement("a.js", 3, 6, 0)

    assert tracker.adjust_line_number("a.js", 10) == 6


def test_clear_file_and_clear_all_reset_state() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement("a.js", 1, 1, 3)
    tracker.record_replacement("b.js", 1, 1, 3)

    tracker.clear_file("a.js")

    assert tracker.is_tracking("a.js") is False
    assert tracker.adjust_line_number("a.js", 5) == 5
    assert tracker.adjust_line_number("b.js", 5) == 7

    tracker.clear_all()

    assert tracker.tracked_paths() == ()
    assert tracker.adjust_line_number("b.js", 5) == 5


def test_clear_unknown_file_is_a_no_op() -> None:
    tracker = LineOffsetTracker()

    tracker.clear_file("missing.js")

    assert tracker.tracked_paths() == ()


def test_file_summary_reports_history() -> None:
    tracker = LineOffsetTracker()
    tracker.record_replacement(CSS_PATH, 9, 39, 45)
    tracker.record_replacement(CSS_PATH, 65, 92, 34)

    summary = tracker.file_summary(CSS_PATH)

    assert summary == {
        "file_path": CSS_PATH,
        "replacement_count": 2,
        "total_line_change": 20,
        "replacements": [
            {
                "original_first_line": 9,
                "original_last_line": 39,
                "new_line_count": 45,
                "line_delta": 14,
            },
            {
                "original_first_line": 65,
                "original_last_line": 92,
                "new_line_count": 34,
                "line_delta": 6,
            },
        ],
    }
    assert tracker.file_summary("other.css") is None


@pytest.mark.parametrize(
    ("first_line", "last_line", "new_line_count", "message"),
    [
        (0, 3, 1, "first_line must be >= 1"),
        (4, 3, 1, "must be <= last_line"),
        (1, 3, -1, "new_line_count"),
        (1.5, 3, 1, "first_line must be an integer"),
        (True, 3, 1, "first_line must be an integer"),
    ],
)
def test_record_replacement_rejects_contract_violations(
    first_line: object, last_line: object, new_line_count: object, message: str
) -> None:
    tracker = LineOffsetTracker()

    with pytest.raises(OffsetContractError, match=message):
        tracker.record_replacement("a.js", first_line, last_line, new_line_count)

    assert tracker.is_tracking("a.js") is False


def test_adjust_rejects_non_positive_lines() -> None:
    tracker = LineOffsetTracker()

    with pytest.raises(OffsetContractError, match="line_number must be >= 1"):
        tracker.adjust_line_number("a.js", 0)
    with pytest.raises(ValueError, match="last_line must be >= 1"):
        tracker.adjust_line_range("a.js", 1, -4)
