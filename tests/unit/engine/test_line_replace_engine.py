from __future__ import annotations

import pytest

from line_patch.engine import (
    EditRequest,
    FingerprintMode,
    LineReplaceEngine,
    execute,
    split_content,
    split_replacement,
)
from line_patch.errors import ErrorKind

INDEX_CSS = "body {\n  margin: 0;\n}\n\n.card {\n  color: red;\n}\n"


def _request(
    content: str,
    first: int,
    last: int,
    replacement: str,
    *,
    path: str = "src/index.css",
    search: str | None = None,
    hint: str | None = None,
) -> EditRequest:
    return EditRequest(
        file_path=path,
        current_full_content=content,
        first_replaced_line=first,
        last_replaced_line=last,
        replacement_text=replacement,
        expected_search_text=search,
        file_type_hint=hint,
    )


def test_replacing_lines_with_themselves_is_a_no_op() -> None:
    result = execute(_request(INDEX_CSS, 5, 7, ".card {\n  color: red;\n}"))

    assert result.success is True
    assert result.new_content == INDEX_CSS
    assert result.new_line_count == 3
    assert result.line_delta == 0
    assert result.error_kind is None


def test_growing_replacement_reports_positive_delta() -> None:
    result = execute(_request(INDEX_CSS, 6, 6, "  color: red;\n  padding: 1rem;\n  margin: 0;\n"))

    assert result.success is True
    assert result.new_line_count == 3
    assert result.line_delta == 2
    assert result.new_content == (
        "body {\n  margin: 0;\n}\n\n.card {\n  color: red;\n  padding: 1rem;\n  margin: 0;\n}\n"
    )


def test_empty_replacement_deletes_lines() -> None:
    result = execute(_request(INDEX_CSS, 4, 7, ""))

    assert result.success is True
    assert result.new_line_count == 0
    assert result.line_delta == -4
    assert result.new_content == "body {\n  margin: 0;\n}\n"


def test_whole_file_replacement_and_deletion() -> None:
    content = "a\nb\n"

    replaced = execute(_request(content, 1, 2, "x\ny\nz", path="notes.txt"))
    deleted = execute(_request(content, 1, 2, "", path="notes.txt"))

    assert replaced.new_content == "x\ny\nz\n"
    assert deleted.success is True
    assert deleted.new_content == ""


def test_missing_trailing_newline_is_preserved() -> None:
    result = execute(_request("one\ntwo", 2, 2, "TWO\n", path="notes.txt"))

    assert result.new_content == "one\nTWO"


def test_crlf_content_keeps_its_newline_style() -> None:
    content = "a {\r\n  top: 0;\r\n}\r\n"

    result = execute(_request(content, 2, 2, "  top: 1px;\n  left: 0;", path="a.css"))

    assert result.success is True
    assert result.new_content == "a {\r\n  top: 1px;\r\n  left: 0;\r\n}\r\n"


@pytest.mark.parametrize(
    ("first", "last"),
    [(0, 1), (-2, 1), (3, 2), (1, 8), (8, 8)],
)
def test_out_of_range_lines_are_rejected(first: int, last: int) -> None:
    result = execute(_request(INDEX_CSS, first, last, "x"))

    assert result.success is False
    assert result.error_kind is ErrorKind.INVALID_LINE_RANGE
    assert result.new_content is None
    assert result.error == f"Invalid line range {first}-{last} for src/index.css: file has 7 lines."


def test_non_integer_line_numbers_raise_type_error() -> None:
    with pytest.raises(TypeError, match="first_replaced_line must be an integer"):
        execute(_request(INDEX_CSS, "1", 2, "x"))  # type: ignore[arg-type]


def test_unbalanced_edit_is_rejected_without_content() -> None:
    content = "export function run() {\n  return 1;\n}\n"

    result = execute(_request(content, 2, 2, "  if (true) {\n  return 1;", path="src/run.ts"))

    assert result.success is False
    assert result.error_kind is ErrorKind.UNBALANCED_BRACES
    assert result.new_content is None
    assert "'{' x2 vs '}' x1" in (result.error or "")


def test_fingerprint_mismatch_is_advisory_by_default(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="line_patch.engine"):
        result = execute(
            _request(INDEX_CSS, 6, 6, "  color: blue;", search="  background: white;")
        )

    assert result.success is True
    assert result.new_content is not None
    assert "color: blue;" in result.new_content
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Pattern mismatch at lines 6-6 in src/index.css")
    assert result.warnings[0].endswith("; applied by line numbers")
    assert "Pattern mismatch" in caplog.text


def test_fingerprint_mismatch_fails_in_strict_mode() -> None:
    engine = LineReplaceEngine(fingerprint_mode=FingerprintMode.STRICT)

    result = engine.execute(
        _request(INDEX_CSS, 6, 6, "  color: blue;", search="  background: white;")
    )

    assert result.success is False
    assert result.error_kind is ErrorKind.PATTERN_MISMATCH
    assert result.new_content is None


def test_matching_fingerprint_reports_strategy() -> None:
    engine = LineReplaceEngine(fingerprint_mode=FingerprintMode.STRICT)

    result = engine.execute(
        _request(INDEX_CSS, 5, 7, ".card { color: blue; }", search=".card {\n...\n}")
    )

    assert result.success is True
    assert result.fingerprint_strategy == "ellipsis"
    assert result.warnings == ()


def test_file_type_hint_overrides_path_extension() -> None:
    content = "settings = {\n  # }\n}\n"

    by_path = execute(_request(content, 3, 3, "}", path="settings.conf"))
    as_css = execute(_request(content, 3, 3, "}", path="settings.conf", hint="css"))

    assert by_path.success is True
    assert as_css.success is False
    assert as_css.error_kind is ErrorKind.UNBALANCED_BRACES


def test_stats_describe_the_accepted_edit() -> None:
    result = execute(_request(INDEX_CSS, 6, 6, "  color: blue;"))

    assert result.stats is not None
    assert result.stats.lines_affected == 1
    assert result.stats.total_lines == 7
    assert result.stats.original_size == len(INDEX_CSS)
    assert result.stats.size_change == 1
    assert result.to_dict(include_content=False)["stats"]["new_size"] == len(INDEX_CSS) + 1
    assert "new_content" not in result.to_dict(include_content=False)


def test_split_helpers_track_line_structure() -> None:
    split = split_content("a\r\nb\r\n")

    assert split.lines == ["a", "b"]
    assert split.newline == "\r\n"
    assert split.trailing_newline is True
    assert split_content("").lines == []
    assert split_replacement("") == []
    assert split_replacement("\n") == [""]
    assert split_replacement("x\r\ny\n") == ["x", "y"]
