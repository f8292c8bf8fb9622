"""Advisory comparison of an expected snippet against the targeted lines.

Plain fingerprints go through a ladder of increasingly lenient strategies:
exact, whitespace_collapsed, line_trimmed, whitespace_ignored. A fingerprint
containing a line that is exactly ``...`` is matched segment-wise: the first
segment anchors at the start of the range, the last at the end, and any
middle segments must appear in order in between.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

ELLIPSIS_MARKER = "..."
_CONTEXT_CHARS = 20
_HORIZONTAL_WS_RE = re.compile(r"[ \t]+")
_ANY_WS_RE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class FingerprintMatch:
    """Comparison outcome; ``strategy`` names the rule that matched."""

    matched: bool
    strategy: str | None = None
    detail: str | None = None


def has_ellipsis(expected: str) -> bool:
    return any(line.strip() == ELLIPSIS_MARKER for line in _lines(expected))


def match_fingerprint(expected: str, actual: str) -> FingerprintMatch:
    """Compare ``expected`` with ``actual`` and report the first matching strategy."""
    if has_ellipsis(expected):
        return _match_ellipsis(expected, actual)

    expected_lines = _trim_blank_edges([line.rstrip() for line in _lines(expected)])
    actual_lines = _trim_blank_edges([line.rstrip() for line in _lines(actual)])
    if expected_lines == actual_lines:
        return FingerprintMatch(matched=True, strategy="exact")

    expected_block = "\n".join(expected_lines)
    actual_block = "\n".join(actual_lines)
    if _collapse(expected_block) == _collapse(actual_block):
        return FingerprintMatch(matched=True, strategy="whitespace_collapsed")

    if len(expected_lines) == len(actual_lines) and all(
        left.strip() == right.strip()
        for left, right in zip(expected_lines, actual_lines, strict=True)
    ):
        return FingerprintMatch(matched=True, strategy="line_trimmed")

    if _ANY_WS_RE.sub("", expected_block) == _ANY_WS_RE.sub("", actual_block):
        return FingerprintMatch(matched=True, strategy="whitespace_ignored")

    return FingerprintMatch(
        matched=False,
        detail=describe_mismatch(expected_block, actual_block),
    )


def describe_mismatch(expected: str, actual: str) -> str:
    """Explain where two texts first diverge, with a short context window."""
    shortest = min(len(expected), len(actual))
    first_diff = next(
        (index for index in range(shortest) if expected[index] != actual[index]),
        None,
    )
    if first_diff is not None:
        start = max(first_diff - _CONTEXT_CHARS, 0)
        end = min(first_diff + _CONTEXT_CHARS, shortest)
        return (
            f"first difference at offset {first_diff}: expected "
            f"{expected[first_diff]!r}, got {actual[first_diff]!r}; "
            f"expected context {expected[start:end]!r}, actual context {actual[start:end]!r}"
        )
    if len(expected) > len(actual):
        return f"expected text has extra tail {expected[len(actual):][:80]!r}"
    if len(actual) > len(expected):
        return f"actual text has extra tail {actual[len(expected):][:80]!r}"
    return "texts are identical"


def _match_ellipsis(expected: str, actual: str) -> FingerprintMatch:
    segments = _split_segments(_lines(expected))
    actual_lines = _trim_blank_edges(_lines(actual))
    keys: tuple[tuple[str, Callable[[str], str]], ...] = (
        ("ellipsis", str.rstrip),
        ("ellipsis_whitespace_collapsed", _collapse),
    )
    for strategy, key in keys:
        if _segments_match(segments, actual_lines, key):
            return FingerprintMatch(matched=True, strategy=strategy)

    head = "\n".join(segments[0])
    tail = "\n".join(segments[-1])
    return FingerprintMatch(
        matched=False,
        detail=(
            f"elided fingerprint did not line up with {len(actual_lines)} target lines "
            f"(head {head[:60]!r}, tail {tail[:60]!r})"
        ),
    )


def _segments_match(
    segments: list[list[str]],
    actual_lines: list[str],
    key: Callable[[str], str],
) -> bool:
    keyed = [key(line) for line in actual_lines]
    keyed_segments = [[key(line) for line in segment] for segment in segments]
    head = keyed_segments[0]
    tail = keyed_segments[-1]
    if len(head) + len(tail) > len(keyed):
        return False
    if keyed[: len(head)] != head:
        return False
    tail_start = len(keyed) - len(tail)
    if keyed[tail_start:] != tail:
        return False

    cursor = len(head)
    for segment in keyed_segments[1:-1]:
        if not segment:
            continue
        found = _find_run(keyed, segment, cursor, tail_start)
        if found is None:
            return False
        cursor = found + len(segment)
    return True


def _find_run(haystack: list[str], needle: list[str], start: int, stop: int) -> int | None:
    for index in range(start, stop - len(needle) + 1):
        if haystack[index : index + len(needle)] == needle:
            return index
    return None


def _split_segments(lines: list[str]) -> list[list[str]]:
    segments: list[list[str]] = [[]]
    for line in lines:
        if line.strip() == ELLIPSIS_MARKER:
            segments.append([])
        else:
            segments[-1].append(line)
    return [_trim_blank_edges(segment) for segment in segments]


def _lines(text: str) -> list[str]:
    normalized = text.replace("\r\n", "\n")
    if normalized.endswith("\n"):
        normalized = normalized[:-1]
    if not normalized:
        return []
    return normalized.split("\n")


def _trim_blank_edges(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def _collapse(text: str) -> str:
    return _HORIZONTAL_WS_RE.sub(" ", text).strip()
