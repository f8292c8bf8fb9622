"""Line-range replacement engine: the only component that touches file content."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from line_patch.errors import ErrorKind
from line_patch.fingerprint import match_fingerprint
from line_patch.validation import StructuralValidator

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 100


class FingerprintMode(str, Enum):
    """How a fingerprint mismatch is treated."""

    ADVISORY = "advisory"
    STRICT = "strict"


@dataclass(slots=True, frozen=True)
class EditRequest:
    """One proposed edit in current coordinates."""

    file_path: str
    current_full_content: str
    first_replaced_line: int
    last_replaced_line: int
    replacement_text: str
    expected_search_text: str | None = None
    file_type_hint: str | None = None


@dataclass(slots=True, frozen=True)
class EditStats:
    """Size accounting for an accepted edit."""

    original_size: int
    new_size: int
    size_change: int
    estimated_original_tokens: int
    estimated_replacement_tokens: int
    token_savings: float
    lines_affected: int
    total_lines: int

    def to_dict(self) -> dict[str, object]:
        return {
            "original_size": self.original_size,
            "new_size": self.new_size,
            "size_change": self.size_change,
            "estimated_original_tokens": self.estimated_original_tokens,
            "estimated_replacement_tokens": self.estimated_replacement_tokens,
            "token_savings": self.token_savings,
            "lines_affected": self.lines_affected,
            "total_lines": self.total_lines,
        }


@dataclass(slots=True, frozen=True)
class EditResult:
    """Outcome of one execute call. Failed results carry no content."""

    success: bool
    new_content: str | None = None
    new_line_count: int | None = None
    line_delta: int | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()
    fingerprint_strategy: str | None = None
    stats: EditStats | None = None

    def to_dict(self, *, include_content: bool = True) -> dict[str, object]:
        payload: dict[str, object] = {
            "success": self.success,
            "new_line_count": self.new_line_count,
            "line_delta": self.line_delta,
            "error_kind": self.error_kind.value if self.error_kind is not None else None,
            "error": self.error,
            "warnings": list(self.warnings),
            "fingerprint_strategy": self.fingerprint_strategy,
            "stats": self.stats.to_dict() if self.stats is not None else None,
        }
        if include_content:
            payload["new_content"] = self.new_content
        return payload


@dataclass(slots=True, frozen=True)
class _SplitText:
    lines: list[str]
    newline: str
    trailing_newline: bool


class LineReplaceEngine:
    """Stateless executor for line-range edits.

    Line numbers are authoritative. The optional fingerprint is advisory unless
    the engine runs in strict mode; structural validation always hard-fails.
    """

    def __init__(
        self,
        validator: StructuralValidator | None = None,
        *,
        fingerprint_mode: FingerprintMode = FingerprintMode.ADVISORY,
    ) -> None:
        self._validator = validator or StructuralValidator()
        self._fingerprint_mode = FingerprintMode(fingerprint_mode)

    @property
    def validator(self) -> StructuralValidator:
        return self._validator

    @property
    def fingerprint_mode(self) -> FingerprintMode:
        return self._fingerprint_mode

    def execute(self, request: EditRequest) -> EditResult:
        """Produce new content for ``request`` or a classified rejection."""
        _require_text(request.current_full_content, "current_full_content")
        _require_text(request.replacement_text, "replacement_text")
        _require_int(request.first_replaced_line, "first_replaced_line")
        _require_int(request.last_replaced_line, "last_replaced_line")

        path = request.file_path
        first = request.first_replaced_line
        last = request.last_replaced_line
        split = split_content(request.current_full_content)
        total = len(split.lines)

        if not (1 <= first <= last <= total):
            message = (
                f"Invalid line range {first}-{last} for {path}: "
                f"file has {total} line{'s' if total != 1 else ''}."
            )
            logger.info("rejected edit: %s", message)
            return EditResult(
                success=False,
                error_kind=ErrorKind.INVALID_LINE_RANGE,
                error=message,
            )

        warnings: list[str] = []
        strategy: str | None = None
        search_text = request.expected_search_text
        if search_text is not None and search_text.strip():
            target = "\n".join(split.lines[first - 1 : last])
            match = match_fingerprint(search_text, target)
            if match.matched:
                strategy = match.strategy
                if strategy not in ("exact", "ellipsis"):
                    logger.info("fingerprint for %s matched via %s", path, strategy)
            else:
                warning = (
                    f"Pattern mismatch at lines {first}-{last} in {path}: {match.detail}"
                )
                logger.warning("%s", warning)
                logger.warning("expected fingerprint: %r", search_text[:_PREVIEW_CHARS])
                logger.warning("actual content: %r", target[:_PREVIEW_CHARS])
                if self._fingerprint_mode is FingerprintMode.STRICT:
                    return EditResult(
                        success=False,
                        error_kind=ErrorKind.PATTERN_MISMATCH,
                        error=warning,
                    )
                warnings.append(f"{warning}; applied by line numbers")

        replacement_lines = split_replacement(request.replacement_text)
        new_lines = split.lines[: first - 1] + replacement_lines + split.lines[last:]
        after_content = join_lines(new_lines, split.newline, split.trailing_newline)

        validation = self._validator.validate(
            request.current_full_content,
            after_content,
            request.file_type_hint or path,
        )
        if not validation.valid:
            logger.info("rejected edit to %s lines %d-%d: %s", path, first, last, validation.error)
            return EditResult(
                success=False,
                error_kind=validation.error_kind,
                error=validation.error,
                warnings=tuple(warnings),
                fingerprint_strategy=strategy,
            )

        new_line_count = len(replacement_lines)
        line_delta = new_line_count - (last - first + 1)
        stats = _calculate_stats(
            request.current_full_content,
            after_content,
            request.replacement_text,
            lines_affected=last - first + 1,
            total_lines=total,
        )
        logger.info(
            "replaced %s lines %d-%d with %d lines (%+d)",
            path,
            first,
            last,
            new_line_count,
            line_delta,
        )
        return EditResult(
            success=True,
            new_content=after_content,
            new_line_count=new_line_count,
            line_delta=line_delta,
            warnings=tuple(warnings),
            fingerprint_strategy=strategy,
            stats=stats,
        )


def execute(request: EditRequest) -> EditResult:
    """Run one edit with default validator settings and advisory fingerprints."""
    return LineReplaceEngine().execute(request)


def split_content(text: str) -> _SplitText:
    """Split text into lines, remembering its newline style and trailing newline."""
    crlf = text.count("\r\n")
    newline = "\r\n" if crlf and crlf == text.count("\n") else "\n"
    if not text:
        return _SplitText(lines=[], newline=newline, trailing_newline=False)
    trailing = text.endswith(newline)
    body = text[: -len(newline)] if trailing else text
    return _SplitText(lines=body.split(newline), newline=newline, trailing_newline=trailing)


def split_replacement(text: str) -> list[str]:
    """Split replacement text into lines; one trailing newline is not an extra line."""
    if not text:
        return []
    normalized = text.replace("\r\n", "\n")
    if normalized.endswith("\n"):
        normalized = normalized[:-1]
    return normalized.split("\n")


def join_lines(lines: list[str], newline: str, trailing_newline: bool) -> str:
    if not lines:
        return ""
    joined = newline.join(lines)
    return joined + newline if trailing_newline else joined


def _calculate_stats(
    original: str,
    updated: str,
    replacement: str,
    *,
    lines_affected: int,
    total_lines: int,
) -> EditStats:
    original_size = len(original.encode("utf-8"))
    new_size = len(updated.encode("utf-8"))
    original_tokens = original_size // 4
    replacement_tokens = len(replacement.encode("utf-8")) // 4
    savings = 0.0
    if original_tokens > 0:
        savings = round((original_tokens - replacement_tokens) / original_tokens * 100, 1)
    return EditStats(
        original_size=original_size,
        new_size=new_size,
        size_change=new_size - original_size,
        estimated_original_tokens=original_tokens,
        estimated_replacement_tokens=replacement_tokens,
        token_savings=max(savings, 0.0),
        lines_affected=lines_affected,
        total_lines=total_lines,
    )


def _require_text(value: object, name: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}.")


def _require_int(value: object, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}.")
