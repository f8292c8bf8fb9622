"""Per-file line offset tracking for sequential line replacements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class OffsetContractError(ValueError):
    """Raised when a caller violates the tracker's input contract."""


@dataclass(slots=True, frozen=True)
class ReplacementRecord:
    """One accepted replacement, expressed in coordinates current at recording time."""

    original_first_line: int
    original_last_line: int
    new_line_count: int

    @property
    def replaced_line_count(self) -> int:
        return self.original_last_line - self.original_first_line + 1

    @property
    def line_delta(self) -> int:
        """Signed change in line count; positive means the file grew."""
        return self.new_line_count - self.replaced_line_count

    def to_dict(self) -> dict[str, int]:
        return {
            "original_first_line": self.original_first_line,
            "original_last_line": self.original_last_line,
            "new_line_count": self.new_line_count,
            "line_delta": self.line_delta,
        }


@dataclass(slots=True)
class FileOffsetState:
    """Chronological replacement history for one file path."""

    file_path: str
    replacements: list[ReplacementRecord] = field(default_factory=list)

    @property
    def total_line_change(self) -> int:
        return sum(record.line_delta for record in self.replacements)


class LineOffsetTracker:
    """Translate stale line numbers into current coordinates for one edit session.

    Replacements must be recorded in the order they were physically applied to
    the file. The tracker never looks at file content.
    """

    def __init__(self) -> None:
        self._files: dict[str, FileOffsetState] = {}

    def record_replacement(
        self,
        file_path: str,
        first_line: int,
        last_line: int,
        new_line_count: int,
    ) -> ReplacementRecord:
        """Append a replacement of current lines ``first_line..last_line``."""
        _require_line(first_line, "first_line")
        _require_line(last_line, "last_line")
        if first_line > last_line:
            raise OffsetContractError(
                f"first_line ({first_line}) must be <= last_line ({last_line})."
            )
        if not _is_int(new_line_count) or new_line_count < 0:
            raise OffsetContractError("new_line_count must be a non-negative integer.")

        record = ReplacementRecord(
            original_first_line=first_line,
            original_last_line=last_line,
            new_line_count=new_line_count,
        )
        state = self._files.setdefault(file_path, FileOffsetState(file_path=file_path))
        state.replacements.append(record)
        logger.info(
            "recorded replacement in %s: lines %d-%d -> %d lines (%+d)",
            file_path,
            first_line,
            last_line,
            new_line_count,
            record.line_delta,
        )
        return record

    def adjust_line_number(self, file_path: str, line_number: int) -> int:
        """Return the current-coordinate line for a claimed line number."""
        return self._adjust_points(file_path, ((line_number, "line_number"),))[0]

    def adjust_line_range(
        self, file_path: str, first_line: int, last_line: int
    ) -> tuple[int, int]:
        """Adjust both bounds of a claimed range in a single pass over the history."""
        adjusted_first, adjusted_last = self._adjust_points(
            file_path, ((first_line, "first_line"), (last_line, "last_line"))
        )
        return adjusted_first, adjusted_last

    def get_cumulative_offset(self, file_path: str, line_number: int) -> int:
        """Return the net shift applied to ``line_number``."""
        return self.adjust_line_number(file_path, line_number) - line_number

    def is_tracking(self, file_path: str) -> bool:
        """Return True when at least one replacement is recorded for the path."""
        state = self._files.get(file_path)
        return state is not None and bool(state.replacements)

    def tracked_paths(self) -> tuple[str, ...]:
        """Return tracked paths in first-recorded order."""
        return tuple(self._files.keys())

    def clear_file(self, file_path: str) -> None:
        """Discard all tracking state for one path."""
        if self._files.pop(file_path, None) is not None:
            logger.info("cleared offsets for %s", file_path)

    def clear_all(self) -> None:
        """Discard tracking state for every path."""
        self._files.clear()
        logger.info("cleared all offset tracking")

    def file_summary(self, file_path: str) -> dict[str, object] | None:
        """Return a diagnostic snapshot, or None when the path is untracked."""
        state = self._files.get(file_path)
        if state is None:
            return None
        return {
            "file_path": state.file_path,
            "replacement_count": len(state.replacements),
            "total_line_change": state.total_line_change,
            "replacements": [record.to_dict() for record in state.replacements],
        }

    def _adjust_points(
        self, file_path: str, named_points: tuple[tuple[int, str], ...]
    ) -> list[int]:
        for point, name in named_points:
            _require_line(point, name)
        points = [point for point, _ in named_points]
        adjusted = list(points)
        state = self._files.get(file_path)
        if state is None:
            return adjusted

        for record in state.replacements:
            for index, current in enumerate(adjusted):
                if current > record.original_last_line:
                    adjusted[index] = current + record.line_delta
                elif current >= record.original_first_line:
                    logger.warning(
                        "line %d in %s falls inside previously replaced lines %d-%d",
                        current,
                        file_path,
                        record.original_first_line,
                        record.original_last_line,
                    )

        for original, current in zip(points, adjusted, strict=True):
            if original != current:
                logger.debug(
                    "adjusted %s line %d -> %d across %d replacements",
                    file_path,
                    original,
                    current,
                    len(state.replacements),
                )
        return adjusted


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_line(value: object, name: str) -> None:
    if not _is_int(value):
        raise OffsetContractError(f"{name} must be an integer line number.")
    if value < 1:
        raise OffsetContractError(f"{name} must be >= 1, got {value}.")
