"""Edit session: translate -> execute -> record, one file path at a time."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass

from line_patch.config import DEFAULT_MAX_WORKERS, EngineConfig
from line_patch.engine import EditRequest, EditResult, LineReplaceEngine
from line_patch.errors import ErrorKind
from line_patch.logging import (
    EditAuditEvent,
    JsonlAuditLogger,
    sanitize_edit_metadata,
    utc_timestamp,
)
from line_patch.offsets import LineOffsetTracker
from line_patch.validation import StructuralValidator

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ProposedEdit:
    """An edit as issued by the model, in its possibly stale coordinates."""

    file_path: str
    first_line: int
    last_line: int
    replacement_text: str
    search_text: str | None = None
    file_type_hint: str | None = None


@dataclass(slots=True, frozen=True)
class AppliedEdit:
    """A processed edit with the coordinates actually used."""

    sequence: int
    edit: ProposedEdit
    adjusted_first_line: int | None
    adjusted_last_line: int | None
    result: EditResult

    @property
    def ok(self) -> bool:
        return self.result.success

    def to_dict(self, *, include_content: bool = False) -> dict[str, object]:
        return {
            "sequence": self.sequence,
            "file_path": self.edit.file_path,
            "claimed_range": [self.edit.first_line, self.edit.last_line],
            "adjusted_range": (
                [self.adjusted_first_line, self.adjusted_last_line]
                if self.adjusted_first_line is not None
                else None
            ),
            "result": self.result.to_dict(include_content=include_content),
        }


@dataclass(slots=True, frozen=True)
class BatchResult:
    """Per-edit outcomes in input order plus the final content of every touched path."""

    applied: tuple[AppliedEdit, ...]
    contents: dict[str, str]

    @property
    def all_ok(self) -> bool:
        return all(item.ok for item in self.applied)


class EditSession:
    """Owns the offset tracker for one generation turn or patch batch.

    Edits to the same path are serialized behind a per-path lock; distinct
    paths share nothing and may run concurrently. Discard the session when the
    turn ends.
    """

    def __init__(
        self,
        engine: LineReplaceEngine | None = None,
        *,
        session_id: str | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        audit_logger: JsonlAuditLogger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be a positive integer.")
        self._engine = engine or LineReplaceEngine()
        self._session_id = session_id or f"session-{uuid.uuid4().hex[:12]}"
        self._max_workers = max_workers
        self._audit_logger = audit_logger
        self._tracker = LineOffsetTracker()
        self._path_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self._sequence = 0

    @classmethod
    def from_config(cls, config: EngineConfig, *, session_id: str | None = None) -> EditSession:
        """Build a session wired to the effective configuration."""
        validator = StructuralValidator(
            config.validation.file_type_table(),
            check_balance_enabled=config.validation.balance,
            check_containment_enabled=config.validation.declaration_containment,
        )
        engine = LineReplaceEngine(validator, fingerprint_mode=config.fingerprint.mode)
        audit_logger = JsonlAuditLogger(config.audit.path) if config.audit.enabled else None
        return cls(
            engine,
            session_id=session_id,
            max_workers=config.session.max_workers,
            audit_logger=audit_logger,
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def tracker(self) -> LineOffsetTracker:
        return self._tracker

    @property
    def engine(self) -> LineReplaceEngine:
        return self._engine

    @property
    def audit_logger(self) -> JsonlAuditLogger | None:
        return self._audit_logger

    def apply(self, edit: ProposedEdit, current_content: str) -> AppliedEdit:
        """Translate, execute and, on success, record one edit."""
        with self._path_lock(edit.file_path):
            return self._apply_locked(edit, current_content)

    def apply_batch(
        self, edits: Sequence[ProposedEdit], contents: Mapping[str, str]
    ) -> BatchResult:
        """Apply edits in issue order per path, threading each output into the next."""
        groups: dict[str, list[tuple[int, ProposedEdit]]] = {}
        for index, edit in enumerate(edits):
            groups.setdefault(edit.file_path, []).append((index, edit))
        missing = [path for path in groups if path not in contents]
        if missing:
            raise KeyError(f"No current content supplied for: {', '.join(sorted(missing))}")

        def run_group(path: str) -> tuple[str, str, list[tuple[int, AppliedEdit]]]:
            content = contents[path]
            outcomes: list[tuple[int, AppliedEdit]] = []
            for index, edit in groups[path]:
                applied = self.apply(edit, content)
                if applied.ok and applied.result.new_content is not None:
                    content = applied.result.new_content
                outcomes.append((index, applied))
            return path, content, outcomes

        workers = min(self._max_workers, len(groups))
        if workers <= 1:
            finished = [run_group(path) for path in groups]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                finished = list(pool.map(run_group, groups))

        ordered: list[AppliedEdit | None] = [None] * len(edits)
        final_contents: dict[str, str] = {}
        for path, content, outcomes in finished:
            final_contents[path] = content
            for index, applied in outcomes:
                ordered[index] = applied
        return BatchResult(
            applied=tuple(item for item in ordered if item is not None),
            contents=final_contents,
        )

    def forget(self, file_path: str) -> None:
        """Stop tracking a path, e.g. after the file was deleted or rewritten."""
        with self._path_lock(file_path):
            self._tracker.clear_file(file_path)

    def summary(self) -> dict[str, object]:
        """Return a diagnostic snapshot of every tracked path."""
        files = [self._tracker.file_summary(path) for path in self._tracker.tracked_paths()]
        return {
            "session_id": self._session_id,
            "edits_processed": self._sequence,
            "files": [item for item in files if item is not None],
        }

    def _apply_locked(self, edit: ProposedEdit, current_content: str) -> AppliedEdit:
        sequence = self._next_sequence()
        path = edit.file_path

        claimed_error = _claimed_range_error(edit)
        if claimed_error is not None:
            applied = AppliedEdit(
                sequence=sequence,
                edit=edit,
                adjusted_first_line=None,
                adjusted_last_line=None,
                result=EditResult(
                    success=False,
                    error_kind=ErrorKind.INVALID_LINE_RANGE,
                    error=claimed_error,
                ),
            )
            self._audit(applied)
            return applied

        first, last = edit.first_line, edit.last_line
        if self._tracker.is_tracking(path):
            first, last = self._tracker.adjust_line_range(path, edit.first_line, edit.last_line)
            if (first, last) != (edit.first_line, edit.last_line):
                logger.info(
                    "translated %s lines %d-%d -> %d-%d",
                    path,
                    edit.first_line,
                    edit.last_line,
                    first,
                    last,
                )

        result = self._engine.execute(
            EditRequest(
                file_path=path,
                current_full_content=current_content,
                first_replaced_line=first,
                last_replaced_line=last,
                replacement_text=edit.replacement_text,
                expected_search_text=edit.search_text,
                file_type_hint=edit.file_type_hint,
            )
        )
        if result.success and result.new_line_count is not None:
            self._tracker.record_replacement(path, first, last, result.new_line_count)
        elif not result.success:
            logger.warning("edit to %s rejected (%s): %s", path, result.error_kind, result.error)

        applied = AppliedEdit(
            sequence=sequence,
            edit=edit,
            adjusted_first_line=first,
            adjusted_last_line=last,
            result=result,
        )
        self._audit(applied)
        return applied

    def _audit(self, applied: AppliedEdit) -> None:
        if self._audit_logger is None:
            return
        result = applied.result
        metadata: dict[str, object] = {
            "claimed_first_line": applied.edit.first_line,
            "claimed_last_line": applied.edit.last_line,
            "adjusted_first_line": applied.adjusted_first_line,
            "adjusted_last_line": applied.adjusted_last_line,
            "new_line_count": result.new_line_count,
            "line_delta": result.line_delta,
            "fingerprint_strategy": result.fingerprint_strategy,
            "file_type_hint": applied.edit.file_type_hint,
            "file_category": self._engine.validator.category(
                applied.edit.file_type_hint or applied.edit.file_path
            ).value,
            "replacement_text": applied.edit.replacement_text,
        }
        if applied.edit.search_text is not None:
            metadata["search_text"] = applied.edit.search_text
        self._audit_logger.append(
            EditAuditEvent(
                timestamp=utc_timestamp(),
                session_id=self._session_id,
                sequence=applied.sequence,
                file_path=applied.edit.file_path,
                ok=result.success,
                error_code=result.error_kind.value if result.error_kind is not None else None,
                warnings=list(result.warnings),
                metadata=sanitize_edit_metadata(metadata),
            )
        )

    def _next_sequence(self) -> int:
        with self._guard:
            self._sequence += 1
            return self._sequence

    @contextmanager
    def _path_lock(self, file_path: str) -> Iterator[None]:
        with self._guard:
            lock = self._path_locks.setdefault(file_path, threading.Lock())
        with lock:
            yield


def _claimed_range_error(edit: ProposedEdit) -> str | None:
    for name, value in (("first_line", edit.first_line), ("last_line", edit.last_line)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{name} must be an integer, got {type(value).__name__}.")
    if edit.first_line < 1 or edit.last_line < 1:
        return (
            f"Invalid line range {edit.first_line}-{edit.last_line} for {edit.file_path}: "
            "line numbers start at 1."
        )
    if edit.first_line > edit.last_line:
        return (
            f"Invalid line range {edit.first_line}-{edit.last_line} for {edit.file_path}: "
            "first line is after last line."
        )
    return None
