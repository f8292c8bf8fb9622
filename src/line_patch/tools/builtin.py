"""Built-in service operations over the current edit session."""

from __future__ import annotations

from collections.abc import Callable

from line_patch.config import EngineConfig
from line_patch.session import EditSession, ProposedEdit
from line_patch.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry

SessionProvider = Callable[[], EditSession]


def register_builtin_tools(
    registry: ToolRegistry,
    current_session: SessionProvider,
    reset_session: Callable[[], EditSession],
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]] | None,
    config: EngineConfig,
) -> None:
    """Register the edit, offset and session operations."""
    registry.register("edit.apply", _apply_handler(current_session))
    registry.register("edit.apply_batch", _apply_batch_handler(current_session))
    registry.register("offsets.adjust_range", _adjust_range_handler(current_session))
    registry.register("offsets.summary", _summary_handler(current_session))
    registry.register("offsets.clear", _clear_handler(current_session))
    registry.register("session.status", _status_handler(current_session, config))
    registry.register("session.reset", _reset_handler(reset_session))
    registry.register("session.audit_log", _audit_log_handler(read_audit_entries))


def _apply_handler(current_session: SessionProvider) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        edit = _proposed_edit(arguments, "edit.apply")
        content = _require_str(arguments, "content", "edit.apply")
        include_content = _optional_bool(arguments, "include_content", "edit.apply", True)
        applied = current_session().apply(edit, content)
        payload = applied.to_dict(include_content=include_content)
        if applied.result.warnings:
            payload["__warnings__"] = list(applied.result.warnings)
        return payload

    return handler


def _apply_batch_handler(current_session: SessionProvider) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        raw_edits = arguments.get("edits")
        if not isinstance(raw_edits, list) or not raw_edits:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="edit.apply_batch edits must be a non-empty list.",
            )
        edits: list[ProposedEdit] = []
        for item in raw_edits:
            if not isinstance(item, dict):
                raise ToolDispatchError(
                    code="INVALID_PARAMS",
                    message="edit.apply_batch edits must contain only objects.",
                )
            edits.append(_proposed_edit(item, "edit.apply_batch"))

        raw_contents = arguments.get("contents")
        if not isinstance(raw_contents, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in raw_contents.items()
        ):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="edit.apply_batch contents must map paths to strings.",
            )
        missing = sorted({edit.file_path for edit in edits} - set(raw_contents))
        if missing:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=f"edit.apply_batch contents missing for: {', '.join(missing)}",
            )

        batch = current_session().apply_batch(edits, raw_contents)
        warnings = [warning for item in batch.applied for warning in item.result.warnings]
        payload: dict[str, object] = {
            "all_ok": batch.all_ok,
            "results": [item.to_dict() for item in batch.applied],
            "contents": dict(sorted(batch.contents.items())),
        }
        if warnings:
            payload["__warnings__"] = warnings
        return payload

    return handler


def _adjust_range_handler(current_session: SessionProvider) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path = _require_str(arguments, "path", "offsets.adjust_range", non_empty=True)
        first_line = _require_int(arguments, "first_line", "offsets.adjust_range")
        last_line = _require_int(arguments, "last_line", "offsets.adjust_range")
        tracker = current_session().tracker
        adjusted_first, adjusted_last = tracker.adjust_line_range(path, first_line, last_line)
        return {
            "path": path,
            "tracking": tracker.is_tracking(path),
            "adjusted_first_line": adjusted_first,
            "adjusted_last_line": adjusted_last,
            "first_line_offset": adjusted_first - first_line,
            "last_line_offset": adjusted_last - last_line,
        }

    return handler


def _summary_handler(current_session: SessionProvider) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path = _require_str(arguments, "path", "offsets.summary", non_empty=True)
        summary = current_session().tracker.file_summary(path)
        return {"path": path, "tracking": summary is not None, "summary": summary}

    return handler


def _clear_handler(current_session: SessionProvider) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path = _require_str(arguments, "path", "offsets.clear", non_empty=True)
        current_session().forget(path)
        return {"path": path, "cleared": True}

    return handler


def _status_handler(current_session: SessionProvider, config: EngineConfig) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        session = current_session()
        return {
            "session": session.summary(),
            "fingerprint_mode": session.engine.fingerprint_mode.value,
            "file_types": session.engine.validator.file_types.extensions(),
            "effective_config": config.to_public_dict(),
        }

    return handler


def _reset_handler(reset_session: Callable[[], EditSession]) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        session = reset_session()
        return {"session_id": session.session_id}

    return handler


def _audit_log_handler(
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]] | None,
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        if read_audit_entries is None:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="session.audit_log requires audit logging to be enabled.",
            )
        since = arguments.get("since")
        if since is not None and not isinstance(since, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="session.audit_log since must be a timestamp string.",
            )
        limit = arguments.get("limit", 50)
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="session.audit_log limit must be a positive integer.",
            )
        return {"entries": read_audit_entries(since, limit)}

    return handler


def _proposed_edit(arguments: dict[str, object], tool: str) -> ProposedEdit:
    search = arguments.get("search")
    if search is not None and not isinstance(search, str):
        raise ToolDispatchError(code="INVALID_PARAMS", message=f"{tool} search must be a string.")
    file_type = arguments.get("file_type")
    if file_type is not None and not isinstance(file_type, str):
        raise ToolDispatchError(
            code="INVALID_PARAMS", message=f"{tool} file_type must be a string."
        )
    return ProposedEdit(
        file_path=_require_str(arguments, "path", tool, non_empty=True),
        first_line=_require_int(arguments, "first_line", tool),
        last_line=_require_int(arguments, "last_line", tool),
        replacement_text=_require_str(arguments, "replacement", tool),
        search_text=search,
        file_type_hint=file_type,
    )


def _require_str(
    arguments: dict[str, object], key: str, tool: str, *, non_empty: bool = False
) -> str:
    value = arguments.get(key)
    if not isinstance(value, str) or (non_empty and not value):
        qualifier = "a non-empty string" if non_empty else "a string"
        raise ToolDispatchError(code="INVALID_PARAMS", message=f"{tool} {key} must be {qualifier}.")
    return value


def _require_int(arguments: dict[str, object], key: str, tool: str) -> int:
    value = arguments.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ToolDispatchError(code="INVALID_PARAMS", message=f"{tool} {key} must be an integer.")
    return value


def _optional_bool(arguments: dict[str, object], key: str, tool: str, default: bool) -> bool:
    value = arguments.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ToolDispatchError(code="INVALID_PARAMS", message=f"{tool} {key} must be a boolean.")
    return value
