"""STDIO JSON-lines service entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from line_patch.config import ConfigOverrides, EngineConfig, load_effective_config
from line_patch.offsets import OffsetContractError
from line_patch.session import EditSession
from line_patch.tools.builtin import register_builtin_tools
from line_patch.tools.registry import ToolDispatchError, ToolRegistry

logger = logging.getLogger(__name__)

_CONTRACT_ERRORS = (OffsetContractError, TypeError, KeyError)


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    method: str
    params: dict[str, object]


@dataclass(slots=True, frozen=True)
class RequestRejected(Exception):
    """Envelope-level failure detected before dispatch."""

    request_id: str
    code: str
    message: str


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for service startup configuration."""
    parser = argparse.ArgumentParser(prog="line-patch")
    parser.add_argument("--root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument(
        "--fingerprint-mode", choices=("advisory", "strict"), required=False, default=None
    )
    parser.add_argument("--max-workers", type=int, required=False, default=None)
    parser.add_argument("--audit", choices=("true", "false"), required=False, default=None)
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        required=False,
        default="WARNING",
    )
    return parser


class StdioServer:
    """Deterministic STDIO server holding one edit session at a time."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._session = EditSession.from_config(config)
        self._registry = ToolRegistry()
        register_builtin_tools(
            self._registry,
            current_session=self._current_session,
            reset_session=self.reset_session,
            read_audit_entries=self._read_audit_entries if config.audit.enabled else None,
            config=config,
        )
        self._fallback_request_counter = 0

    @property
    def session(self) -> EditSession:
        return self._session

    def reset_session(self) -> EditSession:
        """Discard all offset state and start a fresh session."""
        previous = self._session.session_id
        self._session = EditSession.from_config(self._config)
        logger.info("session %s replaced by %s", previous, self._session.session_id)
        return self._session

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Answer each non-blank input line with exactly one output line."""
        for raw_line in in_stream:
            if raw_line.isspace() or not raw_line:
                continue
            envelope = self.handle_json_line(raw_line.strip())
            print(json.dumps(envelope, sort_keys=True), file=out_stream, flush=True)

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError as error:
            request_id = self.next_request_id()
            logger.warning("request %s is not valid JSON: %s", request_id, error.msg)
            return self.error_response(request_id, "INVALID_JSON", "Request must be valid JSON.")
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate and dispatch a parsed payload."""
        try:
            request = self.parse_request(payload)
            if request.method == "tools/list":
                return self.success_response(
                    request.request_id, {"tools": list(self._registry.names())}
                )
            tool_name, arguments = _resolve_call(request)
        except RequestRejected as rejection:
            logger.info("request %s rejected: %s", rejection.request_id, rejection.code)
            return self.error_response(rejection.request_id, rejection.code, rejection.message)

        rid = request.request_id
        try:
            result = self._registry.dispatch(name=tool_name, arguments=arguments)
        except ToolDispatchError as error:
            logger.info("request %s %s failed: %s", rid, tool_name, error.code)
            return self.error_response(rid, error.code, error.message)
        except _CONTRACT_ERRORS as error:
            logger.warning("request %s %s violated a caller contract: %s", rid, tool_name, error)
            return self.error_response(rid, "CONTRACT_VIOLATION", str(error))
        except Exception:
            logger.exception("request %s %s raised", rid, tool_name)
            return self.error_response(
                rid, "INTERNAL_ERROR", "Unhandled server error while executing tool."
            )
        return self.success_response(rid, result, _extract_result_warnings(result))

    def parse_request(self, payload: object) -> Request:
        """Normalize a payload into a Request or raise RequestRejected."""
        if not isinstance(payload, dict):
            raise RequestRejected(
                self.next_request_id(), "INVALID_REQUEST", "Request must be an object."
            )
        request_id = self.extract_request_id(payload.get("id"))
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise RequestRejected(
                request_id, "INVALID_REQUEST", "Request method must be a non-empty string."
            )
        params = payload.get("params", {})
        if not isinstance(params, dict):
            raise RequestRejected(request_id, "INVALID_PARAMS", "Request params must be an object.")
        return Request(request_id=request_id, method=method, params=params)

    def extract_request_id(self, request_id: object) -> str:
        """Echo a usable client id, otherwise allocate a local one."""
        if isinstance(request_id, bool):
            return self.next_request_id()
        if isinstance(request_id, int):
            return str(request_id)
        if isinstance(request_id, str) and request_id:
            return request_id
        return self.next_request_id()

    def next_request_id(self) -> str:
        self._fallback_request_counter += 1
        return "req-%06d" % self._fallback_request_counter

    @staticmethod
    def success_response(
        request_id: str, result: dict[str, object], warnings: list[str] | None = None
    ) -> dict[str, object]:
        return _envelope(request_id, result=result, warnings=list(warnings or ()))

    @staticmethod
    def error_response(request_id: str, code: str, message: str) -> dict[str, object]:
        return _envelope(request_id, error={"code": code, "message": message})

    def _current_session(self) -> EditSession:
        return self._session

    def _read_audit_entries(self, since: str | None, limit: int) -> list[dict[str, object]]:
        audit_logger = self._session.audit_logger
        if audit_logger is None:
            return []
        return audit_logger.read(since=since, limit=limit)


def create_server(root: str, cli_overrides: ConfigOverrides | None = None) -> StdioServer:
    """Create a configured STDIO server instance."""
    config = load_effective_config(Path(root), overrides=cli_overrides)
    return StdioServer(config=config)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the line patch service process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    audit_enabled: bool | None = None
    if args.audit == "true":
        audit_enabled = True
    if args.audit == "false":
        audit_enabled = False
    overrides = ConfigOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        fingerprint_mode=args.fingerprint_mode,
        max_workers=args.max_workers,
        audit_enabled=audit_enabled,
    )
    try:
        server = create_server(root=args.root, cli_overrides=overrides)
    except ValueError as error:
        parser.error(str(error))
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


def _envelope(
    request_id: str,
    *,
    result: dict[str, object] | None = None,
    warnings: list[str] | None = None,
    error: dict[str, str] | None = None,
) -> dict[str, object]:
    envelope: dict[str, object] = {
        "request_id": request_id,
        "ok": error is None,
        "result": result if result is not None else {},
        "warnings": warnings or [],
    }
    if error is not None:
        envelope["error"] = error
    return envelope


def _extract_result_warnings(result: dict[str, object]) -> list[str]:
    """Move handler warnings out of the result payload."""
    raw = result.pop("__warnings__", None)
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def _resolve_call(request: Request) -> tuple[str, dict[str, object]]:
    if request.method != "tools/call":
        return request.method, request.params
    name = request.params.get("name")
    if not isinstance(name, str) or not name:
        raise RequestRejected(
            request.request_id,
            "INVALID_PARAMS",
            "tools/call params.name must be a non-empty string.",
        )
    arguments = request.params.get("arguments", {})
    if not isinstance(arguments, dict):
        raise RequestRejected(
            request.request_id,
            "INVALID_PARAMS",
            "tools/call params.arguments must be an object.",
        )
    return name, arguments


if __name__ == "__main__":
    raise SystemExit(main())
