"""Named operation registry for the STDIO service."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

ToolHandler = Callable[[dict[str, object]], dict[str, object]]


@dataclass(slots=True, frozen=True)
class ToolDispatchError(Exception):
    """Request-level failure with an explicit error code."""

    code: str
    message: str


@dataclass(slots=True)
class ToolRegistry:
    """Operation handlers in registration order."""

    _handlers: dict[str, ToolHandler] = field(default_factory=dict)

    def register(self, name: str, handler: ToolHandler) -> None:
        """Register a named handler; names must be unique."""
        if name in self._handlers:
            raise ValueError(f"Operation already registered: {name}")
        self._handlers[name] = handler

    def names(self) -> tuple[str, ...]:
        """Return registered operation names in registration order."""
        return tuple(self._handlers)

    def dispatch(self, name: str, arguments: dict[str, object]) -> dict[str, object]:
        """Run the handler for ``name`` or raise UNKNOWN_TOOL."""
        try:
            handler = self._handlers[name]
        except KeyError:
            raise ToolDispatchError("UNKNOWN_TOOL", f"Unknown tool: {name}") from None
        return handler(arguments)
