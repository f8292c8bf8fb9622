from __future__ import annotations

import pytest

from line_patch.tools import ToolDispatchError, ToolRegistry


def test_registry_keeps_deterministic_registration_order() -> None:
    registry = ToolRegistry()
    registry.register("edit.alpha", lambda _: {"tool": "alpha"})
    registry.register("edit.beta", lambda _: {"tool": "beta"})

    assert registry.names() == ("edit.alpha", "edit.beta")


def test_registry_dispatches_registered_tool() -> None:
    registry = ToolRegistry()
    registry.register("edit.echo", lambda payload: {"payload": payload})

    result = registry.dispatch("edit.echo", {"k": "v"})

    assert result == {"payload": {"k": "v"}}


def test_registry_rejects_duplicates_and_unknown_names() -> None:
    registry = ToolRegistry()
    registry.register("edit.echo", lambda payload: payload)

    with pytest.raises(ValueError, match="already registered"):
        registry.register("edit.echo", lambda payload: payload)
    with pytest.raises(ToolDispatchError) as error:
        registry.dispatch("edit.missing", {})

    assert error.value.code == "UNKNOWN_TOOL"
    assert error.value.message == "Unknown tool: edit.missing"
