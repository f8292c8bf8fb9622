"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from line_patch.engine import FingerprintMode
from line_patch.validation import FileCategory, FileTypeTable, parse_category
from line_patch.validation.file_types import normalize_extension

CONFIG_FILE_NAME = "line_patch.toml"
MAX_WORKERS_CAP = 32
DEFAULT_MAX_WORKERS = 4


@dataclass(slots=True, frozen=True)
class FingerprintConfig:
    """Fingerprint enforcement settings."""

    mode: FingerprintMode


@dataclass(slots=True, frozen=True)
class ValidationConfig:
    """Structural validator toggles and extension overrides."""

    balance: bool
    declaration_containment: bool
    extensions: Mapping[str, FileCategory]

    def file_type_table(self) -> FileTypeTable:
        return FileTypeTable(extra=self.extensions)


@dataclass(slots=True, frozen=True)
class SessionConfig:
    """Batch scheduling settings."""

    max_workers: int


@dataclass(slots=True, frozen=True)
class AuditConfig:
    """JSONL audit settings."""

    enabled: bool
    data_dir: Path

    @property
    def path(self) -> Path:
        return self.data_dir / "audit.jsonl"


@dataclass(slots=True, frozen=True)
class EngineConfig:
    """Fully merged engine configuration."""

    root: Path
    fingerprint: FingerprintConfig
    validation: ValidationConfig
    session: SessionConfig
    audit: AuditConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for status responses."""
        return {
            "root": str(self.root),
            "fingerprint": {"mode": self.fingerprint.mode.value},
            "validation": {
                "balance": self.validation.balance,
                "declaration_containment": self.validation.declaration_containment,
                "extensions": {
                    ext: category.value
                    for ext, category in sorted(self.validation.extensions.items())
                },
            },
            "session": {"max_workers": self.session.max_workers},
            "audit": {
                "enabled": self.audit.enabled,
                "data_dir": str(self.audit.data_dir),
            },
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    fingerprint_mode: str | None = None
    max_workers: int | None = None
    audit_enabled: bool | None = None


def default_config(root: Path) -> EngineConfig:
    """Build default config for a given root directory."""
    resolved_root = root.resolve()
    return EngineConfig(
        root=resolved_root,
        fingerprint=FingerprintConfig(mode=FingerprintMode.ADVISORY),
        validation=ValidationConfig(
            balance=True,
            declaration_containment=True,
            extensions=MappingProxyType({}),
        ),
        session=SessionConfig(max_workers=DEFAULT_MAX_WORKERS),
        audit=AuditConfig(enabled=False, data_dir=resolved_root / ".line_patch"),
    )


def load_config_file(root: Path) -> dict[str, object]:
    """Load optional line_patch.toml from the root directory."""
    config_path = root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def merge_config(
    base: EngineConfig, payload: dict[str, object], overrides: ConfigOverrides
) -> EngineConfig:
    """Merge defaults, file config, then startup overrides."""
    fingerprint_payload = _get_table(payload, "fingerprint")
    validation_payload = _get_table(payload, "validation")
    session_payload = _get_table(payload, "session")
    audit_payload = _get_table(payload, "audit")

    mode = base.fingerprint.mode
    if "mode" in fingerprint_payload:
        mode = _parse_mode(fingerprint_payload["mode"], "fingerprint.mode")

    balance = _optional_bool(
        validation_payload.get("balance"), "validation.balance", base.validation.balance
    )
    containment = _optional_bool(
        validation_payload.get("declaration_containment"),
        "validation.declaration_containment",
        base.validation.declaration_containment,
    )
    extensions = dict(base.validation.extensions)
    if "extensions" in validation_payload:
        extensions.update(_extension_table(validation_payload["extensions"]))

    max_workers = _optional_positive_int_with_cap(
        session_payload.get("max_workers"),
        "session.max_workers",
        base.session.max_workers,
        MAX_WORKERS_CAP,
    )
    audit_enabled = _optional_bool(
        audit_payload.get("enabled"), "audit.enabled", base.audit.enabled
    )

    merged = EngineConfig(
        root=base.root,
        fingerprint=FingerprintConfig(mode=mode),
        validation=ValidationConfig(
            balance=balance,
            declaration_containment=containment,
            extensions=MappingProxyType(extensions),
        ),
        session=SessionConfig(max_workers=max_workers),
        audit=AuditConfig(enabled=audit_enabled, data_dir=base.audit.data_dir),
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: EngineConfig, overrides: ConfigOverrides) -> EngineConfig:
    """Apply startup overrides at highest precedence."""
    mode = config.fingerprint.mode
    if overrides.fingerprint_mode is not None:
        mode = _parse_mode(overrides.fingerprint_mode, "overrides.fingerprint_mode")
    max_workers = _optional_positive_int_with_cap(
        overrides.max_workers,
        "overrides.max_workers",
        config.session.max_workers,
        MAX_WORKERS_CAP,
    )
    audit_enabled = (
        overrides.audit_enabled
        if overrides.audit_enabled is not None
        else config.audit.enabled
    )
    data_dir = overrides.data_dir or config.audit.data_dir
    return EngineConfig(
        root=config.root,
        fingerprint=FingerprintConfig(mode=mode),
        validation=config.validation,
        session=SessionConfig(max_workers=max_workers),
        audit=AuditConfig(enabled=audit_enabled, data_dir=data_dir.resolve()),
    )


def load_effective_config(root: Path, overrides: ConfigOverrides | None = None) -> EngineConfig:
    """Load effective config using merge order defaults -> file config -> overrides."""
    resolved_root = root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or ConfigOverrides())


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _parse_mode(value: object, name: str) -> FingerprintMode:
    if not isinstance(value, str):
        raise ValueError(f"Config field '{name}' must be a string.")
    try:
        return FingerprintMode(value.strip().lower())
    except ValueError:
        raise ValueError(f"Config field '{name}' must be one of advisory, strict.") from None


def _extension_table(value: object) -> dict[str, FileCategory]:
    if not isinstance(value, dict):
        raise ValueError("Config section 'validation.extensions' must be a table.")
    table: dict[str, FileCategory] = {}
    for extension, category in value.items():
        if not isinstance(category, str):
            raise ValueError(
                f"Config field 'validation.extensions.{extension}' must be a category name."
            )
        try:
            table[normalize_extension(extension)] = parse_category(category)
        except ValueError as error:
            raise ValueError(f"Config field 'validation.extensions.{extension}': {error}") from None
    return table


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
