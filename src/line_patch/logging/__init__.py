"""Structured logging utilities."""

from .audit import EditAuditEvent, JsonlAuditLogger, sanitize_edit_metadata, utc_timestamp

__all__ = ["EditAuditEvent", "JsonlAuditLogger", "sanitize_edit_metadata", "utc_timestamp"]
