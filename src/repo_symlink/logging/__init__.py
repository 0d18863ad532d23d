"""Structured logging utilities."""

from .audit import AuditEvent, JsonlAuditLogger, ReconcileEvent, sanitize_arguments, utc_timestamp

__all__ = ["AuditEvent", "JsonlAuditLogger", "ReconcileEvent", "sanitize_arguments", "utc_timestamp"]
