"""Logging and diagnostics."""
from healthsync_compliance.observability.diagnostics import DiagnosticChannel, DiagnosticRecord
from healthsync_compliance.observability.logging import configure_logging

__all__ = ["DiagnosticChannel", "DiagnosticRecord", "configure_logging"]
