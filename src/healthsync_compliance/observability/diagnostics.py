"""
Audit Diagnostics

Side-channel for audit writes that failed without interrupting the
caller. Each failure is logged at error level and buffered so health
checks and operators can inspect recent failures.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from healthsync_compliance.clock import Clock, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class DiagnosticRecord:
    """A single swallowed failure."""
    event: str
    error_type: str
    error_message: str
    recorded_at: datetime
    context: dict[str, Any] = field(default_factory=dict)


class DiagnosticChannel:
    """Bounded buffer of recent audit failures."""
    
    def __init__(self, max_buffer: int = 100, clock: Clock = utcnow):
        self._buffer: list[DiagnosticRecord] = []
        self._max_buffer = max_buffer
        self._clock = clock
        self.failure_count = 0
    
    def report(self, event: str, error: Exception, **context) -> DiagnosticRecord:
        """Record a failure and emit it to the log."""
        record = DiagnosticRecord(
            event=event,
            error_type=type(error).__name__,
            error_message=str(error),
            recorded_at=self._clock(),
            context=context,
        )
        
        self.failure_count += 1
        self._buffer.append(record)
        if len(self._buffer) > self._max_buffer:
            self._buffer = self._buffer[-self._max_buffer:]
        
        logger.error(
            event,
            error_type=record.error_type,
            error=record.error_message,
            **context,
        )
        return record
    
    def recent(self, limit: int = 20) -> list[DiagnosticRecord]:
        """Most recent failures, oldest first."""
        return self._buffer[-limit:]
    
    def clear(self) -> None:
        self._buffer.clear()
        self.failure_count = 0
