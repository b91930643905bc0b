"""Suspicious Access Pattern Detection - HIPAA 164.308(a)(1)(ii)(D)"""
from collections import defaultdict
from datetime import datetime, tzinfo

import structlog

from healthsync_compliance.audit.models import AuditRecord, AuditType
from healthsync_compliance.clock import ensure_utc
from healthsync_compliance.reports.models import PatternType, SuspiciousPattern

logger = structlog.get_logger(__name__)


class PatternDetector:
    """
    Heuristic detection over a window of audit records.
    
    - off-hours access: more than `off_hours_min_count` entries before
      `off_hours_start` or after `off_hours_end` (local hour)
    - rapid patient access: more than `rapid_access_patient_threshold`
      distinct patients between the first and last patient-record access,
      when that span is under `rapid_access_window_minutes`
    """
    
    def __init__(
        self,
        off_hours_start: int = 6,
        off_hours_end: int = 22,
        off_hours_min_count: int = 3,
        rapid_access_patient_threshold: int = 20,
        rapid_access_window_minutes: int = 60,
        tz: tzinfo | None = None,
    ):
        self.off_hours_start = off_hours_start
        self.off_hours_end = off_hours_end
        self.off_hours_min_count = off_hours_min_count
        self.rapid_access_patient_threshold = rapid_access_patient_threshold
        self.rapid_access_window_minutes = rapid_access_window_minutes
        self.tz = tz
    
    def local_hour(self, timestamp: datetime) -> int:
        if self.tz is None:
            return timestamp.hour
        return ensure_utc(timestamp).astimezone(self.tz).hour
    
    def is_off_hours(self, timestamp: datetime) -> bool:
        hour = self.local_hour(timestamp)
        return hour < self.off_hours_start or hour > self.off_hours_end
    
    def detect(self, records: list[AuditRecord]) -> list[SuspiciousPattern]:
        by_actor: dict[str, list[AuditRecord]] = defaultdict(list)
        for record in records:
            by_actor[record.actor_id].append(record)
        
        patterns = []
        for actor_id, actor_records in by_actor.items():
            off_hours = self._off_hours(actor_id, actor_records)
            if off_hours:
                patterns.append(off_hours)
            rapid = self._rapid_patient_access(actor_id, actor_records)
            if rapid:
                patterns.append(rapid)
        
        for pattern in patterns:
            logger.warning("Suspicious pattern detected", type=pattern.type.value,
                           actor_id=pattern.actor_id, count=pattern.count)
        return patterns
    
    def _off_hours(self, actor_id: str, records: list[AuditRecord]) -> SuspiciousPattern | None:
        count = sum(1 for r in records if self.is_off_hours(r.timestamp))
        if count <= self.off_hours_min_count:
            return None
        return SuspiciousPattern(
            type=PatternType.OFF_HOURS_ACCESS,
            actor_id=actor_id,
            count=count,
            details="Multiple accesses during off-hours",
        )
    
    def _rapid_patient_access(self, actor_id: str, records: list[AuditRecord]) -> SuspiciousPattern | None:
        accesses = sorted(
            (
                r for r in records
                if r.type == AuditType.PATIENT_RECORD_ACCESS and r.details.get("patient_id")
            ),
            key=lambda r: r.timestamp,
        )
        if not accesses:
            return None
        
        unique_patients = len({r.details["patient_id"] for r in accesses})
        span_minutes = (accesses[-1].timestamp - accesses[0].timestamp).total_seconds() / 60
        
        if unique_patients > self.rapid_access_patient_threshold and span_minutes < self.rapid_access_window_minutes:
            return SuspiciousPattern(
                type=PatternType.RAPID_PATIENT_ACCESS,
                actor_id=actor_id,
                count=unique_patients,
                details="Unusually rapid access to multiple patient records",
                time_span_minutes=round(span_minutes),
            )
        return None
