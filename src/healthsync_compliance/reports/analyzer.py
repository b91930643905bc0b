"""
Compliance Analyzer

Mines a window of the audit trail for summary statistics, per-control
compliance scores, an aggregate risk score and suspicious patterns.
Reports are derived data and are never persisted.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo
import asyncio

import structlog

from healthsync_compliance.audit.models import AuditQuery, AuditRecord, AuditType
from healthsync_compliance.audit.service import AuditLogger
from healthsync_compliance.clock import Clock, ensure_utc, utcnow
from healthsync_compliance.config import AnalyzerSettings
from healthsync_compliance.errors import ValidationError
from healthsync_compliance.reports.detection import PatternDetector
from healthsync_compliance.reports.models import (
    ComplianceReport,
    ComplianceSection,
    ControlScore,
    ControlType,
    ReportPeriod,
    ReportSummary,
    RiskFactors,
    RiskScore,
    SafeguardCheck,
    SuspiciousPattern,
)
from healthsync_compliance.security.redaction import sanitize_for_logging

logger = structlog.get_logger(__name__)


# =============================================================================
# Scoring
# =============================================================================

def score_status(score: float) -> str:
    if score > 95:
        return "excellent"
    if score > 85:
        return "good"
    if score > 70:
        return "fair"
    return "poor"


def risk_level(score: int) -> str:
    if score < 20:
        return "low"
    if score < 50:
        return "medium"
    if score < 80:
        return "high"
    return "critical"


def calculate_control_score(violations: int, total: int) -> ControlScore:
    """Share of non-violating entries for one control, 0-100."""
    denominator = total or 1
    score = max(0.0, 100 - violations / denominator * 100)
    return ControlScore(
        score=round(score),
        violations=violations,
        total=total,
        status=score_status(score),
    )


def calculate_risk_score(
    high_severity_violations: int,
    emergency_accesses: int,
    failed_logins: int,
) -> RiskScore:
    """Weighted risk capped at 100."""
    factors = RiskFactors(
        high_severity_violations=max(0, high_severity_violations),
        emergency_accesses=max(0, emergency_accesses),
        failed_logins=max(0, failed_logins),
    )
    score = min(
        100,
        factors.high_severity_violations * 10
        + factors.emergency_accesses * 5
        + factors.failed_logins * 2,
    )
    return RiskScore(score=score, level=risk_level(score), factors=factors)


SAFEGUARDS = [
    ("encryption", "Data must be encrypted"),
    ("access_control", "Access control must be implemented"),
    ("audit_logging", "Audit logging must be enabled"),
    ("backup_exists", "Data backup must exist"),
    ("transmission_secure", "Data transmission must be secure"),
]


def evaluate_safeguards(flags: dict[str, Any]) -> SafeguardCheck:
    """Check the technical safeguards a system declares it has in place."""
    violations = [message for key, message in SAFEGUARDS if flags.get(key) is not True]
    return SafeguardCheck(is_compliant=not violations, violations=violations)


# =============================================================================
# Analyzer
# =============================================================================

class ComplianceAnalyzer:
    """
    Generate HIPAA compliance reports from the audit trail.

    Thresholds are tunables; defaults come from AnalyzerSettings.
    """

    def __init__(
        self,
        audit_logger: AuditLogger,
        detector: PatternDetector | None = None,
        high_volume_threshold: int = 1000,
        clock: Clock = utcnow,
    ):
        self.audit = audit_logger
        self.detector = detector or PatternDetector()
        self.high_volume_threshold = high_volume_threshold
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        audit_logger: AuditLogger,
        settings: AnalyzerSettings,
        clock: Clock = utcnow,
    ) -> "ComplianceAnalyzer":
        detector = PatternDetector(
            off_hours_start=settings.off_hours_start,
            off_hours_end=settings.off_hours_end,
            off_hours_min_count=settings.off_hours_min_count,
            rapid_access_patient_threshold=settings.rapid_access_patient_threshold,
            rapid_access_window_minutes=settings.rapid_access_window_minutes,
            tz=timezone.utc if settings.timezone == "UTC" else ZoneInfo(settings.timezone),
        )
        return cls(
            audit_logger,
            detector=detector,
            high_volume_threshold=settings.high_volume_threshold,
            clock=clock,
        )

    async def generate_report(
        self,
        start: datetime,
        end: datetime,
        include_detailed_logs: bool = False,
    ) -> ComplianceReport:
        """
        Build a report over all audit entries in [start, end].

        Naive bounds are taken as UTC. Store and decryption errors propagate.
        """
        start, end = ensure_utc(start), ensure_utc(end)
        if start > end:
            raise ValidationError("Report start must not be after end")

        records = await self.audit.get_entries(AuditQuery(start_time=start, end_time=end))
        report = await asyncio.to_thread(
            self.build_report, records, start, end, include_detailed_logs
        )

        logger.info("Compliance report generated",
                    total=report.summary.total_accesses,
                    risk=report.compliance.risk_score.score,
                    patterns=len(report.suspicious_patterns))
        return report

    def detect_suspicious_patterns(self, records: list[AuditRecord]) -> list[SuspiciousPattern]:
        return self.detector.detect(records)

    def build_report(
        self,
        records: list[AuditRecord],
        start: datetime,
        end: datetime,
        include_detailed_logs: bool = False,
    ) -> ComplianceReport:
        summary = self._summarize(records)
        compliance = self._assess(records, summary)
        patterns = self.detect_suspicious_patterns(records)

        recommendations = []
        if compliance.violations:
            recommendations.append(
                "Review access control policies and implement additional safeguards"
            )
        if summary.emergency_access_count > 0:
            recommendations.append(
                "Audit emergency access patterns and verify all emergency access was legitimate"
            )
        if summary.total_accesses > self.high_volume_threshold:
            recommendations.append(
                "Consider implementing rate limiting and additional monitoring"
            )
        if patterns:
            recommendations.append("Investigate potentially suspicious access patterns")

        detailed_logs = None
        if include_detailed_logs:
            detailed_logs = [
                sanitize_for_logging({
                    **r.entry.model_dump(mode="json", exclude={"encrypted_details"}),
                    "details": r.details,
                })
                for r in records
            ]

        return ComplianceReport(
            period=ReportPeriod(start=start, end=end, generated_at=self._clock()),
            summary=summary,
            compliance=compliance,
            suspicious_patterns=patterns,
            recommendations=recommendations,
            detailed_logs=detailed_logs,
        )

    def _summarize(self, records: list[AuditRecord]) -> ReportSummary:
        entries = [r.entry for r in records]
        return ReportSummary(
            total_accesses=len(entries),
            unique_actors=len({e.actor_id for e in entries}),
            access_type_counts=dict(Counter(e.type.value for e in entries)),
            access_by_role=dict(Counter(e.actor_role for e in entries)),
            access_by_location=dict(Counter(e.access_location or "unknown" for e in entries)),
            emergency_access_count=sum(1 for e in entries if e.is_emergency_access),
            device_breakdown=dict(Counter(
                "mobile" if e.device_info.mobile else "desktop" for e in entries
            )),
        )

    def _assess(self, records: list[AuditRecord], summary: ReportSummary) -> ComplianceSection:
        violations = [r for r in records if r.is_violation]

        control_scores = {}
        for control in ControlType:
            scoped = [r for r in records if r.details.get("control_type") == control.value]
            control_scores[control.value] = calculate_control_score(
                violations=sum(1 for r in scoped if r.is_violation),
                total=len(scoped),
            )

        risk = calculate_risk_score(
            high_severity_violations=sum(
                1 for r in violations if r.details.get("severity") == "high"
            ),
            emergency_accesses=summary.emergency_access_count,
            failed_logins=sum(1 for r in records if r.type == AuditType.LOGIN_FAILURE),
        )

        return ComplianceSection(
            violations=[
                {
                    "id": r.entry.id,
                    "timestamp": r.timestamp.isoformat(),
                    "actor_id": r.actor_id,
                    "violation": r.details.get("violation", r.type.value),
                    "severity": r.details.get("severity", "low"),
                }
                for r in violations
            ],
            violations_by_type=dict(Counter(
                r.details.get("violation", r.type.value) for r in violations
            )),
            control_scores=control_scores,
            risk_score=risk,
        )
