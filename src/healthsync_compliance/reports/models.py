"""Compliance Report Models"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
import json


class ControlType(str, Enum):
    ACCESS_CONTROL = "access_control"
    AUDIT_LOGGING = "audit_logging"
    DATA_INTEGRITY = "data_integrity"
    TRANSMISSION_SECURITY = "transmission_security"


class PatternType(str, Enum):
    OFF_HOURS_ACCESS = "off_hours_access"
    RAPID_PATIENT_ACCESS = "rapid_patient_access"


@dataclass
class ReportPeriod:
    start: datetime
    end: datetime
    generated_at: datetime


@dataclass
class ReportSummary:
    total_accesses: int = 0
    unique_actors: int = 0
    access_type_counts: dict[str, int] = field(default_factory=dict)
    access_by_role: dict[str, int] = field(default_factory=dict)
    access_by_location: dict[str, int] = field(default_factory=dict)
    emergency_access_count: int = 0
    device_breakdown: dict[str, int] = field(default_factory=dict)


@dataclass
class ControlScore:
    score: int
    violations: int
    total: int
    status: str


@dataclass
class RiskFactors:
    high_severity_violations: int = 0
    emergency_accesses: int = 0
    failed_logins: int = 0


@dataclass
class RiskScore:
    score: int
    level: str
    factors: RiskFactors


@dataclass
class ComplianceSection:
    violations: list[dict[str, Any]]
    violations_by_type: dict[str, int]
    control_scores: dict[str, ControlScore]
    risk_score: RiskScore


@dataclass
class SuspiciousPattern:
    type: PatternType
    actor_id: str
    count: int
    details: str
    time_span_minutes: int | None = None


@dataclass
class ComplianceReport:
    """Derived view over an audit window. Recomputed per request."""
    period: ReportPeriod
    summary: ReportSummary
    compliance: ComplianceSection
    suspicious_patterns: list[SuspiciousPattern] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    detailed_logs: list[dict[str, Any]] | None = None
    
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
    
    def export(self, format: str = "json") -> str:
        """Export report to specified format."""
        if format == "json":
            return json.dumps(self.to_dict(), indent=2, default=str)
        return ""


@dataclass
class SafeguardCheck:
    is_compliant: bool
    violations: list[str] = field(default_factory=list)
