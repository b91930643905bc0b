"""Compliance reporting and risk scoring."""
from healthsync_compliance.reports.analyzer import (
    ComplianceAnalyzer,
    calculate_control_score,
    calculate_risk_score,
    evaluate_safeguards,
)
from healthsync_compliance.reports.detection import PatternDetector
from healthsync_compliance.reports.models import (
    ComplianceReport,
    ControlScore,
    ControlType,
    PatternType,
    RiskScore,
    SuspiciousPattern,
)

__all__ = [
    "ComplianceAnalyzer",
    "ComplianceReport",
    "ControlScore",
    "ControlType",
    "PatternDetector",
    "PatternType",
    "RiskScore",
    "SuspiciousPattern",
    "calculate_control_score",
    "calculate_risk_score",
    "evaluate_safeguards",
]
