"""Audit Retention - HIPAA 164.316(b)(2)"""
from datetime import datetime

from healthsync_compliance.audit.models import AuditType
from healthsync_compliance.clock import add_years
from healthsync_compliance.config import AuditSettings

# HIPAA requires documentation to be kept for 6 years
DEFAULT_RETENTION_YEARS = 6
AGREEMENT_RETENTION_YEARS = 7
EXTENDED_RETENTION_YEARS = 10

AGREEMENT_TYPES = frozenset({
    AuditType.BAA_CREATED,
    AuditType.BAA_UPDATED,
    AuditType.BAA_TERMINATED,
})

EXTENDED_TYPES = frozenset({
    AuditType.POLICY_VIOLATION,
    AuditType.EMERGENCY_ACCESS,
})


class RetentionPolicy:
    """Maps audit types to the number of years an entry must be kept."""
    
    def __init__(
        self,
        default_years: int = DEFAULT_RETENTION_YEARS,
        agreement_years: int = AGREEMENT_RETENTION_YEARS,
        extended_years: int = EXTENDED_RETENTION_YEARS,
    ):
        self.default_years = default_years
        self.agreement_years = agreement_years
        self.extended_years = extended_years
    
    @classmethod
    def from_settings(cls, settings: AuditSettings) -> "RetentionPolicy":
        return cls(
            default_years=settings.default_retention_years,
            agreement_years=settings.agreement_retention_years,
            extended_years=settings.extended_retention_years,
        )
    
    def retention_years(self, audit_type: AuditType) -> int:
        if audit_type in EXTENDED_TYPES:
            return self.extended_years
        if audit_type in AGREEMENT_TYPES:
            return self.agreement_years
        return self.default_years
    
    def expires_at(self, audit_type: AuditType, timestamp: datetime) -> datetime:
        """Earliest moment an entry created at `timestamp` may be deleted."""
        return add_years(timestamp, self.retention_years(audit_type))


_default_policy = RetentionPolicy()


def retention_period_years(audit_type: AuditType) -> int:
    return _default_policy.retention_years(audit_type)


def calculate_retention_expiry(audit_type: AuditType, timestamp: datetime) -> datetime:
    return _default_policy.expires_at(audit_type, timestamp)
