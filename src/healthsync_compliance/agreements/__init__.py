"""Business Associate Agreement lifecycle."""
from healthsync_compliance.agreements.manager import AgreementManager
from healthsync_compliance.agreements.models import (
    ALLOWED_TRANSITIONS,
    AgreementStatus,
    AgreementView,
    Associate,
    BusinessAssociateAgreement,
    RevisionRecord,
    VersionDiff,
    can_transition,
)
from healthsync_compliance.agreements.store import AgreementStore, InMemoryAgreementStore

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AgreementManager",
    "AgreementStatus",
    "AgreementStore",
    "AgreementView",
    "Associate",
    "BusinessAssociateAgreement",
    "InMemoryAgreementStore",
    "RevisionRecord",
    "VersionDiff",
    "can_transition",
]
