"""Business Associate Agreement Models"""
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class AgreementStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


ALLOWED_TRANSITIONS: dict[AgreementStatus, frozenset[AgreementStatus]] = {
    AgreementStatus.PENDING: frozenset({AgreementStatus.ACTIVE, AgreementStatus.TERMINATED}),
    AgreementStatus.ACTIVE: frozenset({AgreementStatus.EXPIRED, AgreementStatus.TERMINATED}),
    AgreementStatus.EXPIRED: frozenset({AgreementStatus.TERMINATED}),
    AgreementStatus.TERMINATED: frozenset(),
}


def can_transition(current: AgreementStatus, new: AgreementStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


class Associate(BaseModel):
    """The third party the agreement is signed with."""
    id: str
    name: str


class RevisionRecord(BaseModel):
    """One entry in an agreement's revision history."""
    timestamp: datetime
    actor_id: str
    actor_role: str
    action: str
    previous_status: AgreementStatus | None = None
    new_status: AgreementStatus | None = None
    reason: str | None = None


class BusinessAssociateAgreement(BaseModel):
    """
    A Business Associate Agreement.
    
    `version` starts at 1 and grows by one per mutation; the revision
    history always holds exactly `version` records.
    """
    id: str
    associate_id: str
    associate_name: str
    effective_date: datetime
    expiration_date: datetime
    status: AgreementStatus = AgreementStatus.PENDING
    encrypted_terms: str
    version: int = 1
    created_by: str
    last_modified: datetime
    revision_history: list[RevisionRecord] = Field(default_factory=list)
    
    @property
    def is_terminal(self) -> bool:
        return self.status == AgreementStatus.TERMINATED


class AgreementView(BaseModel):
    """An agreement with its terms decrypted for display."""
    agreement: BusinessAssociateAgreement
    terms: str


class LineChange(BaseModel):
    type: Literal["added", "removed", "changed"]
    line_number: int
    content: str | None = None
    left_content: str | None = None
    right_content: str | None = None


class FieldDifference(BaseModel):
    field: str
    left_value: str | None = None
    right_value: str | None = None
    line_changes: list[LineChange] = Field(default_factory=list)


class VersionDiff(BaseModel):
    """Differences between two stored versions of one agreement."""
    agreement_id: str
    left_version: int
    right_version: int
    differences: list[FieldDifference] = Field(default_factory=list)
    
    @property
    def has_changes(self) -> bool:
        return bool(self.differences)
