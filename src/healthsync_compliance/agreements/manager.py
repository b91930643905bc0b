"""
Business Associate Agreement Lifecycle

Creates agreements, moves them through their status state machine and
records every change in the revision history and the audit trail.

Each mutation runs validate -> transition check -> persist -> audit in
that order. The audit entry is written only after the store accepted
the change, so a crash in between leaves the change unaudited.

Status updates read the current agreement and write the new one back
without an optimistic concurrency check: concurrent admins racing on
the same agreement are resolved by the store's last write.
"""

from datetime import timedelta
import uuid

import structlog

from healthsync_compliance.agreements.models import (
    AgreementStatus,
    AgreementView,
    Associate,
    BusinessAssociateAgreement,
    FieldDifference,
    LineChange,
    RevisionRecord,
    VersionDiff,
    can_transition,
)
from healthsync_compliance.agreements.store import AgreementStore
from healthsync_compliance.audit.models import Actor, AuditType
from healthsync_compliance.audit.service import AuditLogger
from healthsync_compliance.clock import Clock, add_years, utcnow
from healthsync_compliance.errors import (
    AgreementNotFoundError,
    AuthorizationError,
    InvalidTransitionError,
    ValidationError,
)
from healthsync_compliance.notifications.dispatcher import NotificationDispatcher
from healthsync_compliance.security.encryption import KeyManager

logger = structlog.get_logger(__name__)

EXPIRATION_NOTIFICATION = "agreement_expiration"


def _require_admin(actor: Actor | None, operation: str) -> None:
    if actor is None or not actor.id or not actor.is_admin:
        raise AuthorizationError(f"Unauthorized: Only administrators can {operation}")


def _parse_status(value: AgreementStatus | str) -> AgreementStatus:
    try:
        return AgreementStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown agreement status: {value!r}") from None


def compare_lines(left: list[str], right: list[str]) -> list[LineChange]:
    """Positional line comparison of two texts."""
    changes = []
    for i in range(max(len(left), len(right))):
        if i >= len(left):
            changes.append(LineChange(type="added", line_number=i, content=right[i]))
        elif i >= len(right):
            changes.append(LineChange(type="removed", line_number=i, content=left[i]))
        elif left[i] != right[i]:
            changes.append(LineChange(
                type="changed",
                line_number=i,
                left_content=left[i],
                right_content=right[i],
            ))
    return changes


class AgreementManager:
    """
    Business Associate Agreement lifecycle manager.

    Status machine:
        pending -> active | terminated
        active -> expired | terminated
        expired -> terminated
        terminated is final
    """

    def __init__(
        self,
        store: AgreementStore,
        audit_logger: AuditLogger,
        key_manager: KeyManager,
        notifier: NotificationDispatcher | None = None,
        term_years: int = 1,
        expiration_notice_days: int = 30,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.audit = audit_logger
        self.key_manager = key_manager
        self.notifier = notifier
        self.term_years = term_years
        self.expiration_notice_days = expiration_notice_days
        self._clock = clock

    async def _load(self, agreement_id: str) -> BusinessAssociateAgreement:
        agreement = await self.store.get(agreement_id)
        if agreement is None:
            raise AgreementNotFoundError(f"Agreement not found: {agreement_id}")
        return agreement

    async def create(
        self,
        associate: Associate | dict,
        terms: str,
        actor: Actor,
    ) -> BusinessAssociateAgreement:
        """Create a pending agreement at version 1."""
        if isinstance(associate, dict):
            associate = Associate(id=associate.get("id") or "", name=associate.get("name") or "")

        errors = []
        if not associate.id or not associate.name:
            errors.append("Business Associate information is incomplete")
        if not isinstance(terms, str) or not terms.strip():
            errors.append("BAA terms are required")
        if errors:
            raise ValidationError(f"BAA validation failed: {', '.join(errors)}")

        _require_admin(actor, "create BAAs")

        now = self._clock()
        agreement = BusinessAssociateAgreement(
            id=f"BAA-{uuid.uuid4().hex[:12].upper()}",
            associate_id=associate.id,
            associate_name=associate.name,
            effective_date=now,
            expiration_date=add_years(now, self.term_years),
            status=AgreementStatus.PENDING,
            encrypted_terms=self.key_manager.encrypt(terms),
            version=1,
            created_by=actor.id,
            last_modified=now,
            revision_history=[
                RevisionRecord(
                    timestamp=now,
                    actor_id=actor.id,
                    actor_role=actor.role,
                    action="created",
                    new_status=AgreementStatus.PENDING,
                )
            ],
        )

        created = await self.store.create(agreement)

        await self.audit.create_entry(AuditType.BAA_CREATED, {
            "baa_id": created.id,
            "associate_id": associate.id,
            "action": "create",
        }, actor)

        logger.info("BAA created", baa_id=created.id, associate_id=associate.id)
        return created

    async def get(self, agreement_id: str) -> AgreementView:
        """Fetch an agreement with its terms decrypted."""
        agreement = await self._load(agreement_id)
        return AgreementView(
            agreement=agreement,
            terms=self.key_manager.decrypt(agreement.encrypted_terms),
        )

    async def _transition(
        self,
        agreement: BusinessAssociateAgreement,
        new_status: AgreementStatus,
        actor: Actor,
        action: str,
        reason: str | None,
    ) -> BusinessAssociateAgreement:
        if not can_transition(agreement.status, new_status):
            raise InvalidTransitionError(agreement.status.value, new_status.value)

        now = self._clock()
        revision = RevisionRecord(
            timestamp=now,
            actor_id=actor.id,
            actor_role=actor.role,
            action=action,
            previous_status=agreement.status,
            new_status=new_status,
            reason=reason,
        )
        updated = agreement.model_copy(update={
            "status": new_status,
            "version": agreement.version + 1,
            "last_modified": now,
            "revision_history": [*agreement.revision_history, revision],
        })
        return await self.store.update(updated)

    async def update_status(
        self,
        agreement_id: str,
        new_status: AgreementStatus | str,
        actor: Actor,
        reason: str | None = None,
    ) -> bool:
        """Move an agreement to a new status."""
        target = _parse_status(new_status)
        current = await self._load(agreement_id)
        _require_admin(actor, "update BAA status")

        updated = await self._transition(
            current, target, actor, "status_update", reason or "Status update"
        )

        await self.audit.create_entry(AuditType.BAA_UPDATED, {
            "baa_id": agreement_id,
            "new_status": target.value,
            "previous_status": current.status.value,
            "version": updated.version,
            "action": "update_status",
        }, actor)

        logger.info("BAA status updated", baa_id=agreement_id,
                    previous=current.status.value, new=target.value, version=updated.version)
        return True

    async def terminate(self, agreement_id: str, reason: str, actor: Actor) -> bool:
        """Terminate an agreement. Terminated is final."""
        _require_admin(actor, "terminate BAAs")
        if not reason or not reason.strip():
            raise ValidationError("A termination reason is required")
        current = await self._load(agreement_id)

        updated = await self._transition(
            current, AgreementStatus.TERMINATED, actor, "terminated", reason
        )

        await self.audit.create_entry(AuditType.BAA_TERMINATED, {
            "baa_id": agreement_id,
            "reason": reason,
            "previous_status": current.status.value,
            "version": updated.version,
            "action": "terminate",
        }, actor)

        logger.warning("BAA terminated", baa_id=agreement_id, reason=reason)
        return True

    async def check_expirations(self, within_days: int | None = None) -> list[BusinessAssociateAgreement]:
        """
        Notify about agreements expiring within the notice window.

        Meant to be triggered on a schedule. A failed notification is
        logged and the sweep continues with the next agreement.
        """
        days = self.expiration_notice_days if within_days is None else within_days
        cutoff = self._clock() + timedelta(days=days)
        expiring = await self.store.list_expiring(cutoff)

        for agreement in expiring:
            if self.notifier is None:
                continue
            try:
                await self.notifier.send({
                    "type": EXPIRATION_NOTIFICATION,
                    "associate_id": agreement.associate_id,
                    "agreement_id": agreement.id,
                    "expiration_date": agreement.expiration_date.isoformat(),
                })
            except Exception as e:
                logger.error("Failed to send BAA expiration notification",
                             baa_id=agreement.id, error=str(e))

        logger.info("BAA expirations checked", expiring=len(expiring), within_days=days)
        return expiring

    # =========================================================================
    # Version history
    # =========================================================================

    async def get_version_history(self, agreement_id: str) -> list[BusinessAssociateAgreement]:
        await self._load(agreement_id)
        return await self.store.get_versions(agreement_id)

    async def compare_versions(
        self,
        agreement_id: str,
        left_version: int,
        right_version: int,
        actor: Actor,
    ) -> VersionDiff:
        """Differences in status, expiration and terms between two versions."""
        _require_admin(actor, "compare BAA versions")

        left = await self.store.get_version(agreement_id, left_version)
        right = await self.store.get_version(agreement_id, right_version)
        if left is None or right is None:
            missing = left_version if left is None else right_version
            raise AgreementNotFoundError(f"Agreement {agreement_id} has no version {missing}")

        diff = VersionDiff(
            agreement_id=agreement_id,
            left_version=left_version,
            right_version=right_version,
        )

        if left.status != right.status:
            diff.differences.append(FieldDifference(
                field="status", left_value=left.status.value, right_value=right.status.value,
            ))

        if left.expiration_date != right.expiration_date:
            diff.differences.append(FieldDifference(
                field="expiration_date",
                left_value=left.expiration_date.date().isoformat(),
                right_value=right.expiration_date.date().isoformat(),
            ))

        left_terms = self.key_manager.decrypt(left.encrypted_terms)
        right_terms = self.key_manager.decrypt(right.encrypted_terms)
        if left_terms != right_terms:
            diff.differences.append(FieldDifference(
                field="terms",
                left_value=left_terms,
                right_value=right_terms,
                line_changes=compare_lines(left_terms.split("\n"), right_terms.split("\n")),
            ))

        return diff
