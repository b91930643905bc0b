from datetime import datetime, timezone

import pytest

from healthsync_compliance.agreements import (
    AgreementManager,
    AgreementStatus,
    Associate,
    InMemoryAgreementStore,
    can_transition,
)
from healthsync_compliance.audit import AuditQuery, AuditType
from healthsync_compliance.errors import (
    AgreementNotFoundError,
    AuthorizationError,
    InvalidTransitionError,
    ValidationError,
)
from healthsync_compliance.notifications import NotificationDispatcher

TERMS = "1. Safeguard PHI\n2. Report breaches within 60 days\n3. Return data on termination"
ACME = Associate(id="assoc-1", name="Acme Billing")


class FailingDispatcher(NotificationDispatcher):
    def __init__(self):
        self.attempts = 0

    async def send(self, notification):
        self.attempts += 1
        raise RuntimeError("smtp down")


@pytest.mark.asyncio
async def test_agreement_lifecycle(agreement_manager, audit_logger, admin):
    created = await agreement_manager.create(ACME, TERMS, admin)

    assert created.id.startswith("BAA-")
    assert created.status == AgreementStatus.PENDING
    assert created.version == 1
    assert created.expiration_date == datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
    assert TERMS not in created.encrypted_terms

    assert await agreement_manager.update_status(created.id, "active", admin)
    assert await agreement_manager.terminate(created.id, "Contract ended", admin)

    view = await agreement_manager.get(created.id)
    agreement = view.agreement
    assert view.terms == TERMS
    assert agreement.status == AgreementStatus.TERMINATED
    assert agreement.is_terminal
    assert agreement.version == 3
    assert len(agreement.revision_history) == agreement.version
    assert [r.action for r in agreement.revision_history] == ["created", "status_update", "terminated"]
    assert agreement.revision_history[-1].reason == "Contract ended"

    with pytest.raises(InvalidTransitionError):
        await agreement_manager.update_status(created.id, AgreementStatus.ACTIVE, admin)

    records = await audit_logger.get_entries(AuditQuery())
    assert [r.type for r in records] == [
        AuditType.BAA_CREATED,
        AuditType.BAA_UPDATED,
        AuditType.BAA_TERMINATED,
    ]
    assert records[1].details["previous_status"] == "pending"
    assert records[1].details["new_status"] == "active"
    assert records[1].details["version"] == 2
    assert records[2].details["reason"] == "Contract ended"


@pytest.mark.asyncio
async def test_pending_cannot_expire(agreement_manager, admin):
    created = await agreement_manager.create(ACME, TERMS, admin)

    with pytest.raises(InvalidTransitionError) as exc:
        await agreement_manager.update_status(created.id, "expired", admin)

    assert str(exc.value) == "Invalid status transition from pending to expired"
    view = await agreement_manager.get(created.id)
    assert view.agreement.status == AgreementStatus.PENDING
    assert view.agreement.version == 1


@pytest.mark.asyncio
async def test_terminated_is_final(agreement_manager, admin):
    created = await agreement_manager.create(ACME, TERMS, admin)
    await agreement_manager.terminate(created.id, "Vendor replaced", admin)

    for status in AgreementStatus:
        with pytest.raises(InvalidTransitionError):
            await agreement_manager.update_status(created.id, status, admin)
    with pytest.raises(InvalidTransitionError):
        await agreement_manager.terminate(created.id, "Again", admin)


def test_transition_table():
    assert can_transition(AgreementStatus.PENDING, AgreementStatus.ACTIVE)
    assert can_transition(AgreementStatus.ACTIVE, AgreementStatus.EXPIRED)
    assert can_transition(AgreementStatus.EXPIRED, AgreementStatus.TERMINATED)
    assert not can_transition(AgreementStatus.EXPIRED, AgreementStatus.ACTIVE)
    assert not can_transition(AgreementStatus.ACTIVE, AgreementStatus.ACTIVE)


@pytest.mark.asyncio
async def test_non_admin_cannot_change_status(agreement_manager, admin, doctor):
    created = await agreement_manager.create(ACME, TERMS, admin)
    await agreement_manager.update_status(created.id, "active", admin)

    with pytest.raises(AuthorizationError):
        await agreement_manager.update_status(created.id, "expired", doctor)
    with pytest.raises(AuthorizationError):
        await agreement_manager.update_status(created.id, "terminated", doctor)
    with pytest.raises(AuthorizationError):
        await agreement_manager.terminate(created.id, "No reason", doctor)

    view = await agreement_manager.get(created.id)
    assert view.agreement.status == AgreementStatus.ACTIVE
    assert view.agreement.version == 2


@pytest.mark.asyncio
async def test_create_validation(agreement_manager, admin, doctor):
    with pytest.raises(ValidationError):
        await agreement_manager.create({"id": "assoc-1"}, TERMS, admin)
    with pytest.raises(ValidationError):
        await agreement_manager.create(ACME, "   ", admin)
    with pytest.raises(AuthorizationError):
        await agreement_manager.create(ACME, TERMS, doctor)

    created = await agreement_manager.create({"id": "assoc-2", "name": "Beta Labs"}, TERMS, admin)
    assert created.associate_name == "Beta Labs"


@pytest.mark.asyncio
async def test_update_validation(agreement_manager, admin):
    created = await agreement_manager.create(ACME, TERMS, admin)

    with pytest.raises(ValidationError):
        await agreement_manager.update_status(created.id, "archived", admin)
    with pytest.raises(ValidationError):
        await agreement_manager.terminate(created.id, "", admin)
    with pytest.raises(AgreementNotFoundError):
        await agreement_manager.update_status("BAA-MISSING", "active", admin)
    with pytest.raises(AgreementNotFoundError):
        await agreement_manager.get("BAA-MISSING")


@pytest.mark.asyncio
async def test_check_expirations_notifies(agreement_manager, notifier, admin, clock):
    expiring = await agreement_manager.create(ACME, TERMS, admin)
    ended = await agreement_manager.create(Associate(id="assoc-2", name="Beta Labs"), TERMS, admin)
    await agreement_manager.terminate(ended.id, "Merged", admin)

    assert await agreement_manager.check_expirations() == []

    clock.now = datetime(2025, 2, 20, tzinfo=timezone.utc)
    found = await agreement_manager.check_expirations()

    assert [a.id for a in found] == [expiring.id]
    assert notifier.sent == [{
        "type": "agreement_expiration",
        "associate_id": "assoc-1",
        "agreement_id": expiring.id,
        "expiration_date": "2025-03-15T12:00:00+00:00",
    }]


@pytest.mark.asyncio
async def test_check_expirations_survives_notifier_failure(
    agreement_store, audit_logger, key_manager, admin, clock
):
    dispatcher = FailingDispatcher()
    manager = AgreementManager(
        agreement_store, audit_logger, key_manager, notifier=dispatcher, clock=clock
    )
    await manager.create(ACME, TERMS, admin)
    await manager.create(Associate(id="assoc-2", name="Beta Labs"), TERMS, admin)

    found = await manager.check_expirations(within_days=400)

    assert len(found) == 2
    assert dispatcher.attempts == 2


@pytest.mark.asyncio
async def test_version_history_and_compare(agreement_manager, admin, doctor):
    created = await agreement_manager.create(ACME, TERMS, admin)
    await agreement_manager.update_status(created.id, "active", admin, reason="Signed")

    history = await agreement_manager.get_version_history(created.id)
    assert [a.version for a in history] == [1, 2]
    assert [a.status for a in history] == [AgreementStatus.PENDING, AgreementStatus.ACTIVE]
    assert len(history[0].revision_history) == 1

    diff = await agreement_manager.compare_versions(created.id, 1, 2, admin)
    assert diff.has_changes
    assert [(d.field, d.left_value, d.right_value) for d in diff.differences] == [
        ("status", "pending", "active"),
    ]

    same = await agreement_manager.compare_versions(created.id, 2, 2, admin)
    assert not same.has_changes

    with pytest.raises(AuthorizationError):
        await agreement_manager.compare_versions(created.id, 1, 2, doctor)
    with pytest.raises(AgreementNotFoundError):
        await agreement_manager.compare_versions(created.id, 1, 5, admin)


class UnavailableAgreementStore(InMemoryAgreementStore):
    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on

    async def create(self, agreement):
        if self.fail_on == "create":
            raise ConnectionError("agreement database unavailable")
        return await super().create(agreement)

    async def update(self, agreement):
        if self.fail_on == "update":
            raise ConnectionError("agreement database unavailable")
        return await super().update(agreement)


@pytest.mark.asyncio
async def test_store_write_failure_propagates_without_audit(audit_logger, key_manager, admin, clock):
    store = UnavailableAgreementStore(fail_on="update")
    manager = AgreementManager(store, audit_logger, key_manager, clock=clock)
    created = await manager.create(ACME, TERMS, admin)

    with pytest.raises(ConnectionError):
        await manager.update_status(created.id, "active", admin)
    with pytest.raises(ConnectionError):
        await manager.terminate(created.id, "Contract ended", admin)

    types = [r.type for r in await audit_logger.get_entries(AuditQuery())]
    assert types == [AuditType.BAA_CREATED]
    view = await manager.get(created.id)
    assert view.agreement.status == AgreementStatus.PENDING
    assert view.agreement.version == 1


@pytest.mark.asyncio
async def test_create_failure_propagates_without_audit(audit_logger, key_manager, admin, clock):
    manager = AgreementManager(
        UnavailableAgreementStore(fail_on="create"), audit_logger, key_manager, clock=clock
    )

    with pytest.raises(ConnectionError):
        await manager.create(ACME, TERMS, admin)

    assert await audit_logger.get_entries(AuditQuery()) == []


@pytest.mark.asyncio
async def test_terminate_checks_role_before_reason(agreement_manager, admin, doctor):
    created = await agreement_manager.create(ACME, TERMS, admin)

    with pytest.raises(AuthorizationError):
        await agreement_manager.terminate(created.id, "", doctor)
