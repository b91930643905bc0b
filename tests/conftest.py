from datetime import datetime, timedelta, timezone

import pytest

from healthsync_compliance.agreements import AgreementManager, InMemoryAgreementStore
from healthsync_compliance.audit import AuditLogger, InMemoryAuditStore
from healthsync_compliance.audit.models import Actor
from healthsync_compliance.notifications import InMemoryNotificationDispatcher
from healthsync_compliance.observability import DiagnosticChannel
from healthsync_compliance.security import KeyManager

START = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for deterministic timestamps."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def key_manager():
    # Low iteration count keeps key derivation fast in tests
    return KeyManager({1: "test-primary-secret"}, active_version=1, salt="test-salt", iterations=1000)


@pytest.fixture
def audit_store():
    return InMemoryAuditStore()


@pytest.fixture
def diagnostics(clock):
    return DiagnosticChannel(max_buffer=10, clock=clock)


@pytest.fixture
def audit_logger(audit_store, key_manager, diagnostics, clock):
    return AuditLogger(
        store=audit_store,
        key_manager=key_manager,
        diagnostics=diagnostics,
        system_id="test-system",
        clock=clock,
    )


@pytest.fixture
def agreement_store():
    return InMemoryAgreementStore()


@pytest.fixture
def notifier():
    return InMemoryNotificationDispatcher()


@pytest.fixture
def agreement_manager(agreement_store, audit_logger, key_manager, notifier, clock):
    return AgreementManager(
        store=agreement_store,
        audit_logger=audit_logger,
        key_manager=key_manager,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def admin():
    return Actor(id="admin-1", role="admin", first_name="Ada", last_name="Lovelace")


@pytest.fixture
def doctor():
    return Actor(
        id="doc-1",
        role="doctor",
        first_name="Gregory",
        last_name="House",
        hipaa_consent_status="accepted",
    )
