from datetime import datetime, timezone

import pytest
import structlog

from healthsync_compliance.agreements import AgreementStatus, Associate, InMemoryAgreementStore
from healthsync_compliance.audit import AuditStore, InMemoryAuditStore
from healthsync_compliance.config import EncryptionSettings, Settings
from healthsync_compliance.observability import DiagnosticChannel, configure_logging
from healthsync_compliance.observability.logging import redaction_processor
from healthsync_compliance.notifications import InMemoryNotificationDispatcher
from healthsync_compliance.services import build_services


class DownAuditStore(AuditStore):
    async def append(self, entry):
        raise TimeoutError("audit store timed out")

    async def query(self, query):
        return []


def _settings():
    settings = Settings()
    settings.encryption = EncryptionSettings(iterations=1000)
    return settings


@pytest.mark.asyncio
async def test_build_services_wires_components(admin, clock):
    notifier = InMemoryNotificationDispatcher()
    services = build_services(
        audit_store=InMemoryAuditStore(),
        agreement_store=InMemoryAgreementStore(),
        notifier=notifier,
        settings=_settings(),
        clock=clock,
    )

    created = await services.agreements.create(Associate(id="a-1", name="Acme"), "Terms", admin)
    await services.agreements.update_status(created.id, AgreementStatus.ACTIVE, admin)

    report = await services.analyzer.generate_report(
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        datetime(2024, 12, 31, tzinfo=timezone.utc),
    )
    assert report.summary.access_type_counts == {"baa_created": 1, "baa_updated": 1}
    assert services.audit.system_id == "healthcare-platform"


@pytest.mark.asyncio
async def test_agreement_survives_audit_outage(admin, clock):
    services = build_services(
        audit_store=DownAuditStore(),
        agreement_store=InMemoryAgreementStore(),
        settings=_settings(),
        clock=clock,
    )

    created = await services.agreements.create(Associate(id="a-1", name="Acme"), "Terms", admin)

    assert created.status == AgreementStatus.PENDING
    assert services.diagnostics.failure_count == 1
    assert services.diagnostics.recent()[0].error_type == "TimeoutError"


def test_diagnostic_buffer_is_bounded(clock):
    channel = DiagnosticChannel(max_buffer=2, clock=clock)
    for i in range(3):
        channel.report("Audit write failed", RuntimeError(f"failure {i}"))

    assert channel.failure_count == 3
    assert [r.error_message for r in channel.recent()] == ["failure 1", "failure 2"]

    channel.clear()
    assert channel.recent() == []
    assert channel.failure_count == 0


def test_redaction_processor_masks_sensitive_keys():
    event = redaction_processor(None, "info", {
        "event": "login",
        "password": "hunter2",
        "user": {"email": "a@b.org", "id": "u-1"},
    })

    assert event["password"] == "[REDACTED]"
    assert event["user"] == {"email": "[REDACTED]", "id": "u-1"}
    assert event["event"] == "login"


def test_configure_logging():
    configure_logging(level="DEBUG", json_output=False)
    try:
        assert structlog.is_configured()
        processors = structlog.get_config()["processors"]
        assert redaction_processor in processors
    finally:
        structlog.reset_defaults()
