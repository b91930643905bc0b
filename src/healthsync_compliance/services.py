"""
Service wiring.

Builds the compliance components from settings with explicit
collaborators. Nothing here is a module-level singleton; callers keep
the returned container for the lifetime of their app.

Usage:
    services = build_services(
        audit_store=PostgresAuditStore(pool),
        agreement_store=PostgresAgreementStore(pool),
        notifier=EmailDispatcher(),
    )
    await services.agreements.create(associate, terms, actor)
"""

from dataclasses import dataclass

from healthsync_compliance.agreements.manager import AgreementManager
from healthsync_compliance.agreements.store import AgreementStore
from healthsync_compliance.audit.retention import RetentionPolicy
from healthsync_compliance.audit.service import AuditLogger
from healthsync_compliance.audit.store import AuditStore
from healthsync_compliance.clock import Clock, utcnow
from healthsync_compliance.config import Settings, get_settings
from healthsync_compliance.notifications.dispatcher import NotificationDispatcher
from healthsync_compliance.observability.diagnostics import DiagnosticChannel
from healthsync_compliance.reports.analyzer import ComplianceAnalyzer
from healthsync_compliance.security.encryption import KeyManager


@dataclass
class ComplianceServices:
    key_manager: KeyManager
    diagnostics: DiagnosticChannel
    audit: AuditLogger
    agreements: AgreementManager
    analyzer: ComplianceAnalyzer


def build_services(
    audit_store: AuditStore,
    agreement_store: AgreementStore,
    notifier: NotificationDispatcher | None = None,
    settings: Settings | None = None,
    clock: Clock = utcnow,
) -> ComplianceServices:
    """Assemble the compliance core around the given stores."""
    settings = settings or get_settings()

    key_manager = KeyManager.from_settings(settings.encryption)
    diagnostics = DiagnosticChannel(
        max_buffer=settings.audit.diagnostics_buffer_size,
        clock=clock,
    )
    audit = AuditLogger(
        store=audit_store,
        key_manager=key_manager,
        retention=RetentionPolicy.from_settings(settings.audit),
        diagnostics=diagnostics,
        system_id=settings.audit.system_id,
        clock=clock,
    )
    agreements = AgreementManager(
        store=agreement_store,
        audit_logger=audit,
        key_manager=key_manager,
        notifier=notifier,
        term_years=settings.agreements.term_years,
        expiration_notice_days=settings.agreements.expiration_notice_days,
        clock=clock,
    )
    analyzer = ComplianceAnalyzer.from_settings(audit, settings.analyzer, clock=clock)

    return ComplianceServices(
        key_manager=key_manager,
        diagnostics=diagnostics,
        audit=audit,
        agreements=agreements,
        analyzer=analyzer,
    )
