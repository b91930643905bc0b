from healthsync_compliance import security
from healthsync_compliance.audit.models import Actor
from healthsync_compliance.security.access import check_hipaa_access, validate_document_access
from healthsync_compliance.security.redaction import REDACTED, sanitize_for_logging


def test_hipaa_access_requires_consent_for_clinicians():
    accepted = Actor(id="n-1", role="nurse", hipaa_consent_status="accepted")
    pending = Actor(id="n-2", role="nurse", hipaa_consent_status="pending")
    admin = Actor(id="a-1", role="admin")
    patient = Actor(id="p-1", role="patient")

    assert check_hipaa_access(accepted)
    assert not check_hipaa_access(pending)
    assert check_hipaa_access(admin)
    assert not check_hipaa_access(patient)
    assert not check_hipaa_access(None)


def test_document_permissions_by_role():
    doctor = Actor(id="d-1", role="doctor")
    nurse = Actor(id="n-1", role="nurse")
    patient = Actor(id="p-1", role="patient")
    staff = Actor(id="s-1", role="staff")

    assert validate_document_access("upload", doctor)
    assert validate_document_access("download", nurse)
    assert not validate_document_access("upload", nurse)
    assert validate_document_access("view", patient)
    assert not validate_document_access("download", patient)
    assert not validate_document_access("view", staff)
    assert validate_document_access("delete", Actor(id="a-1", role="admin"))
    assert not validate_document_access("view", None)


def test_sanitize_for_logging_masks_nested_fields():
    data = {
        "patient": {"name": "Jane", "SSN": "123-45-6789", "contacts": [{"email": "j@x.org"}]},
        "password": "hunter2",
        "count": 2,
    }

    clean = sanitize_for_logging(data)

    assert clean["password"] == REDACTED
    assert clean["patient"]["SSN"] == REDACTED
    assert clean["patient"]["contacts"][0]["email"] == REDACTED
    assert clean["patient"]["name"] == "Jane"
    assert clean["count"] == 2
    # Input is left untouched
    assert data["password"] == "hunter2"


def test_access_checks_exported_from_security_package():
    assert security.check_hipaa_access is check_hipaa_access
    assert security.validate_document_access is validate_document_access
