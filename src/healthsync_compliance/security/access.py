"""Role-based HIPAA access checks."""
from healthsync_compliance.audit.models import Actor, UserRole

HIPAA_ROLES = {UserRole.ADMIN.value, UserRole.DOCTOR.value, UserRole.NURSE.value}

# Clinical roles must have accepted the HIPAA acknowledgement
CONSENT_REQUIRED_ROLES = {UserRole.DOCTOR.value, UserRole.NURSE.value}

ROLE_PERMISSIONS: dict[str, set[str]] = {
    UserRole.DOCTOR.value: {"view", "download", "upload"},
    UserRole.NURSE.value: {"view", "download"},
    UserRole.PATIENT.value: {"view"},
}


def check_hipaa_access(actor: Actor | None) -> bool:
    """Whether the actor may work with PHI at all."""
    if actor is None or actor.role not in HIPAA_ROLES:
        return False
    if actor.role in CONSENT_REQUIRED_ROLES:
        return actor.hipaa_consent_status == "accepted"
    return True


def validate_document_access(required_permission: str, actor: Actor | None) -> bool:
    """Whether the actor's role grants the permission a document requires."""
    if actor is None:
        return False
    if actor.is_admin:
        return True
    return required_permission in ROLE_PERMISSIONS.get(actor.role, set())
