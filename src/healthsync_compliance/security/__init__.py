"""
HealthSync Security Module

- Versioned field encryption and key rotation
- Role-based access checks
- Sensitive field redaction
"""

from healthsync_compliance.security.encryption import (
    EncryptedPayload,
    KeyManager,
    derive_key,
    parse,
)
from healthsync_compliance.security.redaction import sanitize_for_logging
# access depends on audit models, which load after encryption and redaction
from healthsync_compliance.security.access import (
    check_hipaa_access,
    validate_document_access,
)

__all__ = [
    "EncryptedPayload",
    "KeyManager",
    "check_hipaa_access",
    "derive_key",
    "parse",
    "sanitize_for_logging",
    "validate_document_access",
]
