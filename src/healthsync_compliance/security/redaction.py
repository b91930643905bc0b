"""Sensitive field redaction for logs and exported audit data."""
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset({
    "ssn",
    "creditcard",
    "credit_card",
    "password",
    "dateofbirth",
    "date_of_birth",
    "phonenumber",
    "phone_number",
    "email",
})


def is_sensitive(key: str) -> bool:
    return key.lower() in SENSITIVE_FIELDS


def sanitize_for_logging(data: Any) -> Any:
    """
    Return a copy of `data` with sensitive keys masked.
    
    Nested dicts and lists are walked recursively; non-container
    values are returned unchanged.
    """
    if isinstance(data, dict):
        return {
            key: REDACTED if isinstance(key, str) and is_sensitive(key)
            else sanitize_for_logging(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [sanitize_for_logging(item) for item in data]
    return data
