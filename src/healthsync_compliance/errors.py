"""Compliance core exceptions."""


class ComplianceError(Exception):
    """Base class for compliance core errors."""
    pass


class ValidationError(ComplianceError):
    """Required input missing or malformed."""
    pass


class AuthorizationError(ComplianceError):
    """Actor's role does not permit the operation."""
    pass


class InvalidTransitionError(ComplianceError):
    """Requested agreement status change is not allowed."""
    
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid status transition from {current} to {requested}")


class AgreementNotFoundError(ComplianceError):
    """No agreement exists with the given id."""
    pass


class EncryptionError(ComplianceError):
    """Unknown key version, malformed ciphertext or failed authentication."""
    pass
