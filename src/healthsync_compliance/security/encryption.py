"""
Versioned Field Encryption

Encrypts arbitrary JSON-serializable payloads for storage alongside
audit entries and agreements. Ciphertexts carry the version of the key
that produced them ("<version>:<token>") so keys can be rotated without
re-encrypting historical data.

- Key stretching: PBKDF2-HMAC-SHA256
- Cipher: Fernet (AES-128-CBC + HMAC-SHA256, authenticated)
"""

import base64
import json
import re
from dataclasses import dataclass
from typing import Any

import structlog
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic_core import to_jsonable_python

from healthsync_compliance.cache import BoundedCache
from healthsync_compliance.config import EncryptionSettings
from healthsync_compliance.errors import EncryptionError

logger = structlog.get_logger(__name__)

# Untagged ciphertexts predate key versioning
LEGACY_KEY_VERSION = 1
VERSION_SEPARATOR = ":"

# Fernet tokens use the url-safe base64 alphabet only
TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]+={0,2}")


@dataclass(frozen=True)
class EncryptedPayload:
    """A ciphertext split into its key version and Fernet token."""
    key_version: int
    ciphertext: str
    
    def __str__(self) -> str:
        return f"{self.key_version}{VERSION_SEPARATOR}{self.ciphertext}"


def derive_key(base_secret: str, salt: str | bytes, iterations: int) -> bytes:
    """
    Stretch a base secret into a Fernet key.
    
    Deterministic: the same secret, salt and iteration count always
    yield the same key.
    """
    if isinstance(salt, str):
        salt = salt.encode()
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(base_secret.encode()))


def parse(value: str) -> EncryptedPayload:
    """Split a versioned ciphertext; untagged values are legacy version 1."""
    if not isinstance(value, str) or not value:
        raise EncryptionError("Ciphertext must be a non-empty string")
    
    if VERSION_SEPARATOR not in value:
        return EncryptedPayload(LEGACY_KEY_VERSION, value)
    
    version, ciphertext = value.split(VERSION_SEPARATOR, 1)
    try:
        key_version = int(version)
    except ValueError:
        raise EncryptionError(f"Malformed key version tag: {version!r}") from None
    return EncryptedPayload(key_version, ciphertext)


class KeyManager:
    """
    Holds the versioned base secrets and performs encrypt/decrypt.
    
    Only the active version is used to encrypt. Retired versions stay
    registered so existing ciphertexts remain readable.
    
    Example:
        keys = KeyManager({1: "old-secret"}, active_version=1, salt="s")
        token = keys.encrypt({"patient_id": "p-1"})
        keys.rotate(2, "new-secret")
        keys.decrypt(token)  # still readable
    """
    
    def __init__(
        self,
        keys: dict[int, str],
        active_version: int = 1,
        salt: str | bytes = "hipaa-compliance-salt",
        iterations: int = 480_000,
        cache: BoundedCache | None = None,
    ):
        if not keys:
            raise EncryptionError("At least one encryption key is required")
        if active_version not in keys:
            raise EncryptionError(f"Active key version {active_version} has no key")
        
        self._keys = dict(keys)
        self.active_version = active_version
        self.salt = salt
        self.iterations = iterations
        self._cache = cache if cache is not None else BoundedCache(max_size=16)
    
    @classmethod
    def from_settings(cls, settings: EncryptionSettings, cache: BoundedCache | None = None) -> "KeyManager":
        """Build from primary/secondary keys in configuration."""
        keys = {LEGACY_KEY_VERSION: settings.primary_key.get_secret_value()}
        if settings.key_version > LEGACY_KEY_VERSION:
            if settings.secondary_key is None:
                raise EncryptionError(
                    f"Key version {settings.key_version} is active but no secondary key is configured"
                )
            keys[settings.key_version] = settings.secondary_key.get_secret_value()
        
        return cls(
            keys=keys,
            active_version=settings.key_version,
            salt=settings.salt,
            iterations=settings.iterations,
            cache=cache or BoundedCache(max_size=settings.key_cache_size),
        )
    
    @property
    def versions(self) -> list[int]:
        return sorted(self._keys)
    
    def rotate(self, version: int, secret: str) -> None:
        """Register a new key and make it the active one."""
        if version <= max(self._keys):
            raise EncryptionError(
                f"New key version {version} must be greater than {max(self._keys)}"
            )
        if not secret:
            raise EncryptionError("Key secret must not be empty")
        
        self._keys[version] = secret
        self.active_version = version
        logger.info("Encryption key rotated", active_version=version)
    
    def _fernet(self, version: int) -> Fernet:
        if version not in self._keys:
            raise EncryptionError(f"Unknown encryption key version: {version}")
        
        fernet = self._cache.get(version)
        if fernet is None:
            fernet = Fernet(derive_key(self._keys[version], self.salt, self.iterations))
            self._cache.set(version, fernet)
        return fernet
    
    def encrypt(self, data: Any) -> str:
        """Serialize and encrypt under the active key."""
        try:
            plaintext = json.dumps(data, default=to_jsonable_python).encode()
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Payload is not serializable: {e}") from e
        
        token = self._fernet(self.active_version).encrypt(plaintext)
        return str(EncryptedPayload(self.active_version, token.decode()))
    
    def decrypt(self, value: str) -> Any:
        """Decrypt a versioned (or legacy untagged) ciphertext."""
        payload = parse(value)
        fernet = self._fernet(payload.key_version)

        if not TOKEN_PATTERN.fullmatch(payload.ciphertext):
            logger.error("Decryption failed - malformed token", key_version=payload.key_version)
            raise EncryptionError(
                f"Ciphertext is not a canonical token for key version {payload.key_version}"
            )

        try:
            plaintext = fernet.decrypt(payload.ciphertext.encode())
        except InvalidToken:
            logger.error("Decryption failed - invalid token", key_version=payload.key_version)
            raise EncryptionError(
                f"Ciphertext failed authentication under key version {payload.key_version}"
            ) from None
        
        try:
            return json.loads(plaintext)
        except ValueError as e:
            raise EncryptionError("Decrypted payload is not valid JSON") from e
