"""AES-256-GCM encryption for access tokens at rest.

Tokens written to the storage backend (Redis in production) are encrypted
when a SESSION_ENCRYPTION_KEY is configured. A secondary key may be supplied
during key rotation; decryption falls back to it.

Format: base64(nonce[12] + ciphertext + tag[16])
"""

import base64
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)


class TokenCipher:
    """Encrypts and decrypts token strings with dual-key rotation support."""

    def __init__(self, primary_key: bytes, secondary_key: bytes | None = None):
        """Initialize cipher.

        Args:
            primary_key: 32-byte AES-256 key used for encryption
            secondary_key: Optional 32-byte key accepted for decryption only

        Raises:
            ValueError: If a key is not 32 bytes
        """
        if len(primary_key) != 32:
            raise ValueError("Encryption key must be exactly 32 bytes for AES-256")

        if secondary_key and len(secondary_key) != 32:
            raise ValueError("Secondary key must be exactly 32 bytes for AES-256")

        self.cipher_primary = AESGCM(primary_key)
        self.cipher_secondary = AESGCM(secondary_key) if secondary_key else None

    @classmethod
    def from_base64(cls, primary_b64: str, secondary_b64: str | None = None) -> "TokenCipher":
        """Build a cipher from base64-encoded keys (environment format)."""

        def _decode(value: str, name: str) -> bytes:
            try:
                return base64.b64decode(value, validate=True)
            except (ValueError, TypeError) as e:
                raise ValueError(f"{name} must be base64-encoded: {e}") from e

        primary = _decode(primary_b64, "SESSION_ENCRYPTION_KEY")
        secondary = _decode(secondary_b64, "SESSION_ENCRYPTION_KEY_SECONDARY") if secondary_b64 else None
        return cls(primary, secondary)

    def encrypt(self, data: str) -> str:
        nonce = os.urandom(12)  # 96-bit nonce for GCM
        ciphertext = self.cipher_primary.encrypt(nonce, data.encode(), None)
        return base64.b64encode(nonce + ciphertext).decode()

    def decrypt(self, encrypted: str) -> str:
        """Decrypt with primary key, falling back to the secondary key.

        Raises:
            cryptography.exceptions.InvalidTag: If decryption fails with every key
        """
        blob = base64.b64decode(encrypted)
        nonce = blob[:12]
        ciphertext = blob[12:]

        try:
            return self.cipher_primary.decrypt(nonce, ciphertext, None).decode()
        except InvalidTag:
            if self.cipher_secondary:
                logger.warning("Primary key decryption failed, trying secondary key")
                return self.cipher_secondary.decrypt(nonce, ciphertext, None).decode()
            raise
