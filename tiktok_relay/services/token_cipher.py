"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


class TokenDecryptionError(ValueError):
    """Raised when ciphertext fails authentication or cannot be decoded."""


class TokenCipherService:
    """Encrypt and decrypt sensitive payloads using a derived Fernet key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest)
        self._fernet = Fernet(key)

    def encrypt_bytes(self, plaintext: bytes) -> bytes:
        """Encrypt raw bytes and return the Fernet token."""
        return self._fernet.encrypt(plaintext)

    def decrypt_bytes(self, ciphertext: bytes) -> bytes:
        """Verify and decrypt a Fernet token produced by ``encrypt_bytes``."""
        try:
            return self._fernet.decrypt(ciphertext)
        except InvalidToken as exc:
            raise TokenDecryptionError(
                "Failed to decrypt token; ciphertext is corrupted or the key is wrong."
            ) from exc

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the ciphertext."""
        return self.encrypt_bytes(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext string and return the plaintext."""
        return self.decrypt_bytes(ciphertext.encode("utf-8")).decode("utf-8")


__all__ = ["TokenCipherService", "TokenDecryptionError"]
