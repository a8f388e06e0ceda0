"""Encrypted single-file key-value store for OAuth token records."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Protocol

from pydantic import ValidationError

from tiktok_relay.models.oauth import TokenRecord

if TYPE_CHECKING:
    from tiktok_relay.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT = "default"


class TokenStoreCorruptedError(Exception):
    """Raised when the token file exists but cannot be decrypted or parsed."""


class TokenStore(Protocol):
    """Abstraction for persisting token records keyed by account."""

    def load(self, account: str = DEFAULT_ACCOUNT) -> Optional[TokenRecord]:
        """Return the stored record for ``account`` or ``None`` when absent."""

    def save(self, record: TokenRecord, account: str = DEFAULT_ACCOUNT) -> None:
        """Persist ``record``, fully replacing any previous one for ``account``."""


class EncryptedFileTokenStore:
    """Persist token records as one Fernet-encrypted JSON document on disk.

    The plaintext is a mapping of account key to record. Today the server only
    ever uses ``DEFAULT_ACCOUNT``, so the file holds a single record.
    """

    def __init__(self, path: Path | str, cipher: TokenCipherService) -> None:
        self._path = Path(path)
        self._cipher = cipher

    @property
    def path(self) -> Path:
        return self._path

    def load(self, account: str = DEFAULT_ACCOUNT) -> Optional[TokenRecord]:
        raw = self._read_all()
        if raw is None:
            return None
        item = raw.get(account)
        if item is None:
            return None
        try:
            return TokenRecord.model_validate(item)
        except ValidationError as exc:
            raise TokenStoreCorruptedError(
                f"Token record for account {account!r} in {self._path} is malformed."
            ) from exc

    def save(self, record: TokenRecord, account: str = DEFAULT_ACCOUNT) -> None:
        # Other accounts survive a save; a missing or unreadable file starts a
        # fresh mapping.
        try:
            existing = self._read_all() or {}
        except TokenStoreCorruptedError as exc:
            logger.warning("Discarding unreadable token file %s: %s", self._path, exc)
            existing = {}
        existing[account] = record.model_dump(mode="json")
        serialized = json.dumps(existing, sort_keys=True, separators=(",", ":"))
        self._write_atomic(self._cipher.encrypt_bytes(serialized.encode("utf-8")))
        logger.info("Persisted token record for account %s to %s", account, self._path)

    def _read_all(self) -> Optional[Dict[str, dict]]:
        if not self._path.exists():
            return None
        ciphertext = self._path.read_bytes().strip()
        try:
            plaintext = self._cipher.decrypt_bytes(ciphertext)
        except ValueError as exc:
            raise TokenStoreCorruptedError(
                f"Could not decrypt {self._path}; check ENCRYPTION_KEY or delete the "
                "file and log in again."
            ) from exc
        try:
            data = json.loads(plaintext)
        except ValueError as exc:
            raise TokenStoreCorruptedError(
                f"Decrypted token file {self._path} is not valid JSON."
            ) from exc
        if not isinstance(data, dict):
            raise TokenStoreCorruptedError(
                f"Decrypted token file {self._path} has an unexpected layout."
            )
        return data

    def _write_atomic(self, payload: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            try:
                os.chmod(tmp_name, 0o600)
            except OSError as exc:  # pragma: no cover - depends on platform
                logger.warning("Could not set permissions on %s: %s", tmp_name, exc)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = [
    "DEFAULT_ACCOUNT",
    "EncryptedFileTokenStore",
    "TokenStore",
    "TokenStoreCorruptedError",
]
