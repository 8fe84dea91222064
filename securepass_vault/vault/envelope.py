"""
Envelope Cipher — Seals one secret under a user key, and opens it again.

An envelope is ``{ciphertext, iv}`` as lowercase hex, persisted beside the
credential's plaintext metadata as ``passwordEncrypted`` and ``iv``.

Backends:
- ``aes-cbc`` (default): AES-256-CBC with PKCS#7 padding. There is no
  message authentication: a tampered envelope may open to garbage, or fail
  on padding, depending on luck. A wrong key is detected the same way.
- ``aes-gcm``: AES-256-GCM with a 16-byte IV; the authentication tag is
  carried in ``tag``. Tampering or a wrong key always fails.

Security Note:
    Never log plaintext or ciphertext values. The IV is public and stored
    alongside the ciphertext; it is freshly random for every seal call.
"""
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from pydantic import BaseModel

from ..exceptions import DecryptionError, EncryptionError
from .crypto import (
    IV_SIZE,
    KEY_LENGTH,
    TAG_SIZE,
    cbc_decrypt,
    cbc_encrypt,
    from_hex,
    gcm_decrypt,
    gcm_encrypt,
    random_iv,
    to_hex,
)

logger = logging.getLogger("securepass.vault")


class Envelope(BaseModel):
    """Persisted form of one encrypted secret."""

    ciphertext: str
    iv: str
    tag: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def authenticated(self) -> bool:
        return self.tag is not None

    def to_document(self) -> dict:
        """Return the stored field names: passwordEncrypted, iv (and tag)."""
        doc = {"passwordEncrypted": self.ciphertext, "iv": self.iv}
        if self.tag is not None:
            doc["tag"] = self.tag
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "Envelope":
        return cls(
            ciphertext=doc["passwordEncrypted"],
            iv=doc["iv"],
            tag=doc.get("tag"),
        )


class EnvelopeCipher:
    """Stateless sealing/opening of envelopes with a fixed backend."""

    def __init__(self, backend: str = "aes-cbc"):
        if backend not in ("aes-cbc", "aes-gcm"):
            raise ValueError(f"Unsupported cipher backend: {backend}")
        self.backend = backend

    def seal(self, plaintext: str, key: bytes) -> Envelope:
        """Encrypt plaintext under key with a fresh random IV.

        Raises:
            EncryptionError: If the cipher primitive fails (wrong key size,
                non-string plaintext).
        """
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise EncryptionError("encryption failed: key must be 32 bytes")
        iv = random_iv()
        try:
            data = plaintext.encode("utf-8")
            if self.backend == "aes-gcm":
                ct, tag = gcm_encrypt(data, bytes(key), iv)
                return Envelope(ciphertext=to_hex(ct), iv=to_hex(iv), tag=to_hex(tag))
            ct = cbc_encrypt(data, bytes(key), iv)
        except Exception as err:
            logger.error("Envelope encryption failed (%s)", type(err).__name__)
            raise EncryptionError("encryption failed") from err
        return Envelope(ciphertext=to_hex(ct), iv=to_hex(iv))

    def open(self, envelope: Envelope, key: bytes) -> str:
        """Decrypt an envelope and return the plaintext secret.

        The envelope's own shape decides the mode: an envelope with a tag is
        opened with GCM, one without a tag with CBC. A cipher configured for
        ``aes-gcm`` refuses untagged envelopes.

        Raises:
            DecryptionError: Malformed envelope, wrong key, or tampering.
        """
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise DecryptionError("decryption failed: key must be 32 bytes")
        try:
            iv = from_hex(envelope.iv)
        except ValueError as err:
            raise DecryptionError("decryption failed: malformed iv") from err
        if len(iv) != IV_SIZE:
            raise DecryptionError("decryption failed: iv must be 16 bytes")
        try:
            ct = from_hex(envelope.ciphertext)
        except ValueError as err:
            raise DecryptionError("decryption failed: malformed ciphertext") from err

        if envelope.tag is not None:
            return self._open_gcm(ct, envelope.tag, bytes(key), iv)
        if self.backend == "aes-gcm":
            raise DecryptionError("decryption failed: missing authentication tag")
        try:
            data = cbc_decrypt(ct, bytes(key), iv)
            return data.decode("utf-8")
        except ValueError as err:
            # a wrong key or IV surfaces here as a padding error
            logger.debug("CBC envelope did not open (%s)", type(err).__name__)
            raise DecryptionError("decryption failed") from err

    def _open_gcm(self, ct: bytes, tag_hex: str, key: bytes, iv: bytes) -> str:
        try:
            tag = from_hex(tag_hex)
        except ValueError as err:
            raise DecryptionError("decryption failed: malformed tag") from err
        if len(tag) != TAG_SIZE:
            raise DecryptionError("decryption failed: tag must be 16 bytes")
        try:
            return gcm_decrypt(ct, tag, key, iv).decode("utf-8")
        except (InvalidTag, ValueError) as err:
            logger.debug("GCM envelope failed authentication")
            raise DecryptionError("decryption failed") from err


_DEFAULT_CIPHER = EnvelopeCipher()


def seal(plaintext: str, key: bytes) -> Envelope:
    """Seal plaintext with AES-256-CBC (the persisted default format)."""
    return _DEFAULT_CIPHER.seal(plaintext, key)


def open_envelope(envelope: Envelope, key: bytes) -> str:
    """Open an envelope produced by :func:`seal` (or a tagged GCM one)."""
    return _DEFAULT_CIPHER.open(envelope, key)
