"""
CredentialVault — Website/username/password records sealed per user.

Provides the public API used by the request-handling layer:
- ``create(...)`` — seal a password and store a new record
- ``update(...)`` — replace metadata and the whole envelope of a record
- ``delete(...)`` — remove a record owned by the user
- ``list_credentials(...)`` — enumerate the user's records (no plaintext)
- ``reveal(...)`` — derive the user key and open one record's envelope

Every call presents the session token and the acting user id. The token must
be valid and issued to that user before any record is looked up; the key is
then derived for the request and discarded afterwards.

Security Note:
    Never log plaintext or ciphertext values. Only log record ids, operations
    and user ids. A record missing and a record owned by someone else raise
    the same ``CredentialNotFoundError``.
"""
import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

import orjson
from pydantic import BaseModel, Field

from ..exceptions import (
    CredentialNotFoundError,
    DuplicateCredentialError,
    InvalidSessionError,
    KeyDerivationError,
)
from .config import VaultConfig
from .envelope import Envelope, EnvelopeCipher
from .keys import KeyDeriver, KeySource

logger = logging.getLogger("securepass.vault")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialRecord(BaseModel):
    """One stored credential. The password exists only as its envelope."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner: str
    website: str
    username: str
    envelope: Envelope
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def to_document(self) -> dict:
        """Return the persisted shape, envelope fields as siblings."""
        doc = {
            "id": self.id,
            "userId": self.owner,
            "website": self.website,
            "username": self.username,
            "tags": list(self.tags),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        doc.update(self.envelope.to_document())
        return doc

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_document())

    @classmethod
    def from_document(cls, doc: dict) -> "CredentialRecord":
        return cls(
            id=doc["id"],
            owner=doc["userId"],
            website=doc["website"],
            username=doc["username"],
            envelope=Envelope.from_document(doc),
            tags=doc.get("tags") or [],
            created_at=datetime.fromisoformat(doc["createdAt"]),
            updated_at=datetime.fromisoformat(doc["updatedAt"]),
        )

    @classmethod
    def from_json(cls, data: bytes) -> "CredentialRecord":
        return cls.from_document(orjson.loads(data))


class InMemoryCredentialStore:
    """Process-local credential repository.

    Enforces the unique index on (owner, website, username).
    """

    def __init__(self):
        self._records: dict[str, CredentialRecord] = {}

    def _conflicts(self, record: CredentialRecord) -> bool:
        return any(
            other.id != record.id
            and other.owner == record.owner
            and other.website == record.website
            and other.username == record.username
            for other in self._records.values()
        )

    def add(self, record: CredentialRecord) -> CredentialRecord:
        if record.id in self._records or self._conflicts(record):
            raise DuplicateCredentialError(
                "A credential for this website and username already exists"
            )
        self._records[record.id] = record
        return record

    def get(self, credential_id: str) -> Optional[CredentialRecord]:
        return self._records.get(credential_id)

    def replace(self, record: CredentialRecord) -> CredentialRecord:
        if record.id not in self._records:
            raise CredentialNotFoundError("Credential not found")
        if self._conflicts(record):
            raise DuplicateCredentialError(
                "A credential for this website and username already exists"
            )
        self._records[record.id] = record
        return record

    def remove(self, credential_id: str) -> None:
        if self._records.pop(credential_id, None) is None:
            raise CredentialNotFoundError("Credential not found")

    def list_for_owner(self, owner: str) -> list[CredentialRecord]:
        return [r for r in self._records.values() if r.owner == owner]

    def owners(self) -> list[str]:
        return sorted({r.owner for r in self._records.values()})

    def __len__(self) -> int:
        return len(self._records)


class CredentialVault:
    """Credential records sealed with a key derived per request.

    Any object with ``tokens`` and ``derive_key(session_token, user_id)``
    can supply keys: ``KeyDeriver`` (server-secret derivation, the default)
    or ``SessionKeyring`` (master-password keys held per live session).

    Every call first checks that the session is valid and belongs to
    ``user_id``; a bad, expired, revoked or foreign token raises
    ``KeyDerivationError("invalid session")`` on every operation.
    """

    def __init__(
        self,
        config: VaultConfig,
        deriver: Optional[KeySource] = None,
        store: Optional[InMemoryCredentialStore] = None,
    ):
        self._deriver = deriver or KeyDeriver(config)
        self._cipher = EnvelopeCipher(config.cipher_backend)
        self._store = store if store is not None else InMemoryCredentialStore()
        self._max_per_user = config.max_credentials_per_user

    @property
    def store(self) -> InMemoryCredentialStore:
        return self._store

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(website: str, username: str, password: str) -> tuple[str, str]:
        """Trim and check the required fields.

        Raises:
            ValueError: If website, username or password is empty.
        """
        website = (website or "").strip()
        username = (username or "").strip()
        if not website:
            raise ValueError("Website is required")
        if not username:
            raise ValueError("Username is required")
        if not password:
            raise ValueError("Password is required")
        return website, username

    @staticmethod
    def _clean_tags(tags: Optional[list[str]]) -> list[str]:
        return [t.strip() for t in (tags or []) if t and t.strip()]

    def _authorize(self, session_token: str, user_id: str) -> None:
        """Check the session is valid and was issued to user_id."""
        try:
            claims = self._deriver.tokens.verify(session_token)
        except InvalidSessionError as err:
            raise KeyDerivationError("invalid session") from err
        if not user_id or claims["sub"] != user_id:
            logger.warning("Session does not belong to the requested user")
            raise KeyDerivationError("invalid session")

    def _owned(self, user_id: str, credential_id: str) -> CredentialRecord:
        record = self._store.get(credential_id)
        if record is None or record.owner != user_id:
            raise CredentialNotFoundError("Credential not found")
        return record

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(
        self,
        session_token: str,
        user_id: str,
        website: str,
        username: str,
        password: str,
        tags: Optional[list[str]] = None,
    ) -> CredentialRecord:
        """Seal password and store a new credential for user_id.

        Raises:
            ValueError: If a required field is empty or the per-user limit
                is reached.
            KeyDerivationError: If the session is not valid.
            DuplicateCredentialError: If (website, username) already exists.
        """
        website, username = self._validate(website, username, password)
        self._authorize(session_token, user_id)
        if len(self._store.list_for_owner(user_id)) >= self._max_per_user:
            raise ValueError(
                f"Max credentials per user ({self._max_per_user}) exceeded"
            )
        key = self._deriver.derive_key(session_token, user_id)
        record = CredentialRecord(
            owner=user_id,
            website=website,
            username=username,
            envelope=self._cipher.seal(password, key),
            tags=self._clean_tags(tags),
        )
        self._store.add(record)
        logger.debug("Credential created: user=%s id=%s", user_id, record.id)
        return record

    def update(
        self,
        session_token: str,
        user_id: str,
        credential_id: str,
        website: str,
        username: str,
        password: str,
        tags: Optional[list[str]] = None,
    ) -> CredentialRecord:
        """Replace a credential's metadata and re-seal its password.

        Raises:
            CredentialNotFoundError: If the record is missing or not owned
                by user_id.
            KeyDerivationError: If the session is not valid for user_id.
        """
        website, username = self._validate(website, username, password)
        self._authorize(session_token, user_id)
        key = self._deriver.derive_key(session_token, user_id)
        current = self._owned(user_id, credential_id)
        record = current.model_copy(update={
            "website": website,
            "username": username,
            "envelope": self._cipher.seal(password, key),
            "tags": self._clean_tags(tags),
            "updated_at": _utcnow(),
        })
        self._store.replace(record)
        logger.debug("Credential updated: user=%s id=%s", user_id, record.id)
        return record

    def delete(self, session_token: str, user_id: str, credential_id: str) -> None:
        self._authorize(session_token, user_id)
        self._owned(user_id, credential_id)
        self._store.remove(credential_id)
        logger.debug("Credential deleted: user=%s id=%s", user_id, credential_id)

    def list_credentials(self, session_token: str, user_id: str) -> list[CredentialRecord]:
        """Return the user's records, sealed."""
        self._authorize(session_token, user_id)
        return self._store.list_for_owner(user_id)

    def reveal(self, session_token: str, user_id: str, credential_id: str) -> str:
        """Open one credential's envelope and return the password.

        Raises:
            CredentialNotFoundError: If the record is missing or not owned.
            KeyDerivationError: If the session is not valid.
            DecryptionError: If the envelope does not open under the key.
        """
        self._authorize(session_token, user_id)
        key = self._deriver.derive_key(session_token, user_id)
        record = self._owned(user_id, credential_id)
        secret = self._cipher.open(record.envelope, key)
        logger.debug("Credential revealed: user=%s id=%s", user_id, credential_id)
        return secret
