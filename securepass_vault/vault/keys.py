"""
Key Material Derivation — Rebuilds a user's envelope key on every request.

    salt     = user_id left-padded with '0' to 32 chars, cut to 32 bytes
    material = signing_secret || user_id   (UTF-8)
    key      = PBKDF2-HMAC-SHA256(material, salt, 100000, 32)

Keys are never cached or stored; each request derives its own.

Security Note (known weakness):
    The key depends only on the server signing secret and the user id, never
    on the master password. Anyone holding the signing secret can rebuild
    every user's key without knowing a single master password. The default
    deriver keeps this scheme because existing envelopes were sealed with it;
    ``MasterPasswordKeyDeriver`` is the corrected derivation for new
    deployments. It needs the master password once per session; the
    resulting key is held by ``SessionKeyring`` under the session's ``jti``
    and dropped on logout or expiry.
"""
import time
import logging
from typing import Union

from ..exceptions import InvalidSessionError, KeyDerivationError
from .session import SessionTokens
from .config import VaultConfig
from .crypto import SALT_LENGTH, pbkdf2_sha256

logger = logging.getLogger("securepass.vault")


def user_salt(user_id: str) -> bytes:
    """Build the per-user salt: '0'-padded user id, exactly 32 bytes."""
    padded = user_id.rjust(SALT_LENGTH, "0")[:SALT_LENGTH]
    return padded.encode("utf-8")[:SALT_LENGTH]


class KeyDeriver:
    """Derives per-user envelope keys from a verified session.

    The signing secret comes from the injected ``VaultConfig``; it is never
    read from process-wide state.
    """

    def __init__(self, config: VaultConfig, tokens: SessionTokens | None = None):
        self._secret = config.signing_secret
        self._iterations = config.kdf_iterations
        self._tokens = tokens or SessionTokens(config)

    @property
    def tokens(self) -> SessionTokens:
        return self._tokens

    def derive_key(self, session_token: str, user_id: str) -> bytes:
        """Verify the session and return the 32-byte key for user_id.

        Only the token's signature, expiry and revocation state are checked;
        no claim is read out of it.

        Raises:
            KeyDerivationError: On an invalid session or an empty user id.
        """
        try:
            self._tokens.verify(session_token)
        except InvalidSessionError as err:
            raise KeyDerivationError("invalid session") from err
        return self.key_for(user_id)

    def key_for(self, user_id: str) -> bytes:
        """Derive the key for user_id without a session check.

        Used by maintenance jobs (key rotation) that run outside a request.
        """
        if not user_id or not isinstance(user_id, str):
            raise KeyDerivationError("invalid user id")
        material = (self._secret + user_id).encode("utf-8")
        try:
            key = pbkdf2_sha256(material, user_salt(user_id), self._iterations)
        except Exception as err:
            raise KeyDerivationError("key derivation failed") from err
        logger.debug("Derived envelope key for user=%s", user_id)
        return key


class MasterPasswordKeyDeriver:
    """Derives envelope keys from the master password and a stored salt."""

    def __init__(self, iterations: int = 100_000):
        self._iterations = iterations

    def derive_key(self, master_password: str, salt: bytes) -> bytes:
        if not master_password:
            raise KeyDerivationError("invalid master password")
        if len(salt) != SALT_LENGTH:
            raise KeyDerivationError("invalid key salt")
        try:
            key = pbkdf2_sha256(
                master_password.encode("utf-8"), salt, self._iterations,
            )
        except Exception as err:
            raise KeyDerivationError("key derivation failed") from err
        return key


class SessionKeyring:
    """Master-password keys held only for the lifetime of a session.

    ``open_session`` derives the key once, at login, and keeps it under the
    token's ``jti`` until ``close_session`` or the token's expiry. Its
    ``derive_key`` has the same signature as ``KeyDeriver.derive_key`` so a
    ``CredentialVault`` can use either.
    """

    def __init__(self, config: VaultConfig, tokens: SessionTokens | None = None):
        self._tokens = tokens or SessionTokens(config)
        self._deriver = MasterPasswordKeyDeriver(config.kdf_iterations)
        self._keys: dict[str, tuple[bytes, int]] = {}

    @property
    def tokens(self) -> SessionTokens:
        return self._tokens

    def _claims(self, session_token: str) -> dict:
        try:
            return self._tokens.verify(session_token)
        except InvalidSessionError as err:
            raise KeyDerivationError("invalid session") from err

    def _purge(self) -> None:
        now = int(time.time())
        for jti in [j for j, (_, exp) in self._keys.items() if exp <= now]:
            del self._keys[jti]

    def open_session(self, session_token: str, master_password: str, salt: bytes) -> None:
        """Derive the key from the master password and hold it for the session.

        Raises:
            KeyDerivationError: Invalid session, empty password or bad salt.
        """
        claims = self._claims(session_token)
        key = self._deriver.derive_key(master_password, salt)
        self._purge()
        self._keys[claims["jti"]] = (key, claims["exp"])
        logger.debug("Session key opened for user=%s", claims["sub"])

    def close_session(self, session_token: str) -> None:
        """Forget the session's key. Unknown or invalid tokens are ignored."""
        try:
            claims = self._tokens.verify(session_token)
        except InvalidSessionError:
            return
        self._keys.pop(claims["jti"], None)

    def has_session(self, session_token: str) -> bool:
        try:
            claims = self._tokens.verify(session_token)
        except InvalidSessionError:
            return False
        return claims["jti"] in self._keys

    def derive_key(self, session_token: str, user_id: str) -> bytes:
        """Return the key held for this session.

        Raises:
            KeyDerivationError: Invalid session, empty user id, or no key
                opened for the session.
        """
        claims = self._claims(session_token)
        if not user_id or not isinstance(user_id, str):
            raise KeyDerivationError("invalid user id")
        self._purge()
        entry = self._keys.get(claims["jti"])
        if entry is None:
            raise KeyDerivationError("no key for session")
        return entry[0]

    def __len__(self) -> int:
        self._purge()
        return len(self._keys)


KeySource = Union[KeyDeriver, SessionKeyring]
