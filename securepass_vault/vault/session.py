"""
Session tokens — the authenticated identity presented on every request.

A session token is an HMAC-signed JWT carrying the user id (``sub``), issue
and expiry times and a unique token id (``jti``). Logging out revokes the
``jti`` for the rest of the process lifetime.
"""
import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from ..exceptions import InvalidSessionError
from .config import VaultConfig

logger = logging.getLogger("securepass.vault")

_REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti"]


class SessionTokens:
    """Issue, verify and revoke session tokens signed with the vault secret."""

    def __init__(self, config: VaultConfig):
        self._secret = config.signing_secret
        self._algorithm = config.token_algorithm
        self._ttl = config.session_ttl
        self._revoked: set[str] = set()

    def issue(self, user_id: str) -> str:
        """Create a session token for user_id, valid for the configured TTL."""
        if not user_id:
            raise ValueError("Session user id cannot be empty")
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(seconds=self._ttl),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """Verify signature, expiry and revocation of a session token.

        Returns:
            The decoded claims.

        Raises:
            InvalidSessionError: If the token cannot be trusted.
        """
        if not token or not isinstance(token, str):
            raise InvalidSessionError("invalid session")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as err:
            raise InvalidSessionError("session expired") from err
        except jwt.InvalidTokenError as err:
            raise InvalidSessionError("invalid session") from err
        if claims["jti"] in self._revoked:
            raise InvalidSessionError("session revoked")
        return claims

    def revoke(self, token: str) -> None:
        """Invalidate a session token (logout).

        Tokens that already fail verification need no revocation.
        """
        try:
            claims = self.verify(token)
        except InvalidSessionError:
            return
        self._revoked.add(claims["jti"])
        logger.debug("Session revoked: user=%s", claims["sub"])

    def is_revoked(self, token_id: str) -> bool:
        return token_id in self._revoked
