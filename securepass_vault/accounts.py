"""
Accounts — Registration and login under a master password.

The master password is used to produce a verification hash and is never
retained. Login checks it against that hash and hands out a session token;
logout revokes the token. With a ``SessionKeyring`` attached, register and
login also derive the envelope key from the master password and the
account's ``key_salt``, and logout forgets it.
"""
import re
import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

from passlib.context import CryptContext
from pydantic import BaseModel, Field

from .exceptions import AccountExistsError, AuthenticationError
from .vault.config import VaultConfig
from .vault.crypto import random_salt
from .vault.keys import SessionKeyring
from .vault.session import SessionTokens

logger = logging.getLogger("securepass.accounts")

MIN_PASSWORD_LENGTH = 8

_EMAIL_PATTERN = re.compile(r"^\w+([.+-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,})+$")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class Account(BaseModel):
    """A registered vault user."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    email: str
    master_password_hash: str = Field(repr=False)
    key_salt: bytes = Field(default_factory=random_salt, repr=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_public(self) -> dict:
        """Account data without the password hash or key salt."""
        return {
            "id": self.id,
            "email": self.email,
            "createdAt": self.created_at.isoformat(),
        }


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AccountRegistry:
    """In-process account directory issuing session tokens."""

    def __init__(
        self,
        config: VaultConfig,
        tokens: Optional[SessionTokens] = None,
        keyring: Optional[SessionKeyring] = None,
    ):
        if tokens is None and keyring is not None:
            tokens = keyring.tokens
        self._tokens = tokens or SessionTokens(config)
        if keyring is not None and keyring.tokens is not self._tokens:
            raise ValueError("keyring must share the registry's session tokens")
        self._keyring = keyring
        self._accounts: dict[str, Account] = {}

    @property
    def tokens(self) -> SessionTokens:
        return self._tokens

    @property
    def keyring(self) -> Optional[SessionKeyring]:
        return self._keyring

    def _start_session(self, account: Account, master_password: str) -> str:
        token = self._tokens.issue(account.id)
        if self._keyring is not None:
            self._keyring.open_session(token, master_password, account.key_salt)
        return token

    def find_by_email(self, email: str) -> Optional[Account]:
        email = normalize_email(email)
        for account in self._accounts.values():
            if account.email == email:
                return account
        return None

    def get(self, user_id: str) -> Optional[Account]:
        return self._accounts.get(user_id)

    def register(self, email: str, master_password: str) -> str:
        """Create an account and return a session token for it.

        Raises:
            ValueError: Invalid email or master password too short.
            AccountExistsError: Email already registered.
        """
        email = normalize_email(email)
        if not _EMAIL_PATTERN.match(email):
            raise ValueError("Please enter a valid email")
        if not master_password or len(master_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if self.find_by_email(email) is not None:
            raise AccountExistsError("User already exists")

        account = Account(
            email=email,
            master_password_hash=pwd_context.hash(master_password),
        )
        self._accounts[account.id] = account
        logger.info("Account registered: user=%s", account.id)
        return self._start_session(account, master_password)

    def authenticate(self, email: str, master_password: str) -> Account:
        """Return the account whose master password matches.

        Raises:
            AuthenticationError: Unknown email or wrong password.
        """
        account = self.find_by_email(email)
        if account is None or not master_password:
            raise AuthenticationError("Invalid credentials")
        if not pwd_context.verify(master_password, account.master_password_hash):
            logger.debug("Failed login for user=%s", account.id)
            raise AuthenticationError("Invalid credentials")
        return account

    def login(self, email: str, master_password: str) -> str:
        account = self.authenticate(email, master_password)
        logger.debug("Login: user=%s", account.id)
        return self._start_session(account, master_password)

    def logout(self, session_token: str) -> None:
        if self._keyring is not None:
            self._keyring.close_session(session_token)
        self._tokens.revoke(session_token)
