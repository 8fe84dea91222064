"""SecurePass Vault exceptions.

Messages never carry key material, plaintext secrets or the signing secret.
Callers map them to a non-revealing response.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class KeyDerivationError(VaultError):
    """The per-user key could not be derived (bad session, bad user id)."""


class EncryptionError(VaultError):
    """The cipher primitive failed while sealing a secret."""


class DecryptionError(VaultError):
    """An envelope could not be opened with the given key."""


class InvalidSessionError(VaultError):
    """A session token is malformed, expired, forged or revoked."""


class AuthenticationError(VaultError):
    """Email or master password did not match."""


class AccountExistsError(VaultError):
    """An account is already registered under this email."""


class CredentialNotFoundError(VaultError, KeyError):
    """No credential with this id belongs to the acting user."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class DuplicateCredentialError(VaultError):
    """The owner already stores a credential for this website and username."""
