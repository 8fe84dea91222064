"""SecurePass Vault.

Per-user encryption at rest for a personal credential vault.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    KeyDerivationError,
    EncryptionError,
    DecryptionError,
    InvalidSessionError,
    AuthenticationError,
    AccountExistsError,
    CredentialNotFoundError,
    DuplicateCredentialError,
)
from .vault import (
    VaultConfig,
    SessionTokens,
    KeyDeriver,
    MasterPasswordKeyDeriver,
    SessionKeyring,
    Envelope,
    EnvelopeCipher,
    seal,
    open_envelope,
    CredentialRecord,
    CredentialVault,
    InMemoryCredentialStore,
)
from .accounts import Account, AccountRegistry

__all__ = [
    "__version__",
    "VaultError",
    "KeyDerivationError",
    "EncryptionError",
    "DecryptionError",
    "InvalidSessionError",
    "AuthenticationError",
    "AccountExistsError",
    "CredentialNotFoundError",
    "DuplicateCredentialError",
    "VaultConfig",
    "SessionTokens",
    "KeyDeriver",
    "MasterPasswordKeyDeriver",
    "SessionKeyring",
    "Envelope",
    "EnvelopeCipher",
    "seal",
    "open_envelope",
    "CredentialRecord",
    "CredentialVault",
    "InMemoryCredentialStore",
    "Account",
    "AccountRegistry",
]
