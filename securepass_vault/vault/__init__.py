"""Credential Vault — Per-user encryption at rest for stored credentials.

Security Note (Threat Model):
    Envelope keys are derived from the server signing secret and the user
    id, not from the master password. Whoever holds the signing secret can
    derive every user's key. ``SessionKeyring`` (master-password keys held
    per session) and the ``aes-gcm`` backend are the opt-in corrections (see ``keys.py`` and ``envelope.py``).
    Decrypted secrets exist in process memory while a request is served.
"""

from .config import VaultConfig, load_signing_secret, generate_signing_secret
from .session import SessionTokens
from .keys import KeyDeriver, MasterPasswordKeyDeriver, SessionKeyring, user_salt
from .envelope import Envelope, EnvelopeCipher, seal, open_envelope
from .credentials import CredentialRecord, CredentialVault, InMemoryCredentialStore
from .key_rotation import rotate_user_key, rotate_signing_secret

__all__ = [
    "VaultConfig",
    "load_signing_secret",
    "generate_signing_secret",
    "SessionTokens",
    "KeyDeriver",
    "MasterPasswordKeyDeriver",
    "SessionKeyring",
    "user_salt",
    "Envelope",
    "EnvelopeCipher",
    "seal",
    "open_envelope",
    "CredentialRecord",
    "CredentialVault",
    "InMemoryCredentialStore",
    "rotate_user_key",
    "rotate_signing_secret",
]
