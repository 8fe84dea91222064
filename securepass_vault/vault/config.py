"""
Vault Configuration — Signing secret loading and validated settings.

Reads settings from environment variables:
    VAULT_SIGNING_SECRET = <server-wide signing secret> (fallback: JWT_SECRET)
    VAULT_KDF_ITERATIONS = <integer, default 100000>
    VAULT_CIPHER_BACKEND = aes-cbc | aes-gcm
    VAULT_SESSION_TTL = <seconds, default 3600>

The signing secret is loaded once at process startup and injected into the
components that need it; nothing reads it from the environment per request.

Security Note:
    Never log the signing secret. Only log setting names and backends.
    Secrets shorter than 32 characters are refused.
"""
import os
import secrets
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("securepass.vault")

DEFAULT_KDF_ITERATIONS = 100_000
CIPHER_BACKENDS = ("aes-cbc", "aes-gcm")
# HMAC session signing needs a key at least as long as the SHA-256 output
MIN_SECRET_LENGTH = 32


def load_signing_secret() -> str:
    """Load the server-wide signing secret from the environment.

    Returns:
        The signing secret string.

    Raises:
        RuntimeError: If neither VAULT_SIGNING_SECRET nor JWT_SECRET is set.
    """
    secret = os.environ.get("VAULT_SIGNING_SECRET") or os.environ.get("JWT_SECRET")
    if not secret:
        raise RuntimeError(
            "No signing secret found in environment. "
            "Set VAULT_SIGNING_SECRET=<random secret>"
        )
    return secret


def generate_signing_secret() -> str:
    """Generate a random url-safe signing secret (48 bytes of entropy).

    This is a utility for operators to generate new secrets.
    """
    return secrets.token_urlsafe(48)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    signing_secret: str = Field(min_length=MIN_SECRET_LENGTH, repr=False)
    kdf_iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=1)
    cipher_backend: str = Field(default="aes-cbc")
    session_ttl: int = Field(default=3600, ge=60)
    token_algorithm: str = Field(default="HS256")
    max_credentials_per_user: int = Field(default=500, ge=1, le=10000)

    model_config = {"frozen": True}

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("token_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Session tokens are signed with the shared secret, so only HMAC."""
        if v not in ("HS256", "HS384", "HS512"):
            raise ValueError(f"Unsupported token algorithm: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            signing_secret=load_signing_secret(),
            kdf_iterations=int(
                os.environ.get("VAULT_KDF_ITERATIONS", DEFAULT_KDF_ITERATIONS)
            ),
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aes-cbc"),
            session_ttl=int(os.environ.get("VAULT_SESSION_TTL", 3600)),
        )
        logger.debug(
            "Vault config loaded: backend=%s iterations=%d ttl=%d",
            config.cipher_backend, config.kdf_iterations, config.session_ttl,
        )
        return config
