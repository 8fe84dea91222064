"""
Vault Crypto Core — Key stretching, AES primitives and hex encoding helpers.

Implements the building blocks of the credential envelope scheme:
- Key stretching: PBKDF2-HMAC-SHA256(material, salt, 100000) → 32-byte key
- Confidentiality: AES-256-CBC + PKCS#7 → ciphertext
- Authenticated alternative: AES-256-GCM → ciphertext + 16-byte tag

Security Note:
    Never log keys, plaintext or ciphertext values.
    IVs are random 128-bit values; collision probability negligible under
    normal usage.
"""
import os
import binascii

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

IV_SIZE = 16  # 128-bit IV, one AES block
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16  # GCM tag
SALT_LENGTH = 32
BLOCK_BITS = 128


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------

def to_hex(data: bytes) -> str:
    """Encode bytes as a lowercase hex string."""
    return data.hex()


def from_hex(value: str) -> bytes:
    """Decode a hex string into bytes.

    Raises:
        ValueError: If value is not a string of hex digit pairs.
    """
    if not isinstance(value, str):
        raise ValueError("hex value must be a string")
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError) as err:
        raise ValueError("value is not valid hex") from err


def random_iv() -> bytes:
    """Return a fresh random 16-byte IV."""
    return os.urandom(IV_SIZE)


def random_salt() -> bytes:
    """Return a fresh random 32-byte salt."""
    return os.urandom(SALT_LENGTH)


# ---------------------------------------------------------------------------
# Key stretching
# ---------------------------------------------------------------------------

def pbkdf2_sha256(material: bytes, salt: bytes, iterations: int) -> bytes:
    """Stretch key material into a 32-byte key with PBKDF2-HMAC-SHA256.

    Args:
        material: Input key material.
        salt: Salt bytes.
        iterations: PBKDF2 iteration count.

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(material)


# ---------------------------------------------------------------------------
# AES-256-CBC (PKCS#7)
# ---------------------------------------------------------------------------

def cbc_encrypt(plaintext: bytes, key: bytes, iv: bytes) -> bytes:
    """Pad with PKCS#7 and encrypt with AES-256-CBC."""
    padder = padding.PKCS7(BLOCK_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def cbc_decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt AES-256-CBC and strip PKCS#7 padding.

    Raises:
        ValueError: If the ciphertext is not block-aligned or the padding is
            invalid (the usual symptom of a wrong key or IV).
    """
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


# ---------------------------------------------------------------------------
# AES-256-GCM
# ---------------------------------------------------------------------------

def gcm_encrypt(plaintext: bytes, key: bytes, iv: bytes) -> tuple[bytes, bytes]:
    """Encrypt with AES-256-GCM.

    Returns:
        Tuple of (ciphertext, 16-byte tag).
    """
    sealed = AESGCM(key).encrypt(iv, plaintext, None)
    return sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]


def gcm_decrypt(ciphertext: bytes, tag: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt and authenticate AES-256-GCM.

    Raises:
        cryptography.exceptions.InvalidTag: If the ciphertext, IV or tag were
            altered or the key is wrong.
    """
    return AESGCM(key).decrypt(iv, ciphertext + tag, None)
