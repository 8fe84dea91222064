"""
Tests for the vault crypto primitives.

Tests cover:
- Hex encoding helpers
- PBKDF2-HMAC-SHA256 key stretching against hashlib
- AES-256-CBC and AES-256-GCM primitives
"""
import hashlib

import pytest
from cryptography.exceptions import InvalidTag

from securepass_vault.vault.crypto import (
    IV_SIZE,
    KEY_LENGTH,
    TAG_SIZE,
    cbc_decrypt,
    cbc_encrypt,
    from_hex,
    gcm_decrypt,
    gcm_encrypt,
    pbkdf2_sha256,
    random_iv,
    random_salt,
    to_hex,
)


@pytest.fixture
def key():
    return bytes(range(KEY_LENGTH))


@pytest.fixture
def iv():
    return bytes(range(16, 16 + IV_SIZE))


class TestHexHelpers:
    """Tests for hex encoding and decoding."""

    def test_to_hex_is_lowercase(self):
        """Test hex output is lowercase."""
        assert to_hex(b"\xab\xcd\xef") == "abcdef"

    def test_from_hex_accepts_lowercase(self):
        """Test decoding a lowercase hex string."""
        assert from_hex("00ff10") == b"\x00\xff\x10"

    def test_from_hex_rejects_odd_length(self):
        """Test odd-length hex is rejected."""
        with pytest.raises(ValueError):
            from_hex("abc")

    def test_from_hex_rejects_non_hex(self):
        """Test non-hex characters are rejected."""
        with pytest.raises(ValueError):
            from_hex("zz")

    def test_from_hex_rejects_non_string(self):
        """Test non-string input is rejected."""
        with pytest.raises(ValueError):
            from_hex(b"00")

    def test_random_sizes(self):
        """Test random IV and salt sizes."""
        assert len(random_iv()) == 16
        assert len(random_salt()) == 32


class TestPbkdf2:
    """Tests for PBKDF2 key stretching."""

    def test_matches_hashlib(self):
        """Test output matches an independent PBKDF2 implementation."""
        material = b"server-secret" + b"user-1"
        salt = b"0" * 26 + b"user-1"
        expected = hashlib.pbkdf2_hmac("sha256", material, salt, 1000, 32)
        assert pbkdf2_sha256(material, salt, 1000) == expected

    def test_length(self):
        """Test the derived key is 32 bytes."""
        assert len(pbkdf2_sha256(b"m", b"s" * 32, 10)) == KEY_LENGTH


class TestCbc:
    """Tests for the AES-256-CBC primitive."""

    def test_ciphertext_is_block_aligned(self, key, iv):
        """Test PKCS#7 padding produces whole blocks."""
        assert len(cbc_encrypt(b"", key, iv)) == 16
        assert len(cbc_encrypt(b"a" * 16, key, iv)) == 32

    def test_decrypt_recovers_plaintext(self, key, iv):
        """Test CBC decrypt reverses encrypt."""
        ct = cbc_encrypt(b"hunter2", key, iv)
        assert cbc_decrypt(ct, key, iv) == b"hunter2"

    def test_unaligned_ciphertext_raises(self, key, iv):
        """Test truncated ciphertext raises ValueError."""
        ct = cbc_encrypt(b"hunter2", key, iv)
        with pytest.raises(ValueError):
            cbc_decrypt(ct[:-1], key, iv)


class TestGcm:
    """Tests for the AES-256-GCM primitive."""

    def test_tag_size(self, key, iv):
        """Test the tag is split off as 16 bytes."""
        ct, tag = gcm_encrypt(b"hunter2", key, iv)
        assert len(tag) == TAG_SIZE
        assert len(ct) == len(b"hunter2")

    def test_decrypt_recovers_plaintext(self, key, iv):
        """Test GCM decrypt reverses encrypt."""
        ct, tag = gcm_encrypt(b"hunter2", key, iv)
        assert gcm_decrypt(ct, tag, key, iv) == b"hunter2"

    def test_tampered_tag_raises(self, key, iv):
        """Test a flipped tag bit fails authentication."""
        ct, tag = gcm_encrypt(b"hunter2", key, iv)
        bad_tag = bytes([tag[0] ^ 1]) + tag[1:]
        with pytest.raises(InvalidTag):
            gcm_decrypt(ct, bad_tag, key, iv)
