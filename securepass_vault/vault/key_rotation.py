"""
Vault Key Rotation — Re-sealing of stored envelopes under new key material.

Opens every envelope of a user with the old key and seals it again with the
new key (and, optionally, a new cipher backend) in batches. A record that
fails to open is left untouched and counted as an error, so a rotation can
be re-run.

``rotate_signing_secret`` re-seals every owner's records after the server
signing secret changes. It needs no master password at all, which is the
known weakness of the server-secret derivation (see ``keys.py``).

Security Note:
    Plaintext exists in memory only during re-sealing of each record.
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Optional

from ..exceptions import DecryptionError, EncryptionError
from .config import VaultConfig
from .credentials import InMemoryCredentialStore, _utcnow
from .envelope import EnvelopeCipher
from .keys import KeyDeriver

logger = logging.getLogger("securepass.vault")


def rotate_user_key(
    store: InMemoryCredentialStore,
    user_id: str,
    old_key: bytes,
    new_key: bytes,
    old_cipher: Optional[EnvelopeCipher] = None,
    new_cipher: Optional[EnvelopeCipher] = None,
    batch_size: int = 100,
) -> dict:
    """Re-seal all of user_id's envelopes from old_key to new_key.

    Args:
        store: Credential store holding the records.
        user_id: Owner whose records are rotated.
        old_key: Key the current envelopes were sealed with.
        new_key: Key to seal with.
        old_cipher: Cipher able to open the current envelopes (default CBC).
        new_cipher: Cipher to seal with (default: same as old_cipher).
        batch_size: Number of records processed per batch.

    Returns:
        Stats dict with keys: total, rotated, errors.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    old_cipher = old_cipher or EnvelopeCipher()
    new_cipher = new_cipher or old_cipher
    stats = {"total": 0, "rotated": 0, "errors": 0}

    records = store.list_for_owner(user_id)
    for offset in range(0, len(records), batch_size):
        batch = records[offset:offset + batch_size]
        logger.debug(
            "Rotating user=%s batch %d (%d records)",
            user_id, (offset // batch_size) + 1, len(batch),
        )
        for record in batch:
            stats["total"] += 1
            try:
                plaintext = old_cipher.open(record.envelope, old_key)
                envelope = new_cipher.seal(plaintext, new_key)
            except (DecryptionError, EncryptionError) as err:
                logger.error(
                    "Error rotating credential id=%s user=%s: %s",
                    record.id, user_id, err,
                )
                stats["errors"] += 1
                continue
            store.replace(record.model_copy(
                update={"envelope": envelope, "updated_at": _utcnow()}
            ))
            stats["rotated"] += 1

    logger.info("Key rotation for user=%s complete: %s", user_id, stats)
    return stats


def rotate_signing_secret(
    store: InMemoryCredentialStore,
    old_config: VaultConfig,
    new_config: VaultConfig,
    batch_size: int = 100,
) -> dict:
    """Re-seal every stored credential after a signing secret change.

    Also migrates envelopes when ``new_config.cipher_backend`` differs.

    Returns:
        Aggregated stats dict with keys: users, total, rotated, errors.
    """
    old_deriver = KeyDeriver(old_config)
    new_deriver = KeyDeriver(new_config)
    old_cipher = EnvelopeCipher(old_config.cipher_backend)
    new_cipher = EnvelopeCipher(new_config.cipher_backend)
    totals = {"users": 0, "total": 0, "rotated": 0, "errors": 0}

    logger.info(
        "Starting signing secret rotation (%s -> %s, batch_size=%d)",
        old_config.cipher_backend, new_config.cipher_backend, batch_size,
    )
    for user_id in store.owners():
        stats = rotate_user_key(
            store,
            user_id,
            old_deriver.key_for(user_id),
            new_deriver.key_for(user_id),
            old_cipher=old_cipher,
            new_cipher=new_cipher,
            batch_size=batch_size,
        )
        totals["users"] += 1
        for name, value in stats.items():
            totals[name] += value

    logger.info("Signing secret rotation complete: %s", totals)
    return totals
