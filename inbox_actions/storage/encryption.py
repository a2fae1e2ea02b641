"""
Secret Encryption Utilities

Symmetric encryption of mailbox secrets (OAuth tokens, IMAP passwords)
before they reach the database.

Design Considerations:
- Fernet (AES-128-CBC + HMAC) from ``cryptography``
- Key from ``TOKEN_ENCRYPTION_KEY``, or derived from ``SECRET_KEY`` with PBKDF2
- The cipher is built lazily so importing this module never fails
"""

import base64
import logging
import os
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

_KDF_SALT = b"inbox-actions-secrets"

_cipher: Optional[Fernet] = None


def get_encryption_key() -> bytes:
    """
    Resolve the Fernet key.

    ``TOKEN_ENCRYPTION_KEY`` must be a urlsafe base64 Fernet key. Without it,
    the key is derived from ``SECRET_KEY``; without either, a random key is
    generated and secrets will not survive a restart.

    Returns:
        bytes: Fernet key
    """
    key_str = os.getenv("TOKEN_ENCRYPTION_KEY")
    if key_str:
        try:
            Fernet(key_str.encode("utf-8"))
            return key_str.encode("utf-8")
        except (ValueError, TypeError) as e:
            logger.warning(f"Invalid TOKEN_ENCRYPTION_KEY format, falling back: {str(e)}")

    secret = os.getenv("SECRET_KEY")
    if secret:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=_KDF_SALT,
            iterations=100000,
        )
        return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))

    logger.warning(
        "Using dynamically generated encryption key. Set TOKEN_ENCRYPTION_KEY "
        "environment variable for persistent encryption."
    )
    return Fernet.generate_key()


def _get_cipher() -> Fernet:
    global _cipher
    if _cipher is None:
        _cipher = Fernet(get_encryption_key())
    return _cipher


def reset_cipher() -> None:
    """Forget the cached cipher so the next call re-reads the environment."""
    global _cipher
    _cipher = None


def encrypt_value(value: Union[str, bytes, None]) -> Optional[str]:
    """
    Encrypt a secret.

    Args:
        value: String or bytes value to encrypt

    Returns:
        str: Fernet token, or None for None input

    Raises:
        ValueError: If encryption fails
    """
    if value is None:
        return None

    value_bytes = value.encode("utf-8") if isinstance(value, str) else value
    try:
        return _get_cipher().encrypt(value_bytes).decode("utf-8")
    except (TypeError, ValueError) as e:
        logger.error(f"Encryption error: {str(e)}")
        raise ValueError(f"Failed to encrypt value: {str(e)}")


def decrypt_value(encrypted_value: Optional[str]) -> Optional[str]:
    """
    Decrypt a secret produced by ``encrypt_value``.

    Raises:
        ValueError: If the token is invalid or was encrypted with another key
    """
    if encrypted_value is None:
        return None

    try:
        return _get_cipher().decrypt(encrypted_value.encode("utf-8")).decode("utf-8")
    except (InvalidToken, TypeError, ValueError) as e:
        logger.error(f"Decryption error: {type(e).__name__}")
        raise ValueError("Failed to decrypt value")
