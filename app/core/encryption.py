"""
Encryption at rest for stored credentials.

Service-account JSON and OAuth tokens are encrypted before they are written
to the database and decrypted only when a Google API call needs them.

Format:
=======
    "<iv hex>:<ciphertext hex>"

AES-256-CBC with PKCS7 padding and a fresh random 16-byte IV per call, so
encrypting the same plaintext twice gives two different strings.

The key is the first 64 hex characters of settings.ENCRYPTION_KEY. It is read
on every call rather than at import time, so tests can patch the setting.
"""

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.core.config import settings

IV_LENGTH = 16
KEY_HEX_LENGTH = 64


class EncryptionError(Exception):
    """Raised when the key is unusable or a stored value cannot be decrypted."""
    pass


def _get_key() -> bytes:
    key_hex = settings.ENCRYPTION_KEY
    if not key_hex:
        raise EncryptionError("ENCRYPTION_KEY is not configured")
    if len(key_hex) < KEY_HEX_LENGTH:
        raise EncryptionError(
            f"ENCRYPTION_KEY must be at least {KEY_HEX_LENGTH} hex characters"
        )
    try:
        return bytes.fromhex(key_hex[:KEY_HEX_LENGTH])
    except ValueError as exc:
        raise EncryptionError("ENCRYPTION_KEY must be a hex string") from exc


def encrypt(plaintext: str) -> str:
    """
    Encrypt a UTF-8 string.

    Returns:
        "ivHex:cipherHex"

    Raises:
        EncryptionError: If the key is missing or invalid
    """
    key = _get_key()
    iv = os.urandom(IV_LENGTH)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return f"{iv.hex()}:{ciphertext.hex()}"


def decrypt(value: str) -> str:
    """
    Decrypt a value produced by encrypt().

    Raises:
        EncryptionError: If the value is malformed, the key is wrong,
            or the key is missing
    """
    key = _get_key()

    parts = value.split(":") if value else []
    if len(parts) != 2:
        raise EncryptionError("Invalid encrypted value format")

    try:
        iv = bytes.fromhex(parts[0])
        ciphertext = bytes.fromhex(parts[1])
    except ValueError as exc:
        raise EncryptionError("Invalid encrypted value format") from exc

    if len(iv) != IV_LENGTH or not ciphertext:
        raise EncryptionError("Invalid encrypted value format")

    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        raise EncryptionError(f"Decryption failed: {exc}") from exc
