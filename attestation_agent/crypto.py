"""Decryption of image layer key material (PLBCO) with the supported wrap types."""

from __future__ import annotations

from enum import Enum

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

_KEY_LENGTH = 32
_TAG_LENGTH = 16


class DecryptionError(Exception):
    """Raised when data cannot be decrypted."""


class WrapType(str, Enum):
    """Encryption scheme used to wrap the optsdata, named as in RFC 7518 5.2.6."""

    AES256_GCM = "A256GCM"
    # Not recommended: it is not AEAD.
    AES256_CTR = "A256CTR"


def _check_key(key: bytes, scheme: str) -> None:
    if len(key) != _KEY_LENGTH:
        raise DecryptionError(
            f"{scheme} decrypt failed: key must be {_KEY_LENGTH} bytes, got {len(key)}"
        )


def decrypt_aes256_gcm(encrypted_data: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt AES-256-GCM data whose 16-byte tag is appended to the ciphertext."""
    if len(encrypted_data) < _TAG_LENGTH:
        raise DecryptionError("Illegal length of ciphertext")
    _check_key(key, "aes-256-gcm")
    try:
        return AESGCM(bytes(key)).decrypt(bytes(iv), bytes(encrypted_data), None)
    except InvalidTag as exc:
        raise DecryptionError("aes-256-gcm decrypt failed: authentication failed") from exc
    except ValueError as exc:
        raise DecryptionError(f"aes-256-gcm decrypt failed: {exc}") from exc


def decrypt_aes256_ctr(encrypted_data: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt AES-256-CTR data with a big-endian 128-bit counter block."""
    _check_key(key, "aes-256-ctr")
    try:
        decryptor = Cipher(algorithms.AES(bytes(key)), modes.CTR(bytes(iv))).decryptor()
    except ValueError as exc:
        raise DecryptionError(f"aes-256-ctr decrypt failed: {exc}") from exc
    return decryptor.update(bytes(encrypted_data)) + decryptor.finalize()


_DECRYPTORS = {
    WrapType.AES256_GCM: decrypt_aes256_gcm,
    WrapType.AES256_CTR: decrypt_aes256_ctr,
}


def decrypt(key: bytes, ciphertext: bytes, iv: bytes, wrap_type: str | WrapType) -> bytes:
    """Decrypt ``ciphertext`` with the scheme named by ``wrap_type``."""
    try:
        scheme = WrapType(wrap_type)
    except ValueError as exc:
        raise DecryptionError(
            f"Unsupported wrap type {wrap_type} when decrypt image layer"
        ) from exc
    return _DECRYPTORS[scheme](ciphertext, key, iv)