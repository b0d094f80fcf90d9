import os

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from attestation_agent.crypto import (
    DecryptionError,
    WrapType,
    decrypt,
    decrypt_aes256_ctr,
    decrypt_aes256_gcm,
)

PLAINTEXT = b"plaintext message"


def _ctr_encrypt(data, key, iv):
    enc = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
    return enc.update(data) + enc.finalize()


def test_gcm_compatible():
    key = AESGCM.generate_key(bit_length=256)
    nonce = b"unique nonce"
    ciphertext = AESGCM(key).encrypt(nonce, PLAINTEXT, None)
    assert decrypt_aes256_gcm(ciphertext, key, nonce) == PLAINTEXT


def test_ctr_compatible():
    key = bytes([0x42] * 32)
    iv = bytes([0x24] * 16)
    ciphertext = _ctr_encrypt(PLAINTEXT, key, iv)
    assert decrypt_aes256_ctr(ciphertext, key, iv) == PLAINTEXT


def test_gcm_short_ciphertext():
    with pytest.raises(DecryptionError, match="Illegal length of ciphertext"):
        decrypt_aes256_gcm(b"short", bytes(32), bytes(12))


def test_gcm_tampered_ciphertext():
    key = bytes(32)
    nonce = bytes(12)
    ciphertext = bytearray(AESGCM(key).encrypt(nonce, PLAINTEXT, None))
    ciphertext[0] ^= 1
    with pytest.raises(DecryptionError):
        decrypt_aes256_gcm(bytes(ciphertext), key, nonce)


def test_wrong_key_length():
    with pytest.raises(DecryptionError):
        decrypt_aes256_ctr(PLAINTEXT, bytes(16), bytes(16))


def test_wrap_type_values():
    assert WrapType("A256GCM") is WrapType.AES256_GCM
    assert WrapType("A256CTR") is WrapType.AES256_CTR


@pytest.mark.parametrize("wrap_type", ["A256GCM", WrapType.AES256_GCM])
def test_decrypt_dispatch_gcm(wrap_type):
    key = os.urandom(32)
    iv = os.urandom(12)
    ciphertext = AESGCM(key).encrypt(iv, PLAINTEXT, None)
    assert decrypt(key, ciphertext, iv, wrap_type) == PLAINTEXT


def test_decrypt_dispatch_ctr():
    key = os.urandom(32)
    iv = os.urandom(16)
    ciphertext = _ctr_encrypt(PLAINTEXT, key, iv)
    assert decrypt(key, ciphertext, iv, "A256CTR") == PLAINTEXT


def test_decrypt_unsupported_wrap_type():
    with pytest.raises(DecryptionError, match="Unsupported wrap type A128GCM"):
        decrypt(bytes(32), b"", bytes(12), "A128GCM")