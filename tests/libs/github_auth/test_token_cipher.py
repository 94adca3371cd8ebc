"""Tests for AES-256-GCM token encryption with key rotation."""

import base64
import os

import pytest
from cryptography.exceptions import InvalidTag

from libs.github_auth.token_cipher import TokenCipher


def test_encrypt_decrypt_roundtrip():
    cipher = TokenCipher(os.urandom(32))

    encrypted = cipher.encrypt("gho_secret")

    assert encrypted != "gho_secret"
    assert "gho_secret" not in encrypted
    assert cipher.decrypt(encrypted) == "gho_secret"


def test_nonce_makes_ciphertexts_differ():
    cipher = TokenCipher(os.urandom(32))

    assert cipher.encrypt("gho_secret") != cipher.encrypt("gho_secret")


def test_secondary_key_decrypts_after_rotation():
    old_key = os.urandom(32)
    encrypted = TokenCipher(old_key).encrypt("gho_secret")

    rotated = TokenCipher(os.urandom(32), secondary_key=old_key)

    assert rotated.decrypt(encrypted) == "gho_secret"


def test_wrong_key_raises_invalid_tag():
    encrypted = TokenCipher(os.urandom(32)).encrypt("gho_secret")

    with pytest.raises(InvalidTag):
        TokenCipher(os.urandom(32)).decrypt(encrypted)


@pytest.mark.parametrize("length", [0, 16, 31, 33])
def test_primary_key_must_be_32_bytes(length):
    with pytest.raises(ValueError, match="32 bytes"):
        TokenCipher(b"k" * length)


def test_secondary_key_must_be_32_bytes():
    with pytest.raises(ValueError, match="Secondary key"):
        TokenCipher(os.urandom(32), secondary_key=b"short")


def test_from_base64():
    key = os.urandom(32)
    cipher = TokenCipher.from_base64(base64.b64encode(key).decode())

    assert TokenCipher(key).decrypt(cipher.encrypt("t")) == "t"


def test_from_base64_rejects_garbage():
    with pytest.raises(ValueError, match="SESSION_ENCRYPTION_KEY"):
        TokenCipher.from_base64("not base64!!")
