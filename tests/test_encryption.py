"""
Tests for credential encryption at rest.
"""

import pytest

from app.core.config import settings
from app.core.encryption import EncryptionError, decrypt, encrypt


class TestEncryptDecrypt:

    def test_round_trip(self):
        """Should decrypt back to the original text, including non-ASCII."""
        plaintext = '{"private_key": "-----BEGIN KEY-----\\nabc", "name": "Müller"}'

        assert decrypt(encrypt(plaintext)) == plaintext

    def test_format_is_iv_and_ciphertext_hex(self):
        iv_hex, cipher_hex = encrypt("token").split(":")

        assert len(iv_hex) == 32
        assert len(cipher_hex) % 32 == 0
        bytes.fromhex(iv_hex)
        bytes.fromhex(cipher_hex)

    def test_fresh_iv_each_call(self):
        """Encrypting the same value twice gives two different strings."""
        first = encrypt("same secret")
        second = encrypt("same secret")

        assert first != second
        assert decrypt(first) == decrypt(second) == "same secret"

    def test_empty_string(self):
        assert decrypt(encrypt("")) == ""


class TestKeyValidation:

    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", "")

        with pytest.raises(EncryptionError, match="not configured"):
            encrypt("x")

    def test_short_key(self, monkeypatch):
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", "abcd")

        with pytest.raises(EncryptionError, match="64 hex"):
            encrypt("x")

    def test_non_hex_key(self, monkeypatch):
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", "z" * 64)

        with pytest.raises(EncryptionError, match="hex string"):
            encrypt("x")

    def test_only_first_64_characters_are_used(self, monkeypatch, encryption_key):
        value = encrypt("secret")
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", encryption_key + "ffff")

        assert decrypt(value) == "secret"

    def test_wrong_key_fails(self, monkeypatch):
        value = encrypt("secret")
        monkeypatch.setattr(settings, "ENCRYPTION_KEY", "f" * 64)

        # Either the padding check or UTF-8 decoding rejects the garbage
        with pytest.raises(EncryptionError):
            decrypt(value)


class TestMalformedInput:

    @pytest.mark.parametrize("value", [
        "",
        "no-colon",
        "a:b:c",
        "zz:00",
        "00" * 16 + ":",
        "00" * 8 + ":" + "00" * 16,
    ])
    def test_rejected(self, value):
        with pytest.raises(EncryptionError):
            decrypt(value)
