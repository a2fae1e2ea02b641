"""
Unit tests for secret encryption.
"""

import pytest
from unittest.mock import patch

from cryptography.fernet import Fernet

from inbox_actions.storage import encryption
from inbox_actions.storage.encryption import decrypt_value, encrypt_value, get_encryption_key, reset_cipher


@pytest.fixture(autouse=True)
def fresh_cipher():
    reset_cipher()
    yield
    reset_cipher()


class TestGetEncryptionKey:

    def test_explicit_key(self, monkeypatch):
        key = Fernet.generate_key().decode()
        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", key)
        assert get_encryption_key() == key.encode()

    def test_derived_from_secret_key_is_stable(self, monkeypatch):
        monkeypatch.delenv("TOKEN_ENCRYPTION_KEY", raising=False)
        monkeypatch.setenv("SECRET_KEY", "some-application-secret")

        first = get_encryption_key()
        assert first == get_encryption_key()
        Fernet(first)

    def test_invalid_key_falls_back(self, monkeypatch):
        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", "not-a-key")
        monkeypatch.setenv("SECRET_KEY", "some-application-secret")
        Fernet(get_encryption_key())

    def test_generated_when_nothing_configured(self, monkeypatch):
        monkeypatch.delenv("TOKEN_ENCRYPTION_KEY", raising=False)
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with patch.object(encryption.logger, "warning") as mock_warning:
            Fernet(get_encryption_key())
        mock_warning.assert_called_once()


class TestEncryptDecrypt:

    def test_roundtrip(self):
        token = encrypt_value("imap-password")
        assert token != "imap-password"
        assert decrypt_value(token) == "imap-password"

    def test_bytes_input(self):
        assert decrypt_value(encrypt_value(b"refresh-token")) == "refresh-token"

    def test_none_passthrough(self):
        assert encrypt_value(None) is None
        assert decrypt_value(None) is None

    def test_foreign_token_is_rejected(self):
        foreign = Fernet(Fernet.generate_key()).encrypt(b"secret").decode()
        with pytest.raises(ValueError, match="Failed to decrypt value"):
            decrypt_value(foreign)

    def test_garbage_is_rejected(self):
        with pytest.raises(ValueError):
            decrypt_value("garbage")
