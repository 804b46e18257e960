"""
Tests for credential encryption.
"""

import json
import os
from unittest.mock import patch

import pytest

from socgate.security.credential_encryption import (
    ENCRYPTED_PREFIX,
    CredentialEncryption,
    CredentialEncryptionError,
)


class TestCredentialEncryption:
    def test_encrypt_value_is_prefixed_and_reversible(self, encryption):
        encrypted = encryption.encrypt_value("access-token-123")

        assert encrypted.startswith(ENCRYPTED_PREFIX)
        assert "access-token-123" not in encrypted
        assert encryption.decrypt_value(encrypted) == "access-token-123"

    def test_unprefixed_values_pass_through(self, encryption):
        assert encryption.decrypt_value("legacy-plain-token") == "legacy-plain-token"

    def test_wrong_key_fails(self, encryption):
        encrypted = encryption.encrypt_value("access-token-123")
        other = CredentialEncryption("a-different-key")

        with pytest.raises(CredentialEncryptionError):
            other.decrypt_value(encrypted)

    def test_only_sensitive_fields_are_encrypted(self, encryption):
        config = {
            "access_token": "at",
            "refresh_token": "rt",
            "token_type": "Bearer",
            "scope": "video.upload",
            "user_info": {"id": "42"},
        }

        stored = json.loads(encryption.encrypt_config_json(config))

        assert stored["access_token"].startswith(ENCRYPTED_PREFIX)
        assert stored["refresh_token"].startswith(ENCRYPTED_PREFIX)
        assert stored["token_type"] == "Bearer"
        assert stored["scope"] == "video.upload"
        assert stored["user_info"] == {"id": "42"}

    def test_empty_tokens_are_left_empty(self, encryption):
        stored = json.loads(encryption.encrypt_config_json({"refresh_token": ""}))
        assert stored["refresh_token"] == ""

    def test_config_json_round_trip(self, encryption):
        config = {"access_token": "at", "refresh_token": "rt", "expires_at": None}

        assert encryption.decrypt_config_json(encryption.encrypt_config_json(config)) == config

    def test_empty_config_json(self, encryption):
        assert encryption.decrypt_config_json("") == {}

    def test_master_key_from_environment(self):
        with patch.dict(os.environ, {"SECRET_KEY": "env-key"}, clear=True):
            assert CredentialEncryption().master_key == "env-key"

        with patch.dict(os.environ, {"ENCRYPTION_KEY": "enc-key"}, clear=True):
            assert CredentialEncryption().master_key == "enc-key"

    def test_default_key_logs_warning(self, caplog):
        with patch.dict(os.environ, {}, clear=True):
            encryption = CredentialEncryption()

        assert encryption.master_key
        assert "not secure for production" in caplog.text
