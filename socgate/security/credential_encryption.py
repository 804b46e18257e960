"""
Credential Encryption System.

This module provides encryption and decryption of the token fields of stored
provider credentials using Fernet (AES-128-CBC with HMAC-SHA256) with a key
derived from the application's master secret.
"""

import base64
import json
import logging
import os
from typing import Any, Dict, FrozenSet, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "fernet:"

SENSITIVE_FIELDS: FrozenSet[str] = frozenset(
    {"access_token", "refresh_token", "client_secret"}
)


class CredentialEncryptionError(ValueError):
    """Raised when a credential value cannot be encrypted or decrypted."""


class CredentialEncryption:
    """
    Handles encryption and decryption of sensitive credential fields.

    Only the fields named in ``SENSITIVE_FIELDS`` are encrypted. Encrypted
    values carry the ``fernet:`` prefix, so values written before encryption
    was enabled are read back unchanged.
    """

    def __init__(self, master_key: Optional[str] = None):
        """
        Initialize encryption system with master key.

        Args:
            master_key: Master encryption key (uses SECRET_KEY if not provided)
        """
        self.master_key = master_key or self._get_master_key()
        self._fernet: Optional[Fernet] = None

    def _get_master_key(self) -> str:
        """Get master encryption key from environment."""
        for key_name in ["SECRET_KEY", "ENCRYPTION_KEY"]:
            key = os.environ.get(key_name)
            if key:
                return key

        logger.warning(
            "No encryption key found in environment variables. "
            "Using default key - this is not secure for production!"
        )
        return "default-insecure-key-change-in-production"

    def _get_fernet(self) -> Fernet:
        """Return the Fernet instance, deriving the key on first use."""
        if self._fernet is None:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=b"socgate-credential-salt",
                iterations=100000,
            )
            key = base64.urlsafe_b64encode(kdf.derive(self.master_key.encode()))
            self._fernet = Fernet(key)
        return self._fernet

    def encrypt_value(self, value: str) -> str:
        """Encrypt a single value."""
        token = self._get_fernet().encrypt(value.encode())
        return ENCRYPTED_PREFIX + token.decode()

    def decrypt_value(self, value: str) -> str:
        """
        Decrypt a single value.

        Raises:
            CredentialEncryptionError: If an encrypted value cannot be decrypted
        """
        if not value.startswith(ENCRYPTED_PREFIX):
            return value

        try:
            plain = self._get_fernet().decrypt(value[len(ENCRYPTED_PREFIX) :].encode())
        except InvalidToken:
            logger.error("Failed to decrypt credential value: invalid token or key")
            raise CredentialEncryptionError(
                "Credential could not be decrypted with the configured key"
            )
        return plain.decode()

    def encrypt_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Encrypt the sensitive fields of a credential dictionary."""
        encrypted = {}
        for key, value in config.items():
            if key in SENSITIVE_FIELDS and isinstance(value, str) and value:
                encrypted[key] = self.encrypt_value(value)
            else:
                encrypted[key] = value
        return encrypted

    def decrypt_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Decrypt the sensitive fields of a credential dictionary."""
        decrypted = {}
        for key, value in config.items():
            if key in SENSITIVE_FIELDS and isinstance(value, str):
                decrypted[key] = self.decrypt_value(value)
            else:
                decrypted[key] = value
        return decrypted

    def encrypt_config_json(self, config: Dict[str, Any]) -> str:
        """Encrypt configuration and return it as a JSON string."""
        return json.dumps(self.encrypt_config(config))

    def decrypt_config_json(self, config_json: str) -> Dict[str, Any]:
        """Decrypt configuration from a JSON string."""
        return self.decrypt_config(json.loads(config_json or "{}"))
