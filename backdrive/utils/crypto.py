"""
Credential encryption for adapter settings.

Passwords for redis-cli or svnsync can be stored encrypted
(``password_encrypted``) and are decrypted only when a command is built.
Uses Fernet symmetric encryption with a key derived from a passphrase.
"""

import base64
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

KDF_ITERATIONS = 480000


class CredentialError(Exception):
    """Raised when a stored credential cannot be decrypted."""
    pass


def derive_key(passphrase: str, salt: bytes) -> bytes:
    """Derive a Fernet key from a passphrase with PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode()))


class CredentialCipher:
    """Encrypts and decrypts credential strings."""

    def __init__(self, passphrase: str, salt: Optional[bytes] = None):
        """
        Args:
            passphrase: Secret the key is derived from
            salt: Salt used on first setup; a random one is generated if None
                (store it alongside the encrypted values)
        """
        self.salt = salt if salt is not None else os.urandom(16)
        self._fernet = Fernet(derive_key(passphrase, self.salt))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        """
        Decrypt a credential.

        Raises:
            CredentialError: If the token is malformed or was encrypted with another key
        """
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            raise CredentialError("Stored credential could not be decrypted (wrong passphrase or salt?)") from e
