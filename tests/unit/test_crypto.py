"""
Unit tests for cryptography module (backdrive/utils/crypto.py).

Tests CredentialCipher for encrypting/decrypting stored passwords.
"""

import pytest

from backdrive.utils.crypto import CredentialCipher, CredentialError, derive_key


class TestCredentialCipherInitialization:
    """Test CredentialCipher initialization."""

    def test_cipher_without_salt_generates_salt(self):
        """Test initialization without providing salt generates new salt."""
        cipher = CredentialCipher('test_passphrase_123')

        assert isinstance(cipher.salt, bytes)
        assert len(cipher.salt) == 16

    def test_cipher_with_salt(self, cipher):
        assert cipher.salt == b'0123456789abcdef'

    def test_derive_key_is_deterministic(self):
        salt = b'1234567890123456'

        assert derive_key('passphrase', salt) == derive_key('passphrase', salt)
        assert derive_key('passphrase', salt) != derive_key('other', salt)


class TestCredentialCipherEncryption:
    """Test encrypt/decrypt."""

    def test_encrypt_hides_plaintext(self, cipher):
        encrypted = cipher.encrypt('redis_password_12345')

        assert encrypted != 'redis_password_12345'
        assert isinstance(encrypted, str)

    def test_encrypt_decrypt(self, cipher):
        assert cipher.decrypt(cipher.encrypt("it's; a pass word")) == "it's; a pass word"

    def test_same_salt_and_passphrase_decrypts(self, cipher):
        """Test a cipher rebuilt from the stored salt reads earlier values."""
        encrypted = cipher.encrypt('secret')

        rebuilt = CredentialCipher('test_passphrase_123', salt=cipher.salt)

        assert rebuilt.decrypt(encrypted) == 'secret'

    def test_decrypt_wrong_passphrase(self, cipher):
        encrypted = cipher.encrypt('secret')
        other = CredentialCipher('wrong_passphrase', salt=cipher.salt)

        with pytest.raises(CredentialError, match="could not be decrypted"):
            other.decrypt(encrypted)

    def test_decrypt_malformed_token(self, cipher):
        with pytest.raises(CredentialError):
            cipher.decrypt('not-a-token')
