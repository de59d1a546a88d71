"""
Token Encryption Module

Fernet symmetric encryption for the bank refresh token kept in the database.
The key is derived from the configured SECRET_KEY.
"""

from cryptography.fernet import Fernet
import base64


class TokenEncryption:
    """
    Encrypt and decrypt tokens for storage in a TEXT column.
    """

    def __init__(self, secret_key: str):
        """
        Build the cipher from secret_key.

        The key is padded/truncated to 32 bytes and base64-encoded to form a
        valid Fernet key.
        """
        key_bytes = secret_key.encode()[:32].ljust(32, b'0')
        self.cipher = Fernet(base64.urlsafe_b64encode(key_bytes))

    def encrypt(self, token: str) -> str:
        """
        Encrypt a token for database storage.

        Example:
            >>> enc = TokenEncryption("change-me")
            >>> stored = enc.encrypt("refresh-abc123")
        """
        if not token:
            return ""

        encrypted_bytes = self.cipher.encrypt(token.encode())
        return base64.b64encode(encrypted_bytes).decode()

    def decrypt(self, encrypted_token: str) -> str:
        """Decrypt a token read from the database."""
        if not encrypted_token:
            return ""

        encrypted_bytes = base64.b64decode(encrypted_token)
        return self.cipher.decrypt(encrypted_bytes).decode()
