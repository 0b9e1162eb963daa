"""
AES-256-GCM encryption for message content at rest.

Stored envelope is {iv, content, tag}, each hex encoded. The key is either a
64-character hex string used as raw key bytes, or any passphrase hashed with
SHA-256 into a 32-byte key.

Dependencies: cryptography, pydantic
System role: Encryption codec for chat message text
"""

import hashlib
import logging
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, ValidationError

from companion_chat.core.exceptions import DecryptionError

logger = logging.getLogger(__name__)

TAG_LENGTH = 16
_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


class EncryptedField(BaseModel):
    """Encrypted content envelope persisted in chat_messages.content_encrypted."""

    iv: str
    content: str
    tag: str


def derive_key(secret: str) -> bytes:
    """
    Turn the configured secret into a 32-byte AES key.

    Args:
        secret: 64 hex characters, or an arbitrary passphrase

    Returns:
        32 key bytes
    """
    if _HEX_KEY.match(secret):
        return bytes.fromhex(secret)
    return hashlib.sha256(secret.encode("utf-8")).digest()


class ContentCipher:
    """
    Encrypts and decrypts message text with AES-256-GCM.

    Example:
        >>> cipher = ContentCipher("a" * 64)
        >>> field = cipher.encrypt("hello")
        >>> cipher.decrypt(field)
        'hello'
    """

    def __init__(self, secret: str, iv_length: int = 16) -> None:
        """
        Initialize cipher.

        Args:
            secret: Key material (see derive_key)
            iv_length: Nonce length in bytes
        """
        self._aesgcm = AESGCM(derive_key(secret))
        self.iv_length = iv_length

    def encrypt(self, text: str) -> EncryptedField:
        """
        Encrypt text with a fresh random IV.

        Args:
            text: Plaintext

        Returns:
            EncryptedField with hex iv, ciphertext and auth tag
        """
        iv = os.urandom(self.iv_length)
        sealed = self._aesgcm.encrypt(iv, text.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return EncryptedField(iv=iv.hex(), content=ciphertext.hex(), tag=tag.hex())

    def decrypt(self, field: EncryptedField | dict) -> str:
        """
        Decrypt a stored envelope.

        Args:
            field: EncryptedField or its dict form from the database

        Returns:
            Plaintext

        Raises:
            DecryptionError: Envelope is malformed, or the key or tag does not match
        """
        try:
            if isinstance(field, dict):
                field = EncryptedField.model_validate(field)
            iv = bytes.fromhex(field.iv)
            sealed = bytes.fromhex(field.content) + bytes.fromhex(field.tag)
            return self._aesgcm.decrypt(iv, sealed, None).decode("utf-8")
        except (InvalidTag, ValueError, ValidationError) as e:
            logger.error(
                "Failed to decrypt chat message content",
                extra={"error_type": type(e).__name__},
            )
            raise DecryptionError() from e
