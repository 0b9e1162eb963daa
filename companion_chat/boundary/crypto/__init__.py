"""
Crypto boundary modules.

Exports: ContentCipher, EncryptedField
"""

from .content_cipher import ContentCipher, EncryptedField, derive_key

__all__ = ["ContentCipher", "EncryptedField", "derive_key"]
