"""Symmetric encryption of OAuth tokens at rest.

Tokens are encrypted with AES-256-GCM under a key derived from the
ENCRYPTION_KEY secret with PBKDF2. Every call uses a fresh salt and IV, and the
result is stored as four base64 segments: ``salt:iv:authTag:ciphertext``.
"""

import base64
import binascii
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from familycal.errors import DecryptionError

SALT_LENGTH = 64
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000

_BASE64_SEGMENT = re.compile(r"^[A-Za-z0-9+/]+=*$")
# Encrypting an empty string leaves the ciphertext segment empty.
_BASE64_FINAL_SEGMENT = re.compile(r"^[A-Za-z0-9+/]*=*$")


def derive_key(secret: str, salt: bytes) -> bytes:
    """Derive a 256-bit key from the secret and salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(secret.encode("utf-8"))


def is_encrypted(value: str) -> bool:
    """Check whether a value looks like the output of `TokenCipher.encrypt`.

    This is a heuristic used to tell legacy plaintext tokens apart from
    encrypted ones; it does not prove the value decrypts.
    """
    parts = value.split(":")
    if len(parts) != 4:
        return False
    *head, last = parts
    return all(_BASE64_SEGMENT.match(part) for part in head) and bool(
        _BASE64_FINAL_SEGMENT.match(last)
    )


def _b64decode(segment: str) -> bytes:
    try:
        return base64.b64decode(segment, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Decryption failed: invalid base64 segment ({e})")


class TokenCipher:
    """Encrypts and decrypts token strings with a configured secret."""

    def __init__(self, secret: str | None):
        self._secret = secret or None

    def encrypt(self, plaintext: str) -> str:
        if self._secret is None:
            raise ValueError(
                "ENCRYPTION_KEY environment variable is required for token encryption"
            )

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = derive_key(self._secret, salt)

        # AESGCM appends the tag to the ciphertext.
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, auth_tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]

        return ":".join(
            base64.b64encode(part).decode("ascii")
            for part in (salt, iv, auth_tag, ciphertext)
        )

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a value produced by `encrypt`.

        Raises:
            DecryptionError: If the secret is not configured, the value is not in
                ``salt:iv:authTag:ciphertext`` form, or authentication fails.
        """
        if self._secret is None:
            raise DecryptionError(
                "ENCRYPTION_KEY environment variable is required for token decryption"
            )

        parts = ciphertext.split(":")
        if len(parts) != 4:
            raise DecryptionError("Decryption failed: invalid encrypted data format")

        salt, iv, auth_tag, encrypted = (_b64decode(part) for part in parts)
        if len(auth_tag) != AUTH_TAG_LENGTH or not iv:
            raise DecryptionError("Decryption failed: invalid encrypted data format")

        key = derive_key(self._secret, salt)
        try:
            plaintext = AESGCM(key).decrypt(iv, encrypted + auth_tag, None)
        except InvalidTag:
            raise DecryptionError(
                "Decryption failed: authentication tag did not verify"
            )
        return plaintext.decode("utf-8")

    def is_encrypted(self, value: str) -> bool:
        return is_encrypted(value)
