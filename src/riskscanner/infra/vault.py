"""Envelope encryption for provider credentials.

Ciphertext layout (base64 encoded): version (1 byte) | salt (16) | nonce (12) | AES-256-GCM ciphertext + tag.
The key is derived from the operator secret with PBKDF2-HMAC-SHA256 and a per-ciphertext salt.
"""

from __future__ import annotations

import base64
import binascii
import secrets
import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.domain.exceptions import CryptoError

FORMAT_VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
DEFAULT_ITERATIONS = 390_000

_HEADER_SIZE = 1 + SALT_SIZE + NONCE_SIZE


class SecretVault:
    def __init__(self, *, secret: str | None, iterations: int = DEFAULT_ITERATIONS) -> None:
        self._secret = secret or None
        self._iterations = iterations
        self._keys: dict[bytes, bytes] = {}
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return self._secret is not None

    def _derive(self, salt: bytes) -> bytes:
        # Derived keys never change for a (secret, salt) pair, so they are cached
        with self._lock:
            key = self._keys.get(salt)
            if key is None:
                if self._secret is None:
                    raise CryptoError("No encryption secret configured")
                kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_SIZE, salt=salt, iterations=self._iterations)
                key = self._keys[salt] = kdf.derive(self._secret.encode("utf-8"))
            return key

    def encrypt(self, plaintext: str) -> str:
        if self._secret is None:
            raise CryptoError("No encryption secret configured")
        salt = secrets.token_bytes(SALT_SIZE)
        nonce = secrets.token_bytes(NONCE_SIZE)
        ciphertext = AESGCM(self._derive(salt)).encrypt(nonce, plaintext.encode("utf-8"), None)
        blob = bytes([FORMAT_VERSION]) + salt + nonce + ciphertext
        return base64.b64encode(blob).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        if self._secret is None:
            raise CryptoError("Credential is encrypted but no encryption secret is configured")
        try:
            blob = base64.b64decode(ciphertext.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise CryptoError("Stored credential is not valid ciphertext") from e
        if len(blob) < _HEADER_SIZE + TAG_SIZE or blob[0] != FORMAT_VERSION:
            raise CryptoError("Stored credential has an unknown format")

        salt = blob[1:1 + SALT_SIZE]
        nonce = blob[1 + SALT_SIZE:_HEADER_SIZE]
        try:
            plaintext = AESGCM(self._derive(salt)).decrypt(nonce, blob[_HEADER_SIZE:], None)
        except InvalidTag as e:
            raise CryptoError() from e
        return plaintext.decode("utf-8")
