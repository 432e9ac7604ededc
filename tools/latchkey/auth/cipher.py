"""Symmetric ciphers used for stored secrets and tokens.

Two implementations share the ``Cipher`` interface:

- ``AesGcmCipher``: AES-256-GCM with a random nonce per call. Two encryptions
  of the same text differ. Used for stored passwords.
- ``SivCipher``: AES-SIV (RFC 5297), deterministic authenticated encryption.
  The same text always encrypts to the same token, which is what lets a
  token be re-minted and compared. Used for tokens.

Both emit URL-safe base64 text without padding and raise ``DecodeError`` on
anything they cannot authenticate.
"""

from __future__ import annotations

import base64
import secrets
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, AESSIV
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import DecodeError, InvalidArgument

_KDF_LABEL = "latchkey.cipher.v1"
_GCM_NONCE_BYTES = 12
_GCM_TAG_BYTES = 16
_SIV_TAG_BYTES = 16


def _b64e(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).rstrip(b"=").decode("ascii")


def _b64d(s: str) -> bytes:
    if any(c in "+/=" for c in s):
        raise ValueError("Not unpadded URL-safe base64")
    padded = s + "=" * (-len(s) % 4)
    return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)


def _utf8(text: str) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidArgument("Text is not encodable as UTF-8") from e


def generate_secret() -> str:
    """Return a fresh random secret suitable for ``AuthConfig.secret_key``."""
    return secrets.token_urlsafe(32)


def derive_key(secret: str, purpose: str, length: int) -> bytes:
    """Derive ``length`` bytes of key material for one purpose via HKDF-SHA256."""
    if not secret:
        raise InvalidArgument("Cipher secret must not be empty")
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=None,
        info=f"{_KDF_LABEL}:{purpose}".encode("utf-8"),
    )
    return hkdf.derive(secret.encode("utf-8"))


class Cipher(ABC):
    """Reversible text cipher: ``decrypt(encrypt(x)) == x``."""

    #: True when ``encrypt(x) == encrypt(x)`` holds for a fixed key.
    deterministic: bool = False

    @abstractmethod
    def encrypt(self, text: str) -> str:
        """Encrypt ``text`` and return the cipher text."""
        pass

    @abstractmethod
    def decrypt(self, text: str) -> str:
        """Decrypt ``text``; raises ``DecodeError`` if it cannot."""
        pass


class AesGcmCipher(Cipher):
    """AES-256-GCM with a random 96-bit nonce prepended to the output."""

    deterministic = False

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise InvalidArgument("AES-GCM key must be 32 bytes (AES-256)")
        self._aes = AESGCM(key)

    @classmethod
    def from_secret(cls, secret: str, purpose: str = "secret") -> "AesGcmCipher":
        return cls(derive_key(secret, purpose, 32))

    def encrypt(self, text: str) -> str:
        nonce = secrets.token_bytes(_GCM_NONCE_BYTES)
        ct = self._aes.encrypt(nonce, _utf8(text), None)
        return _b64e(nonce + ct)

    def decrypt(self, text: str) -> str:
        try:
            raw = _b64d(text)
        except ValueError as e:
            raise DecodeError("Cipher text is not valid base64") from e
        if len(raw) < _GCM_NONCE_BYTES + _GCM_TAG_BYTES:
            raise DecodeError("Cipher text is too short")
        nonce, ct = raw[:_GCM_NONCE_BYTES], raw[_GCM_NONCE_BYTES:]
        try:
            return self._aes.decrypt(nonce, ct, None).decode("utf-8")
        except (InvalidTag, ValueError) as e:
            raise DecodeError("Cipher text failed authentication") from e


class SivCipher(Cipher):
    """Deterministic AES-SIV. Equal plaintexts give equal cipher texts."""

    deterministic = True

    def __init__(self, key: bytes):
        if len(key) not in (32, 48, 64):
            raise InvalidArgument("AES-SIV key must be 32, 48 or 64 bytes")
        self._aes = AESSIV(key)

    @classmethod
    def from_secret(cls, secret: str, purpose: str = "token") -> "SivCipher":
        return cls(derive_key(secret, purpose, 64))

    def encrypt(self, text: str) -> str:
        if not text:
            raise InvalidArgument("AES-SIV cannot encrypt empty text")
        return _b64e(self._aes.encrypt(_utf8(text), None))

    def decrypt(self, text: str) -> str:
        try:
            raw = _b64d(text)
        except ValueError as e:
            raise DecodeError("Cipher text is not valid base64") from e
        if len(raw) <= _SIV_TAG_BYTES:
            raise DecodeError("Cipher text is too short")
        try:
            return self._aes.decrypt(raw, None).decode("utf-8")
        except (InvalidTag, ValueError) as e:
            raise DecodeError("Cipher text failed authentication") from e
