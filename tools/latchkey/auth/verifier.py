"""Password verification strategies.

``CipherVerifier`` keeps passwords reversibly encrypted and verifies by
decrypting and comparing plaintext. ``BcryptVerifier`` stores a salted one-way
hash instead. Both compare in constant time and never raise on a bad stored
value.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod

import bcrypt

from .cipher import Cipher
from .errors import DecodeError, InvalidArgument

logger = logging.getLogger(__name__)


class SecretVerifier(ABC):
    """Turns plaintext passwords into their stored form and checks candidates."""

    @abstractmethod
    def register(self, plaintext: str) -> str:
        """Return the stored form of ``plaintext``."""
        pass

    @abstractmethod
    def verify(self, stored: str, candidate: str) -> bool:
        """Check ``candidate`` against a stored value. Never raises."""
        pass


class CipherVerifier(SecretVerifier):
    """Verify by decrypting the stored secret and comparing plaintext."""

    def __init__(self, cipher: Cipher):
        self.cipher = cipher

    def register(self, plaintext: str) -> str:
        if not plaintext:
            raise InvalidArgument("Password cannot be empty")
        return self.cipher.encrypt(plaintext)

    def verify(self, stored: str, candidate: str) -> bool:
        if not stored or not candidate:
            return False
        try:
            recovered = self.cipher.decrypt(stored)
        except DecodeError as e:
            logger.debug(f"Stored secret did not decrypt: {e}")
            return False
        try:
            given = candidate.encode("utf-8")
        except UnicodeEncodeError:
            return False
        return secrets.compare_digest(recovered.encode("utf-8"), given)


class BcryptVerifier(SecretVerifier):
    """Salted bcrypt hashes; the stored value cannot be reversed."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def register(self, plaintext: str) -> str:
        if not plaintext:
            raise InvalidArgument("Password cannot be empty")
        try:
            encoded = plaintext.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidArgument("Password is not encodable as UTF-8") from e
        if len(encoded) > 72:
            raise InvalidArgument("bcrypt passwords are limited to 72 bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode(
            "utf-8"
        )

    def verify(self, stored: str, candidate: str) -> bool:
        if not stored or not candidate:
            return False
        try:
            given = candidate.encode("utf-8")
        except UnicodeEncodeError:
            return False
        try:
            return bcrypt.checkpw(given, stored.encode("utf-8"))
        except ValueError as e:
            logger.debug(f"Stored hash is malformed: {e}")
            return False
