"""Binding-scoped re-authentication tokens.

A token is the deterministic encryption of a canonical JSON payload::

    {"binding":...,"id":...,"secret":...,"username":...}

Keys are sorted, separators are compact and output is ASCII-only, so the same
``(id, username, secret, binding)`` always yields the same token. Validation
re-mints from the current store record and compares, so the cipher must be
deterministic.

The binding (client address, host name, ...) goes into the payload but is not
returned by ``decode``. The caller supplies it again on every check, so a
token presented from a different binding fails even though it decrypts.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .cipher import Cipher
from .errors import DecodeError, InvalidArgument
from .user import EMPTY_USER, User, UserId

logger = logging.getLogger(__name__)


def _is_empty_id(identifier: Any) -> bool:
    if isinstance(identifier, bool) or not isinstance(identifier, (int, str)):
        return True
    return not identifier


def canonical_payload(identifier: UserId, username: str, secret: str, binding: str) -> str:
    """Serialize the token tuple in its fixed, order-stable form."""
    return json.dumps(
        {
            "binding": binding,
            "id": identifier,
            "secret": secret,
            "username": username,
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    )


class TokenCodec:
    """Mint and decode tokens with a deterministic cipher."""

    def __init__(self, cipher: Cipher):
        if not cipher.deterministic:
            raise InvalidArgument(
                f"{type(cipher).__name__} is not deterministic; tokens could never be re-minted"
            )
        self.cipher = cipher

    def mint(self, identifier: UserId, username: str, secret: str, binding: str) -> str:
        """Create the token for a user identity scoped to ``binding``."""
        if _is_empty_id(identifier):
            raise InvalidArgument("Token identifier cannot be empty")
        if not isinstance(secret, str) or not secret:
            raise InvalidArgument("Token secret cannot be empty")
        if not isinstance(username, str):
            raise InvalidArgument("Token username must be a string")
        if not isinstance(binding, str):
            raise InvalidArgument("Token binding must be a string")
        return self.cipher.encrypt(canonical_payload(identifier, username, secret, binding))

    def mint_for(self, user: User, binding: str) -> str:
        return self.mint(user.id, user.username, user.secret, binding)

    def decode(self, token: str) -> User:
        """Recover ``id``, ``username`` and ``secret`` from a token.

        Raises:
            DecodeError: the token does not decrypt or its payload is incomplete.
        """
        if not isinstance(token, str) or not token:
            raise DecodeError("Token is empty")
        try:
            data = json.loads(self.cipher.decrypt(token))
        except json.JSONDecodeError as e:
            raise DecodeError("Token payload is not JSON") from e
        if not isinstance(data, dict):
            raise DecodeError("Token payload is not an object")

        identifier = data.get("id")
        username = data.get("username")
        secret = data.get("secret")
        if _is_empty_id(identifier):
            raise DecodeError("Token payload has no identifier")
        if not isinstance(secret, str) or not secret:
            raise DecodeError("Token payload has no secret")
        if not isinstance(username, str):
            raise DecodeError("Token payload has no username")
        return User(id=identifier, username=username, secret=secret)

    def identity(self, token: str) -> User:
        """Like ``decode`` but returns ``EMPTY_USER`` instead of raising."""
        try:
            return self.decode(token)
        except DecodeError as e:
            logger.debug(f"Token rejected: {e}")
            return EMPTY_USER
