"""User record passed between the store and the auth core."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Union

UserId = Union[int, str]


@dataclass(frozen=True)
class User:
    """Authentication subject.

    ``secret`` holds the stored credential form (cipher text or bcrypt hash),
    never the plaintext password. It is excluded from ``repr``.
    """

    id: UserId = 0
    username: str = ""
    email: str = ""
    secret: str = field(default="", repr=False)

    @property
    def is_empty(self) -> bool:
        """True iff every field still holds its default value."""
        return all(getattr(self, f.name) == f.default for f in fields(self))

    def scrubbed(self) -> "User":
        """Copy of this user with the secret removed."""
        if not self.secret:
            return self
        return replace(self, secret="")


EMPTY_USER = User()
