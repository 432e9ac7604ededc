"""Public identifier codec: internal integer ids <-> opaque hashids strings."""

from __future__ import annotations

from typing import Optional

from hashids import Hashids

from .errors import InvalidArgument

DEFAULT_SALT = "latchkey"
DEFAULT_MIN_LENGTH = 8


class PublicIdCodec:
    """Reversible, non-sequential-looking rendering of store ids.

    Args:
        salt: Hashids salt. Changing it changes every public id.
        min_length: Minimum length of encoded ids.
    """

    def __init__(self, salt: str = DEFAULT_SALT, min_length: int = DEFAULT_MIN_LENGTH):
        self._hashids = Hashids(salt=salt, min_length=min_length)

    def encode(self, internal_id: int) -> str:
        if isinstance(internal_id, bool) or not isinstance(internal_id, int) or internal_id < 0:
            raise InvalidArgument(f"Cannot encode id {internal_id!r}")
        return self._hashids.encode(internal_id)

    def decode(self, public_id: str) -> Optional[int]:
        """Return the internal id, or None if ``public_id`` is not valid."""
        if not public_id:
            return None
        values = self._hashids.decode(public_id)
        if len(values) != 1:
            return None
        return values[0]
