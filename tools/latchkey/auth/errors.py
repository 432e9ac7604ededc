"""Exception types raised by the latchkey auth core."""


class LatchkeyError(Exception):
    """Base class for all latchkey errors."""


class InvalidArgument(LatchkeyError, ValueError):
    """Empty or malformed input to register, mint, search or a cipher."""


class DecodeError(LatchkeyError):
    """A token or stored secret could not be decrypted or parsed."""


class AuthenticationFailed(LatchkeyError):
    """Credentials, token or binding did not check out.

    Deliberately carries no detail about which stage failed.
    """

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class StoreUnavailable(LatchkeyError):
    """The user store could not be reached or queried."""


class ConfigError(LatchkeyError):
    """Missing or invalid configuration."""
