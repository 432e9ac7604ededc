"""
Latchkey Auth — credential verification and binding-scoped tokens.

Usage:
    from latchkey.auth import Authenticator
    from latchkey.config import load_config

    auth = Authenticator.from_config(load_config(".latchkey/config.json"))
    auth.register("alice", "secret123", "alice@example.com")
    result = auth.login_with_password("alice", "secret123", binding="host-A")
    auth.login_with_token(result.token, binding="host-A").ok  # True
    auth.login_with_token(result.token, binding="host-B").ok  # False
"""

from .errors import (
    AuthenticationFailed,
    ConfigError,
    DecodeError,
    InvalidArgument,
    LatchkeyError,
    StoreUnavailable,
)
from .service import AuthResult, Authenticator
from .store import BaseUserStore, SearchOptions, UserStore
from .user import EMPTY_USER, User

__all__ = [
    "Authenticator",
    "AuthResult",
    "BaseUserStore",
    "UserStore",
    "SearchOptions",
    "User",
    "EMPTY_USER",
    "LatchkeyError",
    "InvalidArgument",
    "DecodeError",
    "AuthenticationFailed",
    "StoreUnavailable",
    "ConfigError",
]
