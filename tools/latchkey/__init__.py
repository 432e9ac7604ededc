"""
Latchkey — a small user-credential store with stateless re-authentication.

A user logs in once with a password and receives an opaque token. The token
encrypts the user's id, username, stored secret and a caller-chosen binding
(client address, machine name, ...). Presenting it again from the same
binding re-authenticates without a password and without any server-side
session table.

Components:
    - auth.cipher: AES-GCM (stored secrets) and AES-SIV (tokens)
    - auth.verifier: Cipher- or bcrypt-based password verification
    - auth.tokens: Canonical payload, mint/decode
    - auth.service: Authenticator orchestrating login flows
    - auth.store: SQLite user store
    - auth.ids: Hashids public identifiers
    - config: AuthConfig / SearchOptions
    - audit: JSONL auth event trail
    - manage: Command-line administration
"""

__version__ = "0.1.0"
__author__ = "Latchkey Team"

from .auth import Authenticator, AuthResult, User, EMPTY_USER
from .config import AuthConfig, SearchOptions, load_config

__all__ = [
    "Authenticator",
    "AuthResult",
    "User",
    "EMPTY_USER",
    "AuthConfig",
    "SearchOptions",
    "load_config",
]
