"""Authentication orchestrator: registration, password login, token login.

Password login (username or email + password + binding):
    lookup -> verify -> mint token -> AuthResult(ok, token, scrubbed user)

Token login (token + binding):
    decode -> re-fetch by id -> re-mint with the same binding
    -> constant-time compare with the presented token -> AuthResult

Expected failures (unknown user, wrong password, bad token, wrong binding)
all come back as the same failed ``AuthResult``. Only ``StoreUnavailable``
escapes the login methods.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..audit import AuditLog
from .cipher import AesGcmCipher, SivCipher
from .errors import AuthenticationFailed, InvalidArgument
from .ids import PublicIdCodec
from .store import BaseUserStore, SearchOptions, UserStore, is_row_id
from .tokens import TokenCodec
from .user import EMPTY_USER, User
from .verifier import BcryptVerifier, CipherVerifier, SecretVerifier

if TYPE_CHECKING:
    from ..config import AuthConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a login attempt."""

    ok: bool
    user: User = EMPTY_USER
    token: str = ""

    @classmethod
    def failure(cls) -> "AuthResult":
        return cls(ok=False)

    def unwrap(self) -> "AuthResult":
        """Return self on success, raise ``AuthenticationFailed`` otherwise."""
        if not self.ok:
            raise AuthenticationFailed()
        return self


class Authenticator:
    """Composes a user store, a secret verifier and a token codec.

    Args:
        store: User storage capability.
        verifier: Produces and checks stored secrets.
        tokens: Token codec built on a deterministic cipher.
        ids: Optional public id codec used by the admin operations.
        audit: Optional audit trail for auth events.
    """

    def __init__(
        self,
        store: BaseUserStore,
        verifier: SecretVerifier,
        tokens: TokenCodec,
        ids: Optional[PublicIdCodec] = None,
        audit: Optional[AuditLog] = None,
    ):
        self.store = store
        self.verifier = verifier
        self.tokens = tokens
        self.ids = ids
        self.audit = audit or AuditLog(None)
        # Checked against when the user does not exist, so both paths do the same work.
        self._dummy_secret = verifier.register(secrets.token_urlsafe(16))

    @classmethod
    def from_config(cls, config: "AuthConfig") -> "Authenticator":
        """Build the SQLite-backed authenticator described by an ``AuthConfig``."""
        secret_key = config.require_secret()
        if config.secret_scheme == "bcrypt":
            verifier = BcryptVerifier(rounds=config.bcrypt_rounds)
        else:
            verifier = CipherVerifier(AesGcmCipher.from_secret(secret_key, "password"))
        tokens = TokenCodec(SivCipher.from_secret(secret_key, "token"))
        store = UserStore(db_path=config.db_path)
        logger.info(f"UserStore initialized: {config.db_path} (scheme={config.secret_scheme})")
        return cls(
            store=store,
            verifier=verifier,
            tokens=tokens,
            ids=PublicIdCodec(salt=config.id_salt, min_length=config.id_min_length),
            audit=AuditLog(config.audit_log_path or None),
        )

    def close(self) -> None:
        self.store.close()

    def register(self, username: str, secret: str, email: str = "") -> User:
        """Create a user and return the stored record without its secret."""
        username = (username or "").strip()
        if not username:
            raise InvalidArgument("Username cannot be empty")
        if not secret:
            raise InvalidArgument("Password cannot be empty")

        stored = self.verifier.register(secret)
        user_id = self.store.insert(username, (email or "").strip(), stored)
        user = self.store.find_by_id(user_id).scrubbed()
        logger.info(f"Registered user {user.id} ({user.username})")
        self.audit.record("user_registered", user_id=self.public_id(user), username=username)
        return user

    def login_with_password(self, username_or_email: str, secret: str, binding: str) -> AuthResult:
        """Check a password and mint a token scoped to ``binding``."""
        try:
            user = self._check_password(username_or_email, secret)
            token = self.tokens.mint_for(user, binding)
        except (AuthenticationFailed, InvalidArgument) as e:
            return self._failed("password", str(e), username=username_or_email)

        self.audit.record(
            "login_success", method="password", user_id=self.public_id(user), username=user.username
        )
        return AuthResult(ok=True, user=user.scrubbed(), token=token)

    def login_with_token(self, token: str, binding: str) -> AuthResult:
        """Re-authenticate a token presented from ``binding``."""
        try:
            user = self._check_token(token, binding)
        except (AuthenticationFailed, InvalidArgument) as e:
            return self._failed("token", str(e))

        self.audit.record(
            "login_success", method="token", user_id=self.public_id(user), username=user.username
        )
        return AuthResult(ok=True, user=user.scrubbed())

    def _check_password(self, username_or_email: str, secret: str) -> User:
        user = self.store.find_by_username_or_email((username_or_email or "").strip())
        if user.is_empty:
            self.verifier.verify(self._dummy_secret, secret or "")
            raise AuthenticationFailed("unknown user")
        if not self.verifier.verify(user.secret, secret or ""):
            raise AuthenticationFailed("password mismatch")
        return user

    def _check_token(self, token: str, binding: str) -> User:
        claimed = self.tokens.identity(token)
        if claimed.is_empty:
            raise AuthenticationFailed("undecodable token")

        user = self.store.find_by_id(claimed.id)
        if user.is_empty:
            raise AuthenticationFailed("token user no longer exists")

        expected = self.tokens.mint_for(user, binding)
        if not secrets.compare_digest(expected.encode("utf-8"), token.encode("utf-8")):
            raise AuthenticationFailed("token does not match current record or binding")
        return user

    def _failed(self, method: str, stage: str, **details) -> AuthResult:
        logger.debug(f"{method} login failed: {stage}")
        self.audit.record("login_failed", method=method, stage=stage, **details)
        return AuthResult.failure()

    # Admin operations keyed by public id.

    def public_id(self, user: User) -> str:
        if self.ids is not None and isinstance(user.id, int) and not isinstance(user.id, bool):
            return self.ids.encode(user.id)
        return str(user.id)

    def _resolve(self, public_id: str) -> Optional[int]:
        if self.ids is not None:
            internal_id = self.ids.decode(public_id)
        else:
            try:
                internal_id = int(public_id)
            except (TypeError, ValueError):
                return None
        return internal_id if is_row_id(internal_id) else None

    def get_user(self, public_id: str) -> User:
        internal_id = self._resolve(public_id)
        if internal_id is None:
            return EMPTY_USER
        return self.store.find_by_id(internal_id).scrubbed()

    def delete_user(self, public_id: str) -> bool:
        internal_id = self._resolve(public_id)
        if internal_id is None:
            return False
        deleted = self.store.delete(internal_id)
        if deleted:
            logger.info(f"Deleted user {public_id}")
            self.audit.record("user_deleted", user_id=public_id)
        return deleted

    def list_users(self) -> list[User]:
        return [u.scrubbed() for u in self.store.list_users()]

    def search_users(self, query: str, options: Optional[SearchOptions] = None) -> list[User]:
        options = options or SearchOptions()
        users = self.store.search(
            query,
            limit=options.limit,
            offset=options.offset,
            sort_field=options.sort_field,
            ascending=options.ascending,
        )
        return [u.scrubbed() for u in users]
