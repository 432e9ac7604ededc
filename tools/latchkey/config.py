"""Configuration value objects and JSON/env loading."""

from __future__ import annotations

import json
import logging
import os
import warnings
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

from .auth.errors import ConfigError, InvalidArgument
from .auth.ids import DEFAULT_MIN_LENGTH, DEFAULT_SALT
from .auth.store import DEFAULT_DB_PATH, SearchOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".latchkey/config.json"
DEFAULT_AUDIT_LOG_PATH = ".latchkey/auth-events.jsonl"

SECRET_SCHEMES = ("cipher", "bcrypt")

ENV_SECRET_KEY = "LATCHKEY_SECRET_KEY"
ENV_DB_PATH = "LATCHKEY_DB_PATH"


@dataclass
class AuthConfig:
    """Settings for building an ``Authenticator``.

    ``secret_key`` seeds both the stored-password cipher and the token cipher
    (through separate derived keys). Setting ``audit_log_path`` to an empty
    string disables the audit trail.
    """

    db_path: str = DEFAULT_DB_PATH
    secret_key: str = ""
    secret_scheme: str = "cipher"
    bcrypt_rounds: int = 12
    id_salt: str = DEFAULT_SALT
    id_min_length: int = DEFAULT_MIN_LENGTH
    audit_log_path: str = DEFAULT_AUDIT_LOG_PATH
    search: SearchOptions = field(default_factory=SearchOptions)

    def __post_init__(self):
        if self.secret_scheme not in SECRET_SCHEMES:
            raise ConfigError(
                f"secret_scheme must be one of {', '.join(SECRET_SCHEMES)}, got {self.secret_scheme!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any], env: Optional[dict[str, str]] = None) -> "AuthConfig":
        """Build from a parsed config file; environment variables win.

        Accepts either a flat mapping or one nested under ``"auth"``.
        """
        env = os.environ if env is None else env
        section = data.get("auth", data) if isinstance(data, dict) else {}
        if not isinstance(section, dict):
            raise ConfigError("auth config section must be an object")

        known = {f.name for f in fields(cls)} - {"search"}
        kwargs = {k: v for k, v in section.items() if k in known}
        unknown = set(section) - known - {"search"}
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        search = section.get("search") or {}
        if not isinstance(search, dict):
            raise ConfigError("search config must be an object")
        try:
            kwargs["search"] = SearchOptions(**search)
        except TypeError as e:
            raise ConfigError(f"Invalid search config: {e}") from e
        except InvalidArgument as e:
            raise ConfigError(str(e)) from e

        if env.get(ENV_SECRET_KEY):
            kwargs["secret_key"] = env[ENV_SECRET_KEY]
        if env.get(ENV_DB_PATH):
            kwargs["db_path"] = env[ENV_DB_PATH]
        return cls(**kwargs)

    def require_secret(self) -> str:
        """Return ``secret_key`` or raise ``ConfigError`` when it is unset."""
        if not self.secret_key:
            raise ConfigError(
                f"secret_key is not configured (set it in the config file or {ENV_SECRET_KEY})"
            )
        if "CHANGE-ME" in self.secret_key:
            warnings.warn("secret_key contains placeholder value; tokens will be insecure")
        return self.secret_key


def load_config(path: str | Path = DEFAULT_CONFIG_PATH, env: Optional[dict[str, str]] = None) -> AuthConfig:
    """Read a JSON config file. A missing file yields the defaults."""
    path = Path(path)
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return AuthConfig.from_dict({}, env=env)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config at {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config at {path} must be a JSON object")
    return AuthConfig.from_dict(data, env=env)
