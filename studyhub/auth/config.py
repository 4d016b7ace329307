from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from studyhub.auth.errors import ConfigurationError

# Value shipped in sample env files; never acceptable as a signing key.
PLACEHOLDER_SECRET = "change-me"

GOOGLE_AUTHORIZE_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"

SESSION_TTL_SECONDS = 7 * 24 * 60 * 60
STATE_TTL_SECONDS = 10 * 60


@dataclass(frozen=True)
class AuthConfig:
    # Google OAuth client
    google_client_id: Optional[str]
    google_client_secret: Optional[str]
    authorize_endpoint: str
    token_endpoint: str
    http_timeout_seconds: float

    # Signing key for both session credentials and fallback state tokens
    session_secret: Optional[str]

    # Where the browser lands after login. None means "derive from the request".
    frontend_origin: Optional[str]

    cookie_secure: bool
    state_cookie_samesite: str  # lax|none
    session_ttl_seconds: int
    state_ttl_seconds: int

    port: int

    @property
    def state_cookie_secure(self) -> bool:
        # Browsers drop SameSite=None cookies that are not Secure.
        return self.cookie_secure or self.state_cookie_samesite == "none"


def _env(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    v = (value or "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return None


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value else default
    except ValueError:
        return default


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    Read once per process; call `load_auth_config.cache_clear()` after changing the environment.
    """
    app_env = (_env("APP_ENV") or "development").lower()
    cookie_secure = _parse_bool(_env("AUTH_COOKIE_SECURE"))
    if cookie_secure is None:
        # Default: secure cookies in production; allow plain HTTP for local dev.
        cookie_secure = app_env == "production"

    samesite = (_env("AUTH_STATE_COOKIE_SAMESITE") or "lax").lower()
    if samesite not in ("lax", "none"):
        samesite = "lax"

    timeout = _parse_float(_env("AUTH_HTTP_TIMEOUT_SECONDS"), 10.0)
    if not timeout > 0:
        timeout = 10.0

    frontend_origin = _env("FRONTEND_ORIGIN")
    if frontend_origin:
        frontend_origin = frontend_origin.rstrip("/")

    return AuthConfig(
        google_client_id=_env("GOOGLE_CLIENT_ID"),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET"),
        authorize_endpoint=_env("GOOGLE_AUTHORIZE_ENDPOINT") or GOOGLE_AUTHORIZE_ENDPOINT,
        token_endpoint=_env("GOOGLE_TOKEN_ENDPOINT") or GOOGLE_TOKEN_ENDPOINT,
        http_timeout_seconds=timeout,
        session_secret=_env("APP_SECRET"),
        frontend_origin=frontend_origin,
        cookie_secure=cookie_secure,
        state_cookie_samesite=samesite,
        session_ttl_seconds=SESSION_TTL_SECONDS,
        state_ttl_seconds=STATE_TTL_SECONDS,
        port=_parse_int(_env("PORT"), 4000),
    )


def require_session_secret(cfg: AuthConfig) -> str:
    """Return the signing key, refusing to run with a missing or placeholder value."""
    if not cfg.session_secret:
        raise ConfigurationError("Server configuration error", details="APP_SECRET is not set")
    if cfg.session_secret == PLACEHOLDER_SECRET:
        raise ConfigurationError("Server configuration error", details="APP_SECRET is set to the placeholder value")
    return cfg.session_secret


def require_google_client(cfg: AuthConfig, *, need_secret: bool = False) -> None:
    if not cfg.google_client_id:
        raise ConfigurationError("Server configuration error", details="GOOGLE_CLIENT_ID is not set")
    if need_secret and not cfg.google_client_secret:
        raise ConfigurationError("Server configuration error", details="GOOGLE_CLIENT_SECRET is not set")


def config_problems(cfg: AuthConfig) -> List[str]:
    """List every configuration error that would make login fail (used by `main.py --check-config`)."""
    problems: List[str] = []
    for check in (
        lambda: require_google_client(cfg, need_secret=True),
        lambda: require_session_secret(cfg),
    ):
        try:
            check()
        except ConfigurationError as e:
            problems.append(e.details or e.error)
    return problems
