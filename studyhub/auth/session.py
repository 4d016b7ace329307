from __future__ import annotations

import base64
import binascii
import time
from typing import Any, Dict, Optional

import jwt  # PyJWT

from studyhub.auth.config import SESSION_TTL_SECONDS, AuthConfig
from studyhub.auth.models import IdentityClaims
from studyhub.auth.util import b64url

SESSION_COOKIE_NAME = "session"
SESSION_ALGORITHM = "HS256"


def encode_session(
    secret: str,
    identity: IdentityClaims,
    *,
    ttl_seconds: int = SESSION_TTL_SECONDS,
    now: Optional[int] = None,
) -> str:
    iat = int(time.time()) if now is None else int(now)
    payload: Dict[str, Any] = identity.to_claims()
    payload["iat"] = iat
    payload["exp"] = iat + ttl_seconds
    return jwt.encode(payload, secret, algorithm=SESSION_ALGORITHM)


def _canonical_signature(token: str) -> bool:
    # base64 decoders ignore the unused low bits of the last character, so several
    # spellings of a signature decode to the same bytes. Accept only the canonical one.
    sig = token.rsplit(".", 1)[-1]
    try:
        raw = base64.urlsafe_b64decode(sig + "=" * (-len(sig) % 4))
    except (binascii.Error, ValueError):
        return False
    return b64url(raw) == sig


def decode_session(secret: str, token: str | None, *, now: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """
    Verify a session credential and return its claims, or None.

    Signature, expiry and shape problems all collapse to None; callers must not tell them apart.
    """
    if not token or token.count(".") != 2:
        return None
    if not _canonical_signature(token):
        return None
    options: Dict[str, Any] = {"require": ["sub", "iat", "exp"]}
    if now is not None:
        # PyJWT checks exp against the wall clock; an explicit `now` is checked below instead.
        options["verify_exp"] = False
    try:
        claims = jwt.decode(token, secret, algorithms=[SESSION_ALGORITHM], options=options)
    except jwt.InvalidTokenError:
        return None
    if not isinstance(claims, dict) or not str(claims.get("sub") or "").strip():
        return None
    if now is not None:
        try:
            if int(claims["exp"]) <= int(now):
                return None
        except (TypeError, ValueError):
            return None
    return claims


def session_cookie_kwargs(cfg: AuthConfig, value: str) -> dict:
    return {
        "key": SESSION_COOKIE_NAME,
        "value": value,
        "max_age": cfg.session_ttl_seconds,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }


def clear_session_cookie_kwargs(cfg: AuthConfig) -> dict:
    return {
        "key": SESSION_COOKIE_NAME,
        "value": "",
        "max_age": 0,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }
