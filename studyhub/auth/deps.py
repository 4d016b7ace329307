from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from studyhub.auth.config import AuthConfig, load_auth_config, require_session_secret
from studyhub.auth.errors import Unauthorized
from studyhub.auth.session import SESSION_COOKIE_NAME, decode_session


def authenticate_request(request: Request, cfg: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Return the session claims for a request or raise.

    - no cookie: Unauthorized
    - missing/placeholder APP_SECRET: ConfigurationError (never verify with a weak key)
    - anything wrong with the cookie: Unauthorized, whatever the cause
    """
    cfg = cfg or load_auth_config()

    token = (request.cookies.get(SESSION_COOKIE_NAME) or "").strip()
    if not token:
        raise Unauthorized()

    secret = require_session_secret(cfg)
    claims = decode_session(secret, token)
    if claims is None:
        raise Unauthorized()
    return claims
