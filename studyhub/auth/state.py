"""
OAuth `state` handling (CSRF protection).

The raw state is a random nonce kept in a short-lived `oauth_state` cookie. The value sent
to the provider is a timestamped HMAC signature over that nonce, so the callback can still
prove the round trip when the cookie never comes back (blocked cookies, cross-subdomain
redirects). The cookie stays the preferred proof whenever it is present.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional

from itsdangerous import BadSignature, TimestampSigner

from studyhub.auth.config import STATE_TTL_SECONDS
from studyhub.auth.errors import ProtocolError
from studyhub.auth.util import random_token

logger = logging.getLogger(__name__)

STATE_COOKIE_NAME = "oauth_state"
STATE_SALT = "studyhub-oauth-state-v1"


def _signer(secret: str) -> TimestampSigner:
    return TimestampSigner(secret_key=secret, salt=STATE_SALT, digest_method=hashlib.sha256)


def new_state() -> str:
    return random_token()


def sign_state(secret: str, state: str) -> str:
    return _signer(secret).sign(state).decode("ascii")


def verify_signed_state(secret: str, token: str | None, *, max_age: int = STATE_TTL_SECONDS) -> Optional[str]:
    """Return the embedded state if the signature verifies and is fresh, else None."""
    if not token:
        return None
    try:
        raw = _signer(secret).unsign(token, max_age=max_age)
    except BadSignature:
        return None
    try:
        return raw.decode("ascii")
    except UnicodeDecodeError:
        return None


def check_callback_state(
    secret: str,
    *,
    returned: str,
    cookie_value: str | None,
    max_age: int = STATE_TTL_SECONDS,
) -> str:
    """
    Decide whether the callback's `state` proves it belongs to a login we started.

    With a state cookie the (signature-stripped) parameter must equal it exactly; a valid
    signature alone is not enough. Without a cookie the signature must verify on its own.
    Returns the accepted raw state; raises ProtocolError otherwise.
    """
    cookie_state = (cookie_value or "").strip()
    signed_state = verify_signed_state(secret, returned, max_age=max_age)

    if cookie_state:
        candidate = signed_state if signed_state is not None else returned
        if not hmac.compare_digest(candidate.encode("utf-8"), cookie_state.encode("utf-8")):
            logger.warning("OAuth callback rejected: state does not match cookie")
            raise ProtocolError("Invalid state")
        return cookie_state

    if signed_state is not None:
        logger.info("OAuth state cookie missing; accepted signed state parameter")
        return signed_state

    logger.warning("OAuth callback rejected: no state cookie and state signature did not verify")
    raise ProtocolError("Invalid state", details="State cookie missing; cookies may be blocked, please retry login")
