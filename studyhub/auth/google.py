from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import urlencode

import jwt  # PyJWT
import requests

from studyhub.auth.config import AuthConfig
from studyhub.auth.errors import UpstreamError
from studyhub.auth.models import IdentityClaims

logger = logging.getLogger(__name__)

GOOGLE_SCOPES = "openid profile email"


def build_authorize_url(cfg: AuthConfig, *, redirect_uri: str, state: str) -> str:
    """
    Build the Google authorization URL for the authorization-code flow.

    Offline access with a forced consent prompt, matching what the front-end expects.
    """
    params = {
        "client_id": cfg.google_client_id or "",
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": GOOGLE_SCOPES,
        "access_type": "offline",
        "include_granted_scopes": "true",
        "prompt": "consent",
        "state": state,
    }
    return f"{cfg.authorize_endpoint}?{urlencode(params)}"


def exchange_code_for_tokens(cfg: AuthConfig, *, code: str, redirect_uri: str) -> Dict[str, Any]:
    """
    Exchange an authorization code for tokens (id_token, access_token).

    Server-to-server; no retries. The provider's error body is logged, never returned.
    """
    payload = {
        "code": code,
        "client_id": cfg.google_client_id or "",
        "client_secret": cfg.google_client_secret or "",
        "redirect_uri": redirect_uri,
        "grant_type": "authorization_code",
    }
    try:
        r = requests.post(cfg.token_endpoint, data=payload, timeout=cfg.http_timeout_seconds)
    except requests.RequestException as e:
        logger.warning("Token exchange request failed: %s", str(e))
        raise UpstreamError("Token exchange failed") from e

    if r.status_code < 200 or r.status_code >= 300:
        body = (r.text or "")[:2000]
        logger.warning("Token exchange failed (status=%d): %s", r.status_code, body)
        raise UpstreamError("Token exchange failed")

    try:
        data = r.json()
    except ValueError as e:
        logger.warning("Token exchange returned non-JSON body")
        raise UpstreamError("Token exchange failed") from e
    if not isinstance(data, dict):
        logger.warning("Token exchange returned a non-object JSON body")
        raise UpstreamError("Token exchange failed")
    return data


def decode_id_token(id_token: str) -> IdentityClaims:
    """
    Read the claims out of a Google id_token.

    The signature is NOT verified: the token came straight from the token endpoint over
    TLS, not from the browser.
    """
    try:
        payload = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.warning("Undecodable id_token: %s", str(e))
        raise UpstreamError("Invalid id_token") from e
    if not isinstance(payload, dict):
        logger.warning("id_token payload is not an object")
        raise UpstreamError("Invalid id_token")

    claims = IdentityClaims.from_id_token_payload(payload)
    if claims is None:
        logger.warning("id_token has no sub claim")
        raise UpstreamError("Invalid id_token")
    return claims
