from __future__ import annotations

import base64
import os

from fastapi import Request


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_token(nbytes: int = 18) -> str:
    """Hex nonce; the default 18 bytes gives a 36-character, 144-bit value."""
    return os.urandom(nbytes).hex()


def request_base_url(request: Request) -> str:
    """
    Scheme + host (+ root path) of the current request, without a trailing slash.

    OAuth redirect URIs are built from this rather than a static setting so that every
    deployment domain gets a callback on its own host (and its own cookies).
    """
    return str(request.base_url).rstrip("/")
