from __future__ import annotations

import time

import jwt
import pytest

from studyhub.auth.config import SESSION_TTL_SECONDS, load_auth_config
from studyhub.auth.models import IdentityClaims
from studyhub.auth.session import (
    clear_session_cookie_kwargs,
    decode_session,
    encode_session,
    session_cookie_kwargs,
)

SECRET = "session-secret"


def _ada() -> IdentityClaims:
    return IdentityClaims(sub="u1", name="Ada", email="ada@example.com", picture="https://example.com/ada.png")


def test_session_round_trip_keeps_claims() -> None:
    token = encode_session(SECRET, _ada())
    claims = decode_session(SECRET, token)
    assert claims is not None
    assert claims["sub"] == "u1"
    assert claims["name"] == "Ada"
    assert claims["email"] == "ada@example.com"
    assert claims["picture"] == "https://example.com/ada.png"
    assert claims["exp"] - claims["iat"] == SESSION_TTL_SECONDS == 7 * 24 * 60 * 60


def test_session_omits_absent_display_claims() -> None:
    token = encode_session(SECRET, IdentityClaims(sub="u2"))
    claims = decode_session(SECRET, token)
    assert claims is not None
    assert set(claims) == {"sub", "iat", "exp"}


def test_session_rejected_with_other_secret() -> None:
    token = encode_session(SECRET, _ada())
    assert decode_session("not-the-secret", token) is None


def test_session_rejected_after_expiry() -> None:
    issued = int(time.time()) - SESSION_TTL_SECONDS - 5
    token = encode_session(SECRET, _ada(), now=issued)
    assert decode_session(SECRET, token) is None


def test_session_expiry_with_explicit_clock() -> None:
    issued = int(time.time()) - 60
    token = encode_session(SECRET, _ada(), now=issued)
    assert decode_session(SECRET, token, now=issued + SESSION_TTL_SECONDS - 1) is not None
    assert decode_session(SECRET, token, now=issued + SESSION_TTL_SECONDS) is None


def test_any_single_bit_flip_breaks_verification() -> None:
    token = encode_session(SECRET, _ada())
    assert decode_session(SECRET, token) is not None
    raw = token.encode("ascii")
    for i in range(len(raw)):
        for bit in range(8):
            mutated = bytearray(raw)
            mutated[i] ^= 1 << bit
            candidate = bytes(mutated).decode("latin-1")
            assert decode_session(SECRET, candidate) is None, (i, bit)


def test_session_without_sub_rejected() -> None:
    now = int(time.time())
    token = jwt.encode({"name": "Ada", "iat": now, "exp": now + 60}, SECRET, algorithm="HS256")
    assert decode_session(SECRET, token) is None


def test_session_signed_with_none_alg_rejected() -> None:
    now = int(time.time())
    token = jwt.encode({"sub": "u1", "iat": now, "exp": now + 60}, None, algorithm="none")
    assert decode_session(SECRET, token) is None


@pytest.mark.parametrize("value", [None, "", "garbage", "a.b", "a.b.c.d"])
def test_session_malformed_values_rejected(value) -> None:
    assert decode_session(SECRET, value) is None


def test_session_cookie_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    load_auth_config.cache_clear()
    cfg = load_auth_config()

    kw = session_cookie_kwargs(cfg, "tok")
    assert kw["key"] == "session"
    assert kw["httponly"] is True
    assert kw["secure"] is True
    assert kw["samesite"] == "lax"
    assert kw["path"] == "/"
    assert kw["max_age"] == SESSION_TTL_SECONDS

    cleared = clear_session_cookie_kwargs(cfg)
    assert cleared["max_age"] == 0
    assert cleared["value"] == ""
    assert {k: cleared[k] for k in ("key", "path", "httponly", "secure", "samesite")} == {
        k: kw[k] for k in ("key", "path", "httponly", "secure", "samesite")
    }
