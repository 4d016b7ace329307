"""
Study-assistant auth server.

Google sign-in (authorization-code flow), signed session cookies and the identity
endpoint the front-end polls to learn who is logged in. Stateless: every request carries
what it needs in cookies or in the signed `state` parameter.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from studyhub.auth.config import (
    AuthConfig,
    config_problems,
    load_auth_config,
    require_google_client,
    require_session_secret,
)
from studyhub.auth.deps import authenticate_request
from studyhub.auth.errors import AuthError, ConfigurationError, ProtocolError, UpstreamError, error_response
from studyhub.auth.google import build_authorize_url, decode_id_token, exchange_code_for_tokens
from studyhub.auth.session import clear_session_cookie_kwargs, encode_session, session_cookie_kwargs
from studyhub.auth.state import STATE_COOKIE_NAME, check_callback_state, new_state, sign_state
from studyhub.auth.util import request_base_url

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/google"
CALLBACK_PATH = "/auth/google/callback"


app = FastAPI(title="Study assistant auth")


def _state_cookie_kwargs(cfg: AuthConfig, *, value: str, max_age: int) -> dict:
    return {
        "key": STATE_COOKIE_NAME,
        "value": value,
        "max_age": max_age,
        "httponly": True,
        "secure": cfg.state_cookie_secure,
        "samesite": cfg.state_cookie_samesite,
        "path": "/",
    }


def _state_cookie_clear_kwargs(cfg: AuthConfig) -> dict:
    return _state_cookie_kwargs(cfg, value="", max_age=0)


def _app_root(cfg: AuthConfig, request: Request) -> str:
    return f"{cfg.frontend_origin or request_base_url(request)}/"


def _is_public_path(path: str) -> bool:
    if path == "/health":
        return True
    # Login/callback must be reachable without a session.
    if path in (LOGIN_PATH, CALLBACK_PATH, "/api/auth/google"):
        return True
    # Allow logout even if the cookie is already missing/invalid.
    if path == "/auth/logout":
        return True
    return False


@app.exception_handler(AuthError)
async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error("%s %s - configuration error: %s", request.method, request.url.path, exc.details)
    return error_response(exc)


@app.on_event("startup")
def _startup_check_config() -> None:
    """Warn early about settings that will make every login fail; never blocks startup."""
    for problem in config_problems(load_auth_config()):
        logger.warning("Auth configuration: %s. Login will fail until this is fixed.", problem)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests and enforce the session on non-public paths."""
    start_time = time.time()
    logger.debug("%s %s", request.method, request.url.path)
    try:
        path = request.url.path or ""

        if request.method == "OPTIONS" or _is_public_path(path):
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
            return response

        # Fail closed: anything not explicitly public requires a valid session.
        try:
            request.state.user = authenticate_request(request)
        except AuthError as e:
            if isinstance(e, ConfigurationError):
                logger.error("%s %s - configuration error: %s", request.method, request.url.path, e.details)
            # No `WWW-Authenticate`: browsers would pop a basic-auth dialog over the in-app login.
            return error_response(e)

        response = await call_next(request)
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise


# Registered after log_requests so CORS is the outermost layer and also decorates
# the gate's early 401/500 responses.
_frontend_origin = load_auth_config().frontend_origin
if _frontend_origin:
    # Split deployments: the UI on its own origin calls /api/me with credentials.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[_frontend_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True}


@app.get("/api/auth/google")
def auth_google_legacy(request: Request) -> RedirectResponse:
    """Older front-end builds start login here."""
    return RedirectResponse(url=f"{request_base_url(request)}{LOGIN_PATH}", status_code=308)


@app.get(LOGIN_PATH)
def auth_google(request: Request) -> RedirectResponse:
    """Start Google sign-in: set the state cookie and redirect to the consent screen."""
    cfg = load_auth_config()
    require_google_client(cfg)
    secret = require_session_secret(cfg)

    redirect_uri = f"{request_base_url(request)}{CALLBACK_PATH}"
    state = new_state()
    url = build_authorize_url(cfg, redirect_uri=redirect_uri, state=sign_state(secret, state))

    resp = RedirectResponse(url=url, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**_state_cookie_kwargs(cfg, value=state, max_age=cfg.state_ttl_seconds))
    logger.info("OAuth login initiated (redirect_uri=%s)", redirect_uri)
    return resp


@app.get(CALLBACK_PATH)
def auth_google_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
) -> RedirectResponse:
    """Handle the provider redirect: check state, exchange the code, issue the session."""
    if error:
        logger.info("OAuth callback carried provider error: %s", error)
        raise ProtocolError("Authorization denied", details=error)
    code = (code or "").strip()
    state = (state or "").strip()
    if not code:
        raise ProtocolError("missing code")
    if not state:
        raise ProtocolError("missing state")

    cfg = load_auth_config()
    require_google_client(cfg, need_secret=True)
    secret = require_session_secret(cfg)

    check_callback_state(
        secret,
        returned=state,
        cookie_value=request.cookies.get(STATE_COOKIE_NAME),
        max_age=cfg.state_ttl_seconds,
    )

    # Must match the redirect_uri sent at login, which was built from the same host.
    redirect_uri = f"{request_base_url(request)}{CALLBACK_PATH}"
    tokens = exchange_code_for_tokens(cfg, code=code, redirect_uri=redirect_uri)
    id_token = str(tokens.get("id_token") or "").strip()
    if not id_token:
        logger.warning("Token response did not include an id_token")
        raise UpstreamError("Missing id_token")

    identity = decode_id_token(id_token)
    session_value = encode_session(secret, identity, ttl_seconds=cfg.session_ttl_seconds)

    resp = RedirectResponse(url=_app_root(cfg, request), status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**session_cookie_kwargs(cfg, session_value))
    resp.set_cookie(**_state_cookie_clear_kwargs(cfg))
    logger.info("OAuth login succeeded (sub=%s)", identity.sub)
    return resp


@app.post("/auth/logout")
def auth_logout() -> JSONResponse:
    cfg = load_auth_config()
    resp = JSONResponse(content={"ok": True})
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**clear_session_cookie_kwargs(cfg))
    resp.set_cookie(**_state_cookie_clear_kwargs(cfg))
    logger.info("Logout")
    return resp


@app.get("/api/me")
def me(request: Request) -> JSONResponse:
    """Return the signed-in user's claims exactly as stored in the session."""
    user = getattr(request.state, "user", None)
    if not user:
        user = authenticate_request(request)
    resp = JSONResponse(content={"user": user})
    resp.headers["Cache-Control"] = "no-store"
    return resp


def run(host: str = "0.0.0.0", port: Optional[int] = None) -> None:
    import uvicorn

    # Configure logging for the application
    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    if port is None:
        port = load_auth_config().port
    logger.info("Starting auth server on %s:%d (log_level=%s)", host, port, log_level)
    # proxy_headers: trust X-Forwarded-Proto so callback URLs keep https behind a proxy.
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level, proxy_headers=True)
