from __future__ import annotations

from typing import Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorBody(BaseModel):
    error: str
    details: Optional[str] = None


class AuthError(Exception):
    """Base class for failures that end an auth request with a JSON error body."""

    status_code = 400

    def __init__(self, error: str, *, details: Optional[str] = None):
        super().__init__(error if not details else f"{error}: {details}")
        self.error = error
        self.details = details


class ProtocolError(AuthError):
    """Missing/invalid code or state on the callback."""

    status_code = 400


class UpstreamError(AuthError):
    """Token exchange failed or returned an unusable id_token. Callers log the cause; the client gets only `error`."""

    status_code = 400

    def __init__(self, error: str):
        super().__init__(error)


class ConfigurationError(AuthError):
    """Missing or placeholder secrets. Operator-facing, so details are returned."""

    status_code = 500


class Unauthorized(AuthError):
    """Any session cookie problem. The reason is never disclosed."""

    status_code = 401

    def __init__(self) -> None:
        super().__init__("unauthorized")


def error_response(exc: AuthError) -> JSONResponse:
    body = ErrorBody(error=exc.error, details=exc.details)
    resp = JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))
    resp.headers["Cache-Control"] = "no-store"
    return resp
