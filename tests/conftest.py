"""
Pytest config.

Local imports like `import studyhub` rely on the repo root being on sys.path. When a
global `pytest` entrypoint is used without an editable install that doesn't happen
reliably during collection, so we pin it here.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

TEST_SECRET = "test-secret-key-for-testing-purposes-only"

_AUTH_ENV_VARS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_AUTHORIZE_ENDPOINT",
    "GOOGLE_TOKEN_ENDPOINT",
    "APP_SECRET",
    "APP_ENV",
    "FRONTEND_ORIGIN",
    "AUTH_COOKIE_SECURE",
    "AUTH_STATE_COOKIE_SAMESITE",
    "AUTH_HTTP_TIMEOUT_SECONDS",
    "PORT",
)


@pytest.fixture(autouse=True)
def _isolated_auth_config(monkeypatch: pytest.MonkeyPatch):
    """
    Auth config is read from the environment once per process (lru_cache).

    Start every test from an empty auth environment and a cold cache so settings never
    leak between tests (or in from the developer's shell).
    """
    from studyhub.auth.config import load_auth_config

    for name in _AUTH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    load_auth_config.cache_clear()
    yield
    load_auth_config.cache_clear()


@pytest.fixture
def auth_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """A complete, valid Google + session configuration."""
    from studyhub.auth.config import load_auth_config

    monkeypatch.setenv("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setenv("APP_SECRET", TEST_SECRET)
    load_auth_config.cache_clear()
