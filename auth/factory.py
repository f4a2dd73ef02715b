"""
auth/factory.py -- Assemble TokenCodec and SessionManager from Settings.

The only place Settings fields are translated into auth objects, so the api
lifespan and the CLI build identical components. Import from core/ is allowed
-- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

from typing import Optional

from auth.models import CookieAttributes, SessionManagerConfig
from auth.sessions import SessionManager
from auth.store import SessionStoreRegistry, default_registry
from auth.tokens import TokenCodec
from core.config import Settings


def build_token_codec(settings: Settings) -> TokenCodec:
    return TokenCodec(
        settings.secret_key,
        expires_in=settings.token_expire_seconds or None,
        issuer=settings.token_issuer,
        audience=settings.token_audience,
    )


def session_manager_config(settings: Settings) -> SessionManagerConfig:
    return SessionManagerConfig(
        cookie_name=settings.session_cookie_name,
        store_backend_name=settings.session_store_backend,
        cookie_attributes=CookieAttributes(
            path=settings.session_cookie_path,
            secure=settings.secure_cookies,
            http_only=True,
            same_site=settings.session_cookie_samesite,
            max_age=settings.session_cookie_max_age,
            domain=settings.session_cookie_domain,
        ),
    )


def build_session_manager(settings: Settings, registry: Optional[SessionStoreRegistry] = None) -> SessionManager:
    """Build a SessionManager; registry defaults to a fresh default_registry()."""
    return SessionManager(session_manager_config(settings), registry if registry is not None else default_registry())
