"""
auth/sessions.py -- Bind an HTTP exchange to a server-side Session via a cookie.

Flow per request:
  1. Parse the Cookie header and look up the configured cookie name.
  2. Cookie present and non-empty -> its value is the session id; the store
     returns (or creates) that Session.
  3. Otherwise mint a fresh id, claim it atomically in the store, and emit a
     Set-Cookie through the caller's sink.

Security design decisions:
  Session ids are 32 bytes from secrets, base64url-encoded without padding
  (43 characters, 256 bits). Collisions are astronomically unlikely; the
  insert-if-absent retry loop still guarantees a new session never reuses an
  existing id, even under concurrent requests.

  The session cookie defaults to Secure, HttpOnly and SameSite=Strict. Config
  may override each attribute explicitly.

  A malformed Cookie header is attacker-controlled input. CookieError is
  logged and handled as "no session" -- the client simply gets a fresh one.

Layer rule: no imports from api/ or core/. The host framework passes the raw
Cookie header in and receives Set-Cookie values through a callback.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from typing import Optional

from auth.cookies import CookieJar, build_removal_cookie, serialize_cookie
from auth.errors import CookieError
from auth.models import CookieRecord, Session, SessionManagerConfig
from auth.store import SessionStore, SessionStoreRegistry

logger = logging.getLogger("whendy.auth")

SESSION_ID_BYTES = 32

# Session key holding the authenticated principal. Only server-side login
# code writes it; client-facing writes to this key must be refused.
PRINCIPAL_KEY = "principal"

SetCookieSink = Callable[[str], None]


def new_session_id() -> str:
    """Return 32 random bytes as unpadded base64url."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


class SessionManager:
    """Create, resume and destroy cookie-bound sessions on one store backend.

    Args:
        config:     Cookie name, backend name and cookie attributes.
        registry:   Registry the backend name is resolved against. Raises
                    ConfigError(UNKNOWN_BACKEND) when the name is missing.
        id_factory: Source of new session ids (new_session_id).
    """

    def __init__(
        self,
        config: SessionManagerConfig,
        registry: SessionStoreRegistry,
        id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        factory = registry.resolve(config.store_backend_name)
        self.config = config
        self._store: SessionStore = factory()
        self._id_factory = id_factory

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def cookie_name(self) -> str:
        return self.config.cookie_name

    def start(self, cookie_header: Optional[str], set_cookie: SetCookieSink) -> Session:
        """Return the Session bound to this exchange, creating one if needed."""
        session_id = self.session_id_from(cookie_header)
        if session_id:
            return self._store.init(session_id)

        session = self._insert_new()
        set_cookie(serialize_cookie(self._session_cookie(session.id)))
        logger.debug("Session created (%s...)", session.id[:8])
        return session

    def create(self, session_id: Optional[str] = None) -> Session:
        """Create a brand-new Session, using session_id when it is still free.

        Never returns an existing session: a taken or empty session_id falls
        back to a freshly generated id.
        """
        if session_id:
            session = self._store.insert_if_absent(session_id)
            if session is not None:
                return session
        return self._insert_new()

    def destroy(
        self,
        cookie_header: Optional[str],
        set_cookie: SetCookieSink,
        session_id: Optional[str] = None,
    ) -> None:
        """Expire the session cookie and drop the Session from the store.

        When session_id is omitted, the id is taken from the Cookie header.
        The removal cookie is emitted either way.
        """
        if session_id is None:
            session_id = self.session_id_from(cookie_header)
        set_cookie(build_removal_cookie(self.cookie_name, **self._cookie_attrs()))
        if session_id:
            self._store.destroy(session_id)
            logger.debug("Session destroyed (%s...)", session_id[:8])

    def find(self, cookie_header: Optional[str]) -> Optional[Session]:
        """Return the existing Session named by a Cookie header, or None. Never creates."""
        session_id = self.session_id_from(cookie_header)
        return self._store.read(session_id) if session_id else None

    def session_id_from(self, cookie_header: Optional[str]) -> Optional[str]:
        """Return the session id carried by a Cookie header, or None."""
        try:
            jar = CookieJar(cookie_header)
        except CookieError as exc:
            logger.debug("Ignoring malformed Cookie header: %s", exc.reason.value)
            return None
        record = jar.get(self.cookie_name)
        return record.value if record is not None and record.value else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _insert_new(self) -> Session:
        while True:
            session = self._store.insert_if_absent(self._id_factory())
            if session is not None:
                return session
            logger.debug("Session id collision, regenerating")

    def _cookie_attrs(self) -> dict:
        attrs = self.config.cookie_attributes
        return {
            "path": attrs.path,
            "domain": attrs.domain,
            "secure": True if attrs.secure is None else attrs.secure,
            "http_only": True if attrs.http_only is None else attrs.http_only,
            "same_site": "Strict" if attrs.same_site is None else attrs.same_site,
        }

    def _session_cookie(self, session_id: str) -> CookieRecord:
        return CookieRecord(
            name=self.cookie_name,
            value=session_id,
            max_age=self.config.cookie_attributes.max_age,
            **self._cookie_attrs(),
        )
