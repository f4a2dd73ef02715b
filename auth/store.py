"""
auth/store.py -- Session storage backends and the registry that names them.

Pattern: Repository behind an abstract base class, plus a registry of named
factories. SessionManager asks the registry for a backend by name
(SESSION_STORE_BACKEND) and never touches the id -> Session map directly.

The registry is an explicit value handed to SessionManager, not module-level
state. default_registry() builds a fresh one each call, so tests get isolated
backends and never leak registrations into one another.

Concurrency:
  InMemorySessionStore guards its map with a single threading.Lock.
  insert_if_absent() is the atomic check-then-act primitive new sessions are
  created through -- a separate read() followed by init() would let two
  concurrent requests claim the same id.

The in-memory backend keeps nothing across restarts.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from typing import Optional

from auth.errors import ConfigError, ConfigErrorReason
from auth.models import Session

# ---------------------------------------------------------------------------
# Backend interface
# ---------------------------------------------------------------------------


class SessionStore(ABC):
    """Interface every session storage backend implements."""

    @abstractmethod
    def init(self, session_id: str) -> Session:
        """Return the Session for session_id, creating an empty one if needed."""

    @abstractmethod
    def read(self, session_id: str) -> Optional[Session]:
        """Return the Session for session_id, or None. Never creates."""

    @abstractmethod
    def insert_if_absent(self, session_id: str) -> Optional[Session]:
        """Atomically create a Session for an unused id.

        Returns the new Session, or None when the id is already taken.
        """

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        """Remove the Session for session_id. No-op when absent."""


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def init(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(session_id)
                self._sessions[session_id] = session
            return session

    def read(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def insert_if_absent(self, session_id: str) -> Optional[Session]:
        with self._lock:
            if session_id in self._sessions:
                return None
            session = Session(session_id)
            self._sessions[session_id] = session
            return session

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

StoreFactory = Callable[[], SessionStore]


class SessionStoreRegistry:
    """Append-only mapping of backend name -> zero-argument store factory."""

    def __init__(self) -> None:
        self._factories: dict[str, StoreFactory] = {}

    def register(self, name: str, factory: StoreFactory) -> None:
        if name in self._factories:
            raise ConfigError(
                ConfigErrorReason.DUPLICATE_BACKEND,
                f'Session store backend "{name}" already registered',
            )
        self._factories[name] = factory

    def resolve(self, name: str) -> StoreFactory:
        try:
            return self._factories[name]
        except KeyError:
            raise ConfigError(
                ConfigErrorReason.UNKNOWN_BACKEND,
                f'Session store backend "{name}" not registered',
            ) from None

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())


def default_registry() -> SessionStoreRegistry:
    """Return a new registry with the built-in "memory" backend registered."""
    registry = SessionStoreRegistry()
    registry.register("memory", InMemorySessionStore)
    return registry
