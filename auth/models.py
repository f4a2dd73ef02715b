"""
auth/models.py -- Domain dataclasses for cookies, sessions and session config.

Pattern: Data class. Dataclasses own domain shape; the codec, store and
manager modules do the work. Session is the one exception that carries a few
accessors, because application code reads and writes it directly.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

from auth.errors import CookieError, CookieErrorReason

SameSite = Literal["Strict", "Lax", "None"]
Priority = Literal["Low", "Medium", "High"]


@dataclass
class CookieRecord:
    """One cookie plus its Set-Cookie attributes.

    Built fresh per response and discarded after serialization. Parsed
    inbound cookies only fill name and value -- browsers never send the
    attributes back.
    """

    name: str
    value: str = ""
    domain: Optional[str] = None
    path: Optional[str] = "/"
    expires: Optional[datetime] = None
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[SameSite] = None
    priority: Optional[Priority] = None
    signed: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise CookieError(CookieErrorReason.EMPTY_KEY, "Cookie name must be a non-empty string")


@dataclass(frozen=True, eq=False)
class Session:
    """A server-side session owned by exactly one SessionStore.

    Frozen so the id cannot be reassigned; data stays a mutable dict and
    load() replaces its contents in place so every holder of the Session
    keeps seeing the same mapping. Sessions compare and hash by identity.
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Session id is required")

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def load(self, data: dict[str, Any]) -> None:
        """Replace the session contents with a shallow copy of data."""
        self.data.clear()
        self.data.update(data)

    def snapshot(self) -> dict[str, Any]:
        """Return a shallow copy of the session data."""
        return dict(self.data)


@dataclass
class CookieAttributes:
    """Attributes applied to the session cookie.

    None for secure / http_only / same_site means "use the session default"
    (Secure, HttpOnly, SameSite=Strict). Set them explicitly to opt out.
    """

    path: Optional[str] = "/"
    secure: Optional[bool] = None
    http_only: Optional[bool] = None
    same_site: Optional[SameSite] = None
    max_age: Optional[int] = None
    domain: Optional[str] = None


@dataclass
class SessionManagerConfig:
    cookie_name: str
    store_backend_name: str = "memory"
    cookie_attributes: CookieAttributes = field(default_factory=CookieAttributes)

    def __post_init__(self) -> None:
        if not self.cookie_name:
            raise ValueError("cookie_name is required")
