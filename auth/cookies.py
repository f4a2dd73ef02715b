"""
auth/cookies.py -- Cookie header parsing and Set-Cookie serialization.

Read side:  "name=value; name2=value2"             (Cookie request header)
Write side: "name=value; Domain=..; Path=/; Secure" (Set-Cookie response header)

Attribute order on write is fixed: Domain, Path, Expires, Max-Age, Secure,
HttpOnly, SameSite, Priority, Signed. Boolean attributes are emitted bare and
only when true.

Parsing quirk kept on purpose: an entry without "=" ("flag") parses as a
cookie whose value is its own name. Existing clients may rely on it.

The Cookie header is attacker-controlled. parse_cookie_header() raises
CookieError on an empty name; callers in the session layer must treat that as
"no cookie", never as a fatal error.

Everything here is pure and safe for concurrent use. CookieJar is the only
stateful piece and lives for a single HTTP exchange; SessionManager reads
inbound cookies through it and host frameworks may use it directly.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Union
from urllib.parse import quote, unquote

from auth.errors import CookieError, CookieErrorReason
from auth.models import CookieRecord

# Characters encodeURIComponent leaves untouched on top of quote()'s defaults.
_VALUE_SAFE = "!*'()"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def encode_value(value: str) -> str:
    return quote(value, safe=_VALUE_SAFE)


def _http_date(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def parse_cookie_header(header: Optional[str]) -> dict[str, CookieRecord]:
    """Parse a Cookie header into {name: CookieRecord}.

    Later duplicates overwrite earlier ones. Raises CookieError(EMPTY_KEY)
    when an entry has no name, e.g. "=value" or a trailing ";".
    """
    cookies: dict[str, CookieRecord] = {}
    if not header or not isinstance(header, str):
        return cookies

    for entry in header.split(";"):
        key, sep, raw_value = entry.partition("=")
        name = key.strip()
        if not name:
            raise CookieError(CookieErrorReason.EMPTY_KEY, f"Invalid cookie format: empty key in {entry!r}")
        value = unquote(raw_value.strip()) if sep else name
        cookies[name] = CookieRecord(name=name, value=value)
    return cookies


def serialize_cookie(record: CookieRecord) -> str:
    """Serialize a record into a Set-Cookie header value."""
    attributes = [f"{record.name}={encode_value(record.value)}"]
    if record.domain:
        attributes.append(f"Domain={record.domain}")
    if record.path:
        attributes.append(f"Path={record.path}")
    if record.expires is not None:
        attributes.append(f"Expires={_http_date(record.expires)}")
    if record.max_age is not None:
        attributes.append(f"Max-Age={record.max_age}")
    if record.secure:
        attributes.append("Secure")
    if record.http_only:
        attributes.append("HttpOnly")
    if record.same_site:
        attributes.append(f"SameSite={record.same_site}")
    if record.priority:
        attributes.append(f"Priority={record.priority}")
    if record.signed:
        attributes.append("Signed")
    return "; ".join(attributes)


def build_removal_cookie(name: str, **attrs) -> str:
    """Return a Set-Cookie value that makes the browser delete the cookie.

    value, expires and max_age are forced to "", the Unix epoch and 0 no
    matter what the caller passes. Domain and Path must match the original
    cookie for the browser to drop it, so pass those through attrs.
    """
    attrs.pop("value", None)
    record = CookieRecord(name=name, **attrs)
    return serialize_cookie(replace(record, value="", expires=_EPOCH, max_age=0))


# ---------------------------------------------------------------------------
# Per-exchange handler
# ---------------------------------------------------------------------------


class CookieJar:
    """Cookies of one HTTP exchange: parsed inbound cookies plus queued Set-Cookie values.

    The host framework writes every string in outgoing as its own Set-Cookie
    header after the handler returns.
    """

    def __init__(self, cookie_header: Optional[str] = None) -> None:
        self.cookies: dict[str, CookieRecord] = parse_cookie_header(cookie_header)
        self.outgoing: list[str] = []

    def __contains__(self, name: str) -> bool:
        return name in self.cookies

    def has(self, name: str) -> bool:
        return name in self.cookies

    def get(self, name: str) -> Optional[CookieRecord]:
        return self.cookies.get(name)

    def add(self, record: CookieRecord) -> None:
        """Add or replace a cookie locally without emitting a header."""
        if not isinstance(record, CookieRecord):
            raise TypeError("record must be a CookieRecord")
        self.cookies[record.name] = record

    def set_cookie(self, cookie: Union[CookieRecord, str]) -> None:
        """Queue a Set-Cookie header. Accepts a record or a pre-serialized string."""
        self.outgoing.append(cookie if isinstance(cookie, str) else serialize_cookie(cookie))

    def remove(self, name: str, **attrs) -> None:
        """Queue a removal cookie and forget the cookie locally."""
        self.set_cookie(build_removal_cookie(name, **attrs))
        self.cookies.pop(name, None)

    def to_list(self) -> list[str]:
        """Serialize every known cookie as a Set-Cookie value."""
        return [serialize_cookie(record) for record in self.cookies.values()]
