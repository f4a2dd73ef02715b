"""
auth/errors.py -- Error taxonomy for the token, cookie and session layers.

Three families, each carrying a machine-readable reason:

  ConfigError  -- raised at construction time (short key, duplicate or unknown
                  session backend). Fatal: callers let it propagate.
  TokenError   -- raised internally while checking a token. TokenCodec.verify()
                  collapses every reason into a single None so callers cannot
                  be used as an oracle. Only ENCODING_FAILED escapes, from
                  generate(), because it signals a caller bug.
  CookieError  -- raised while parsing an untrusted Cookie header. The session
                  layer treats it as "no existing session".

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class ConfigErrorReason(str, Enum):
    KEY_TOO_SHORT = "key_too_short"
    DUPLICATE_BACKEND = "duplicate_backend"
    UNKNOWN_BACKEND = "unknown_backend"


class TokenErrorReason(str, Enum):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"
    ISSUER_MISMATCH = "issuer_mismatch"
    AUDIENCE_MISMATCH = "audience_mismatch"
    ENCODING_FAILED = "encoding_failed"


class CookieErrorReason(str, Enum):
    EMPTY_KEY = "empty_key"


class AuthError(Exception):
    """Base class for every error raised by the auth package."""

    def __init__(self, reason: Enum, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.reason.value!r}, {str(self)!r})"


class ConfigError(AuthError, ValueError):
    reason: ConfigErrorReason


class TokenError(AuthError):
    reason: TokenErrorReason


class CookieError(AuthError, ValueError):
    reason: CookieErrorReason
