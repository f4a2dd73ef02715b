"""
auth/tokens.py -- Compact signed tokens (JWT-style, HS256).

Wire format:
  base64url(JSON(header)) "." base64url(JSON(payload)) "." base64url(HMAC-SHA256)
  Compact JSON (no whitespace), base64url without padding. Tokens are plain
  HS256 JWTs, so any standard JWT library holding the same key accepts them.

Security design decisions:
  Key length: keys shorter than 32 characters (or bytes) are refused at
       construction with ConfigError(KEY_TOO_SHORT). HMAC-SHA256 is only as
       strong as its key's entropy.

  Constant-time comparison: the received and expected signatures are decoded
       to raw bytes, rejected on length mismatch, then compared with
       hmac.compare_digest so the running time does not reveal how many
       leading bytes matched.

  Canonical signatures: base64url has slack bits in its last character, so
       two different strings can decode to the same bytes. A signature that
       does not re-encode to exactly the received text is rejected -- any
       single-character edit to a token must invalidate it.

  No oracle: verify() returns None on every failure. The precise reason is
       logged at DEBUG for operators and never returned to the caller.

  Reserved claims win: iat (and exp/iss/aud when configured) overwrite any
       caller-supplied claim of the same name.

The codec holds only its key and configuration, so one instance can be shared
across threads without locking.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import Any, Optional, Union

from jose.constants import ALGORITHMS
from jose.utils import base64url_decode, base64url_encode

from auth.errors import ConfigError, ConfigErrorReason, TokenError, TokenErrorReason

logger = logging.getLogger("whendy.auth")

MIN_KEY_LENGTH = 32

_DEFAULT_HEADER = {"alg": ALGORITHMS.HS256, "typ": "JWT"}


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


def _b64encode(raw: bytes) -> str:
    return base64url_encode(raw).decode("ascii")


def _b64decode(segment: str) -> bytes:
    """Decode an unpadded base64url segment. Raises ValueError on bad input."""
    return base64url_decode(segment.encode("ascii"))


def _encode_json(obj: Any) -> str:
    """Return base64url(compact JSON(obj)).

    allow_nan=False because NaN/Infinity are not JSON and would produce a
    token other implementations refuse to parse.
    """
    try:
        raw = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise TokenError(TokenErrorReason.ENCODING_FAILED, f"Error generating token: {exc}") from exc
    return _b64encode(raw.encode("utf-8"))


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Issue and validate compact HS256 tokens with a symmetric key.

    Args:
        key:        Signing key, str or bytes, at least 32 characters/bytes.
        header:     Overrides merged into the default {"alg": "HS256", "typ": "JWT"}.
                    The signature is always HMAC-SHA256 whatever alg says.
        expires_in: Lifetime in seconds. When set, generate() adds exp = iat + expires_in.
        issuer:     When set, generate() adds iss and verify() requires it.
        audience:   When set, generate() adds aud and verify() requires it.
        clock:      Source of the current Unix time in seconds (time.time).
    """

    def __init__(
        self,
        key: Union[str, bytes],
        header: Optional[Mapping[str, Any]] = None,
        expires_in: Optional[int] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not key or len(key) < MIN_KEY_LENGTH:
            raise ConfigError(
                ConfigErrorReason.KEY_TOO_SHORT,
                f"Signing key must be at least {MIN_KEY_LENGTH} characters.",
            )
        self._key = key.encode("utf-8") if isinstance(key, str) else bytes(key)
        self._header = {**_DEFAULT_HEADER, **(header or {})}
        self._header_segment = _encode_json(self._header)
        self.expires_in = expires_in
        self.issuer = issuer
        self.audience = audience
        self._clock = clock

    @property
    def header(self) -> dict[str, Any]:
        return dict(self._header)

    def sign(self, message: str) -> str:
        """Return base64url(HMAC-SHA256(key, message))."""
        digest = hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).digest()
        return _b64encode(digest)

    def generate(self, payload: Mapping[str, Any]) -> str:
        """Return a signed token carrying payload plus the reserved claims.

        Raises TokenError(ENCODING_FAILED) if payload is not a mapping or is
        not JSON-serializable. Nothing is returned in that case.
        """
        if not isinstance(payload, Mapping):
            raise TokenError(
                TokenErrorReason.ENCODING_FAILED,
                f"Error generating token: payload must be a mapping, got {type(payload).__name__}",
            )
        now = math.floor(self._clock())
        claims = dict(payload)
        claims["iat"] = now
        if self.expires_in is not None:
            claims["exp"] = now + self.expires_in
        if self.issuer is not None:
            claims["iss"] = self.issuer
        if self.audience is not None:
            claims["aud"] = self.audience

        payload_segment = _encode_json(claims)
        signing_input = f"{self._header_segment}.{payload_segment}"
        return f"{signing_input}.{self.sign(signing_input)}"

    def verify(self, token: str) -> Optional[dict[str, Any]]:
        """Return the token's claims, or None if it is invalid for any reason."""
        try:
            return self._check(token)
        except TokenError as exc:
            logger.debug("Token rejected: %s (%s)", exc.reason.value, exc)
            return None

    # ------------------------------------------------------------------
    # Internal checks -- each failure raises TokenError with its reason
    # ------------------------------------------------------------------

    def _check(self, token: str) -> dict[str, Any]:
        if not isinstance(token, str):
            raise TokenError(TokenErrorReason.MALFORMED, "token is not a string")
        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            raise TokenError(TokenErrorReason.MALFORMED, "expected three non-empty segments")
        header_segment, payload_segment, signature_segment = parts

        self._check_signature(f"{header_segment}.{payload_segment}", signature_segment)

        try:
            payload = json.loads(_b64decode(payload_segment))
        except ValueError as exc:
            raise TokenError(TokenErrorReason.MALFORMED, "payload is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise TokenError(TokenErrorReason.MALFORMED, "payload is not a JSON object")

        exp = payload.get("exp")
        if exp is not None:
            if isinstance(exp, bool) or not isinstance(exp, (int, float)):
                raise TokenError(TokenErrorReason.MALFORMED, "exp is not numeric")
            if self._clock() >= exp:
                raise TokenError(TokenErrorReason.EXPIRED, "token expired")

        if self.issuer is not None and payload.get("iss") != self.issuer:
            raise TokenError(TokenErrorReason.ISSUER_MISMATCH, "issuer mismatch")
        if self.audience is not None and payload.get("aud") != self.audience:
            raise TokenError(TokenErrorReason.AUDIENCE_MISMATCH, "audience mismatch")
        return payload

    def _check_signature(self, signing_input: str, signature_segment: str) -> None:
        expected_segment = self.sign(signing_input)
        try:
            received = _b64decode(signature_segment)
        except ValueError as exc:
            raise TokenError(TokenErrorReason.MALFORMED, "signature is not base64url") from exc
        if _b64encode(received) != signature_segment:
            raise TokenError(TokenErrorReason.SIGNATURE_INVALID, "signature is not canonical base64url")
        expected = _b64decode(expected_segment)
        if len(received) != len(expected) or not hmac.compare_digest(received, expected):
            raise TokenError(TokenErrorReason.SIGNATURE_INVALID, "signature mismatch")
