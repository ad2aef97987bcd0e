"""
Compact HS256 access tokens, built without a JWT library.

Format: base64url(header).base64url(payload).base64url(signature), no padding.
The header is always {"alg": "HS256", "typ": "JWT"}; the payload carries the
caller's claims plus "exp" in milliseconds since the epoch. Any HS256 JWT
implementation holding the same secret can verify these tokens.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
from datetime import timedelta
from typing import Any, Dict

from utils.outcomes import Failure, FailureKind, Ok, Outcome
from utils.security import Clock, now_ms

HEADER = {"alg": "HS256", "typ": "JWT"}


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _json_segment(obj: Dict[str, Any]) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def _key(secret: str | bytes) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else secret


def _signature(signing_input: str, secret: str | bytes) -> str:
    digest = hmac.new(_key(secret), signing_input.encode("utf-8", "surrogatepass"), hashlib.sha256).digest()
    return b64url_encode(digest)


def ttl_ms(ttl: timedelta) -> int:
    return int(ttl / timedelta(milliseconds=1))


def sign(claims: Dict[str, Any], secret: str | bytes, ttl: timedelta, *, clock: Clock = now_ms) -> str:
    """Encode claims with an exp of clock() + ttl and sign them."""
    payload = {**claims, "exp": clock() + ttl_ms(ttl)}
    signing_input = f"{_json_segment(HEADER)}.{_json_segment(payload)}"
    return f"{signing_input}.{_signature(signing_input, secret)}"


def verify(token: str, secret: str | bytes, *, clock: Clock = now_ms) -> Outcome[Dict[str, Any]]:
    """
    Check a token's shape, signature and expiry.
    Returns Ok(claims) or a Failure tagged MALFORMED, SIGNATURE_INVALID or EXPIRED.
    """
    segments = token.split(".")
    if len(segments) != 3:
        return Failure(FailureKind.MALFORMED, "token must have three segments")
    header, payload, signature = segments

    expected = _signature(f"{header}.{payload}", secret)
    if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8", "surrogatepass")):
        return Failure(FailureKind.SIGNATURE_INVALID, "signature mismatch")

    try:
        claims = json.loads(b64url_decode(payload))
    except (binascii.Error, ValueError):
        return Failure(FailureKind.MALFORMED, "payload is not base64url JSON")
    if not isinstance(claims, dict):
        return Failure(FailureKind.MALFORMED, "payload is not an object")

    exp = claims.get("exp")
    if exp is not None:
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return Failure(FailureKind.MALFORMED, "exp is not a finite number")
        if isinstance(exp, float) and not math.isfinite(exp):
            return Failure(FailureKind.MALFORMED, "exp is not a finite number")
        if exp < clock():
            return Failure(FailureKind.EXPIRED, "token expired")
    return Ok(claims)
