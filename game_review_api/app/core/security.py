"""
Authentication helpers: bearer tokens and password hashes.

Tokens are compact HS256 JWTs (``header.claims.signature``, base64url
without padding) signed with ``settings.secret_key``.  The ``sub``
claim holds the user id; the role is looked up on every request so a
promotion or deletion takes effect immediately.

Password hashes are stored as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``
so the work factor can be raised without invalidating existing hashes.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection


HASH_SCHEME = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 100_000


def _encode_segment(obj: Any) -> str:
    raw = obj if isinstance(obj, bytes) else json.dumps(obj, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_segment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _signature(signing_input: str) -> bytes:
    return hmac.new(settings.secret_key.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Return a signed token carrying ``data`` plus ``iat`` and ``exp``.

    ``expires_delta`` is the lifetime in seconds and defaults to
    ``settings.access_token_expire_minutes``.
    """
    now = int(time.time())
    lifetime = expires_delta or settings.access_token_expire_minutes * 60
    claims = {**data, "iat": now, "exp": now + lifetime}
    signing_input = ".".join(
        (_encode_segment({"alg": settings.algorithm, "typ": "JWT"}), _encode_segment(claims))
    )
    return f"{signing_input}.{_encode_segment(_signature(signing_input))}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the claims of a valid, unexpired token or ``None``."""
    try:
        header_seg, claims_seg, signature_seg = token.split(".")
        header = json.loads(_decode_segment(header_seg))
        signature = _decode_segment(signature_seg)
        claims = json.loads(_decode_segment(claims_seg))
    except ValueError:
        # Wrong segment count, bad base64 or bad JSON.
        return None
    if not isinstance(header, dict) or header.get("alg") != settings.algorithm:
        return None
    if not hmac.compare_digest(signature, _signature(f"{header_seg}.{claims_seg}")):
        return None
    if not isinstance(claims, dict) or not isinstance(claims.get("exp"), int):
        return None
    if claims["exp"] < time.time():
        return None
    return claims


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Dict[str, Any]:
    """FastAPI dependency resolving the bearer token to ``{user_id, username, role}``."""
    if credentials is None:
        raise _unauthorized("Not authorized to access this route")
    claims = decode_access_token(credentials.credentials)
    subject = str(claims.get("sub", "")) if claims else ""
    if not subject.isdigit():
        raise _unauthorized("Invalid or expired token")

    conn = get_connection()
    try:
        row = conn.execute("SELECT id, username, role FROM users WHERE id = ?", (int(subject),)).fetchone()
    finally:
        conn.close()
    if row is None:
        raise _unauthorized("User not found")
    return {"user_id": row["id"], "username": row["username"], "role": row["role"]}


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = _pbkdf2(password, salt, PBKDF2_ITERATIONS)
    return f"{HASH_SCHEME}${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check ``plain_password`` against a hash produced by :func:`hash_password`."""
    try:
        scheme, iterations, salt_hex, digest_hex = hashed_password.split("$")
        salt, expected = bytes.fromhex(salt_hex), bytes.fromhex(digest_hex)
        rounds = int(iterations)
    except (AttributeError, ValueError):
        return False
    if scheme != HASH_SCHEME:
        return False
    return hmac.compare_digest(_pbkdf2(plain_password, salt, rounds), expected)
