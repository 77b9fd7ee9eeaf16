"""
Bearer token service (HS256 JWT).

Tokens carry sub/uid (user id), email and role and expire after
JWT_EXPIRES_DAYS (7 by default). The embedded role is informational only:
admin routes re-read the role from the database.

Secret resolution mirrors the deployment conventions: JWT_SECRET wins;
otherwise a SHA-256 digest of JWT_SECRET_FALLBACK, ADMIN_BOOTSTRAP_TOKEN or
ADMIN_PASSWORD is used (with a warning). The result is cached per app.
"""

from __future__ import annotations

import hashlib
from datetime import timedelta, timezone

import jwt
from flask import current_app

from app.time_utils import utcnow

ALGORITHM = "HS256"
_SECRET_CACHE_KEY = "listo.jwt_secret"


class AuthError(Exception):
    """401-level: missing, malformed, expired or unverifiable token."""


def resolve_jwt_secret() -> str | None:
    cache = current_app.extensions
    if _SECRET_CACHE_KEY in cache:
        return cache[_SECRET_CACHE_KEY]

    config = current_app.config
    secret = None
    explicit = (config.get("JWT_SECRET") or "").strip()
    if explicit:
        secret = explicit
    else:
        for source in ("JWT_SECRET_FALLBACK", "ADMIN_BOOTSTRAP_TOKEN", "ADMIN_PASSWORD"):
            value = (config.get(source) or "").strip()
            if value:
                current_app.logger.warning(
                    "Using derived JWT secret from %s. Set JWT_SECRET to silence this warning.",
                    source,
                )
                secret = hashlib.sha256(value.encode("utf-8")).hexdigest()
                break

    cache[_SECRET_CACHE_KEY] = secret
    return secret


def _require_secret() -> str:
    secret = resolve_jwt_secret()
    if not secret:
        raise RuntimeError("JWT secret not set")
    return secret


def issue_token(user) -> str:
    now = utcnow().replace(tzinfo=timezone.utc)
    payload = {
        "sub": user.id,
        "uid": user.id,
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(days=current_app.config.get("JWT_EXPIRES_DAYS", 7)),
    }
    return jwt.encode(payload, _require_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Verify signature and expiry. Returns the claims.

    Raises AuthError on any problem (the message is safe to return).
    """
    secret = resolve_jwt_secret()
    if not secret:
        raise AuthError("Invalid token")
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    if not (claims.get("sub") or claims.get("uid")):
        raise AuthError("Invalid token")
    return claims


def subject_of(claims: dict) -> str:
    return claims.get("sub") or claims.get("uid")
