"""
JWT issue/verify helpers (PyJWT, HMAC).

Access and refresh tokens share the signing key and are told apart by the
"type" claim; both carry the member id ("sub") and role.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app
from werkzeug.exceptions import Unauthorized

from app.taskboard.models import User

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: str


def _encode(user: User, token_type: str, now: datetime, ttl_seconds: int) -> tuple[str, datetime]:
    cfg = current_app.config
    expires_at = now + timedelta(seconds=ttl_seconds)
    payload = {
        "sub": user.id,
        "role": user.role,
        "type": token_type,
        "iss": cfg["JWT_ISSUER"],
        "iat": now,
        "exp": expires_at,
    }
    token = jwt.encode(payload, cfg["JWT_SECRET_KEY"], algorithm=cfg["JWT_ALGORITHM"])
    return token, expires_at


def issue_tokens(user: User) -> dict:
    """Return the token block of an authorized response."""
    cfg = current_app.config
    now = datetime.now(timezone.utc)
    access, access_exp = _encode(user, ACCESS, now, cfg["JWT_ACCESS_TTL_SECONDS"])
    refresh, refresh_exp = _encode(user, REFRESH, now, cfg["JWT_REFRESH_TTL_SECONDS"])
    return {
        "access": access,
        "refresh": refresh,
        "expired_at": access_exp.isoformat(),
        "refreshable_until": refresh_exp.isoformat(),
    }


def decode_token(token: str, *, expected_type: str) -> TokenClaims:
    """Verify signature, issuer, expiry and token type; raise 401 on any failure."""
    cfg = current_app.config
    try:
        payload = jwt.decode(
            token,
            cfg["JWT_SECRET_KEY"],
            algorithms=[cfg["JWT_ALGORITHM"]],
            issuer=cfg["JWT_ISSUER"],
            options={"require": ["exp", "iat", "sub", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired.")
    except jwt.InvalidTokenError as e:
        raise Unauthorized(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise Unauthorized(f"Expected a {expected_type} token.")
    role = payload.get("role")
    if not isinstance(role, str) or not role:
        raise Unauthorized("Token has no role claim.")
    return TokenClaims(user_id=str(payload["sub"]), role=role)


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()
