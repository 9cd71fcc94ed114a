from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.exceptions import NotFound, TooManyRequests, Unauthorized
from werkzeug.security import check_password_hash

from app.taskboard.audit import record_event
from app.taskboard.constants import ROLES
from app.taskboard.db import db_session
from app.taskboard.errors import ValidationFailed
from app.taskboard.models import User
from app.taskboard.modules.directory.service import build_member, find_active_member, serialize_member
from app.taskboard.security import ACCESS, REFRESH, bearer_token, decode_token, issue_tokens
from app.taskboard.utils import clean_str, json_body

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    recent = [t for t in _login_attempts.get(ip, ()) if t > cutoff]
    if recent:
        _login_attempts[ip] = recent
    else:
        _login_attempts.pop(ip, None)
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user from the bearer access token.
    Also assigns a per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = (request.headers.get("X-Request-ID") or "").strip()[:64] or uuid.uuid4().hex
    g.current_user = None
    g.auth_error = None
    if request.path.startswith(("/health", "/healthz", "/ready")):
        return

    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return
    try:
        claims = decode_token(token, expected_type=ACCESS)
    except Unauthorized as e:
        g.auth_error = e.description
        return

    user = find_active_member(db_session(), claims.user_id, role=claims.role)
    if user is None:
        g.auth_error = "Member not found or deactivated."
        return
    g.current_user = user


def _require_known_role(role: str) -> None:
    if role not in ROLES:
        raise NotFound(f"Unknown role '{role}'.")


def _authorized(user: User) -> dict:
    out = serialize_member(user)
    out["token"] = issue_tokens(user)
    return out


@bp.post("/<role>/join")
def join(role: str):
    _require_known_role(role)
    s = db_session()
    user = build_member(s, role, json_body())
    record_event(s, actor=user, action="auth.join", entity_type="User", entity_id=user.id, metadata={"role": role})
    s.commit()
    current_app.logger.info("Member joined (role=%s id=%s)", role, user.id)
    return jsonify(_authorized(user)), 201


@bp.post("/<role>/login")
def login(role: str):
    _require_known_role(role)
    body = json_body()
    email = (clean_str(body.get("email")) or "").lower()
    password = body.get("password") or ""
    if not isinstance(password, str):
        raise ValidationFailed(["password must be a string."])
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        raise TooManyRequests("Too many login attempts. Please wait 5 minutes.")
    _record_attempt(ip)

    s = db_session()
    user = (
        s.query(User)
        .filter(User.role == role, User.email == email, User.deleted_at.is_(None))
        .one_or_none()
    )
    if not user or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email, "role": role},
        )
        s.commit()
        raise Unauthorized("Invalid credentials.")

    _login_attempts.pop(ip, None)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    s.commit()
    return jsonify(_authorized(user))


@bp.post("/<role>/refresh")
def refresh(role: str):
    _require_known_role(role)
    body = json_body()
    token = clean_str(body.get("refresh_token"))
    if not token:
        raise ValidationFailed(["refresh_token is required."])

    claims = decode_token(token, expected_type=REFRESH)
    if claims.role != role:
        raise Unauthorized("Refresh token was issued for a different role.")

    s = db_session()
    user = find_active_member(s, claims.user_id, role=role)
    if user is None:
        raise Unauthorized("Member not found or deactivated.")
    record_event(s, actor=user, action="auth.refresh", entity_type="User", entity_id=user.id)
    s.commit()
    return jsonify(_authorized(user))
