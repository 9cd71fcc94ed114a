from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from werkzeug.exceptions import Conflict, Forbidden, NotFound
from werkzeug.security import generate_password_hash

from app.taskboard.audit import record_event
from app.taskboard.constants import MANAGER_ROLES, MIN_PASSWORD_LENGTH
from app.taskboard.errors import ValidationFailed
from app.taskboard.models import User
from app.taskboard.pagination import PageRequest, filter_contains, paginate
from app.taskboard.utils import clean_str, iso, parse_uuid

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

SORTABLE = ("email", "name", "created_at")


def serialize_member(user: User) -> dict:
    return {
        "id": user.id,
        "role": user.role,
        "email": user.email,
        "name": user.name,
        "created_at": iso(user.created_at),
        "updated_at": iso(user.updated_at),
    }


def validate_password(password: object) -> list[str]:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return [f"Password must be at least {MIN_PASSWORD_LENGTH} characters."]
    return []


def find_active_member(s: "Session", user_id: str | None, *, role: str | None = None) -> User | None:
    if not user_id:
        return None
    q = s.query(User).filter(User.id == user_id, User.deleted_at.is_(None))
    if role:
        q = q.filter(User.role == role)
    return q.one_or_none()


def require_member_reference(
    s: "Session",
    raw_id: object,
    field: str,
    *,
    roles: Iterable[str] | None = None,
) -> User:
    """Resolve a member id from a request body; unknown or inactive ids are a 400."""
    user_id = parse_uuid(raw_id, field)
    user = find_active_member(s, user_id)
    if user is None:
        raise ValidationFailed([f"{field} does not reference an active member."])
    if roles is not None and user.role not in set(roles):
        raise ValidationFailed([f"{field} must reference a member with role {', '.join(sorted(roles))}."])
    return user


def build_member(s: "Session", role: str, payload: dict) -> User:
    """Validate a new account for `role` and add it to the session (flushed, not committed)."""
    email = (clean_str(payload.get("email")) or "").lower()
    name = clean_str(payload.get("name"))
    password = payload.get("password") or ""

    errors = []
    if not email or "@" not in email:
        errors.append("A valid email is required.")
    if not name:
        errors.append("Name is required.")
    errors.extend(validate_password(password))
    if errors:
        raise ValidationFailed(errors)

    existing = (
        s.query(User)
        .filter(User.role == role, User.email == email, User.deleted_at.is_(None))
        .one_or_none()
    )
    if existing:
        raise Conflict(f"A {role} account with this email already exists.")

    now = datetime.utcnow()
    user = User(
        role=role,
        email=email,
        name=name,
        password_hash=generate_password_hash(password),
        created_at=now,
        updated_at=now,
    )
    s.add(user)
    s.flush()
    return user


def create_member(s: "Session", role: str, payload: dict, actor: User) -> User:
    if actor.role not in MANAGER_ROLES:
        raise Forbidden("Only a tpm, pm or pmo may create member accounts.")
    user = build_member(s, role, payload)
    record_event(
        s,
        actor=actor,
        action="member.create",
        entity_type="User",
        entity_id=user.id,
        metadata={"role": role, "email": user.email},
    )
    return user


def search_members(s: "Session", role: str, body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=SORTABLE, default_sort="email")
    q = s.query(User).filter(User.role == role, User.deleted_at.is_(None))
    q = filter_contains(q, body.get("email"), User.email)
    q = filter_contains(q, body.get("name"), User.name)
    q = filter_contains(q, body.get("search"), User.email, User.name)
    columns = {"email": User.email, "name": User.name, "created_at": User.created_at}
    return paginate(q, page, columns, id_column=User.id, serialize=serialize_member)


def get_member(s: "Session", role: str, user_id: str) -> User:
    user = find_active_member(s, user_id, role=role)
    if user is None:
        raise NotFound("Member not found.")
    return user


def update_member(s: "Session", member: User, payload: dict, actor: User) -> User:
    if member.id != actor.id:
        raise Forbidden("Members may only update their own account.")

    errors: list[str] = []
    changes: dict = {}
    if "name" in payload:
        name = clean_str(payload.get("name"))
        if not name:
            errors.append("Name cannot be blank.")
        elif name != member.name:
            changes["name"] = {"old": member.name, "new": name}
            member.name = name
    if payload.get("password") is not None:
        errors.extend(validate_password(payload.get("password")))
        if not errors:
            member.password_hash = generate_password_hash(payload["password"])
            # never log the hash
            changes["password"] = {"old": "***", "new": "***"}
    if errors:
        raise ValidationFailed(errors)

    member.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="member.update",
        entity_type="User",
        entity_id=member.id,
        metadata={"role": member.role, "changes": changes},
    )
    return member


def erase_member(s: "Session", member: User, actor: User) -> None:
    if member.id != actor.id and actor.role != "pmo":
        raise Forbidden("Only the member or a pmo may remove this account.")
    now = datetime.utcnow()
    member.deleted_at = now
    member.updated_at = now
    record_event(
        s,
        actor=actor,
        action="member.erase",
        entity_type="User",
        entity_id=member.id,
        metadata={"role": member.role, "email": member.email},
    )
