from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import Conflict, NotFound

from app.taskboard.audit import record_event, track_change
from app.taskboard.constants import ALL_ROLES, MANAGER_ROLES
from app.taskboard.errors import ValidationFailed
from app.taskboard.modules.catalogs.models import Priority, TaskManagementRole, TaskStatus
from app.taskboard.pagination import PageRequest, filter_contains, filter_exact, paginate
from app.taskboard.utils import clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.taskboard.models import User

SORTABLE = ("code", "name", "created_at", "updated_at")


@dataclass(frozen=True)
class Catalog:
    model: type
    segment: str  # URL segment under /task-management/<role>/
    entity_type: str
    action_prefix: str
    read_roles: frozenset[str]
    write_roles: frozenset[str]


CATALOGS = (
    Catalog(
        model=TaskManagementRole,
        segment="task-management-roles",
        entity_type="TaskManagementRole",
        action_prefix="task_management_role",
        read_roles=MANAGER_ROLES,
        write_roles=MANAGER_ROLES,
    ),
    Catalog(
        model=TaskStatus,
        segment="task-statuses",
        entity_type="TaskStatus",
        action_prefix="task_status",
        read_roles=ALL_ROLES,
        write_roles=MANAGER_ROLES,
    ),
    Catalog(
        model=Priority,
        segment="priorities",
        entity_type="Priority",
        action_prefix="priority",
        read_roles=frozenset({"tpm", "pmo"}),
        write_roles=frozenset({"tpm", "pmo"}),
    ),
)


def serialize_entry(row) -> dict:
    return {
        "id": row.id,
        "code": row.code,
        "name": row.name,
        "description": row.description,
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def validate_entry_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors = []
    for field in ("code", "name"):
        if partial and field not in payload:
            continue
        if not clean_str(payload.get(field)):
            errors.append(f"{field} is required.")
    code = clean_str(payload.get("code"))
    if code and len(code) > 64:
        errors.append("code must be at most 64 characters.")
    return errors


def _ensure_code_free(s: "Session", catalog: Catalog, code: str, exclude_id: str | None = None) -> None:
    model = catalog.model
    q = s.query(model).filter(model.code == code)
    if exclude_id:
        q = q.filter(model.id != exclude_id)
    if q.first() is not None:
        raise Conflict(f"{catalog.entity_type} code '{code}' already exists.")


def search_entries(s: "Session", catalog: Catalog, body: dict) -> dict:
    model = catalog.model
    page = PageRequest.from_body(body, sortable=SORTABLE, default_sort="code")
    q = s.query(model).filter(model.deleted_at.is_(None))
    q = filter_exact(q, model.code, body.get("code"))
    q = filter_exact(q, model.name, body.get("name"))
    q = filter_contains(q, body.get("search"), model.name, model.description)
    columns = {name: getattr(model, name) for name in SORTABLE}
    return paginate(q, page, columns, id_column=model.id, serialize=serialize_entry)


def get_entry(s: "Session", catalog: Catalog, entry_id: str):
    row = s.get(catalog.model, entry_id)
    if row is None or row.deleted_at is not None:
        raise NotFound(f"{catalog.entity_type} not found.")
    return row


def create_entry(s: "Session", catalog: Catalog, payload: dict, user: "User"):
    errors = validate_entry_payload(payload)
    if errors:
        raise ValidationFailed(errors)
    code = clean_str(payload.get("code"))
    _ensure_code_free(s, catalog, code)

    now = datetime.utcnow()
    row = catalog.model(
        code=code,
        name=clean_str(payload.get("name")),
        description=clean_str(payload.get("description")),
        created_at=now,
        updated_at=now,
    )
    s.add(row)
    s.flush()
    record_event(
        s,
        actor=user,
        action=f"{catalog.action_prefix}.create",
        entity_type=catalog.entity_type,
        entity_id=row.id,
        metadata={"code": row.code, "name": row.name},
    )
    return row


def update_entry(s: "Session", catalog: Catalog, row, payload: dict, user: "User"):
    errors = validate_entry_payload(payload, partial=True)
    if errors:
        raise ValidationFailed(errors)

    changes: dict = {}
    if "code" in payload:
        code = clean_str(payload.get("code"))
        if code != row.code:
            _ensure_code_free(s, catalog, code, exclude_id=row.id)
        track_change(changes, row, "code", code)
    if "name" in payload:
        track_change(changes, row, "name", clean_str(payload.get("name")))
    if "description" in payload:
        track_change(changes, row, "description", clean_str(payload.get("description")))

    row.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action=f"{catalog.action_prefix}.update",
        entity_type=catalog.entity_type,
        entity_id=row.id,
        metadata={"code": row.code, "changes": changes},
    )
    return row


def erase_entry(s: "Session", catalog: Catalog, row, user: "User") -> None:
    now = datetime.utcnow()
    row.deleted_at = now
    row.updated_at = now
    record_event(
        s,
        actor=user,
        action=f"{catalog.action_prefix}.erase",
        entity_type=catalog.entity_type,
        entity_id=row.id,
        metadata={"code": row.code},
    )
