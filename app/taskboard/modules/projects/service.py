from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import Conflict, Forbidden, NotFound

from app.taskboard.audit import record_event, track_change
from app.taskboard.constants import MANAGER_ROLES
from app.taskboard.errors import ValidationFailed
from app.taskboard.modules.directory.service import require_member_reference, serialize_member
from app.taskboard.modules.projects.models import Project, ProjectMember
from app.taskboard.pagination import PageRequest, filter_contains, filter_exact, paginate
from app.taskboard.utils import clean_str, iso, parse_uuid

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.taskboard.models import User

SORTABLE = ("code", "name", "created_at", "updated_at")
MEMBER_SORTABLE = ("created_at",)


def serialize_project(p: Project) -> dict:
    return {
        "id": p.id,
        "owner_id": p.owner_id,
        "owner": serialize_member(p.owner) if p.owner else None,
        "code": p.code,
        "name": p.name,
        "description": p.description,
        "created_at": iso(p.created_at),
        "updated_at": iso(p.updated_at),
    }


def serialize_project_member(m: ProjectMember) -> dict:
    return {
        "id": m.id,
        "project_id": m.project_id,
        "user_id": m.user_id,
        "member": serialize_member(m.user) if m.user else None,
        "created_at": iso(m.created_at),
    }


def validate_project_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors = []
    for field in ("code", "name"):
        if partial and field not in payload:
            continue
        if not clean_str(payload.get(field)):
            errors.append(f"{field} is required.")
    return errors


def _ensure_code_free(s: "Session", code: str, exclude_id: str | None = None) -> None:
    q = s.query(Project).filter(Project.code == code)
    if exclude_id:
        q = q.filter(Project.id != exclude_id)
    if q.first() is not None:
        raise Conflict(f"Project code '{code}' already exists.")


def _ensure_can_manage(project: Project, user: "User") -> None:
    if project.owner_id != user.id and user.role != "pmo":
        raise Forbidden("Only the project owner or a pmo may change this project.")


def search_projects(s: "Session", body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=SORTABLE, default_sort="code")
    q = s.query(Project).filter(Project.deleted_at.is_(None))
    q = filter_exact(q, Project.code, body.get("code"))
    q = filter_contains(q, body.get("name"), Project.name)
    q = filter_exact(q, Project.owner_id, parse_uuid(body.get("owner_id"), "owner_id"))
    q = filter_contains(q, body.get("search"), Project.name, Project.description)
    columns = {name: getattr(Project, name) for name in SORTABLE}
    return paginate(q, page, columns, id_column=Project.id, serialize=serialize_project)


def get_project(s: "Session", project_id: str) -> Project:
    p = s.get(Project, project_id)
    if p is None or p.deleted_at is not None:
        raise NotFound("Project not found.")
    return p


def create_project(s: "Session", payload: dict, user: "User") -> Project:
    errors = validate_project_payload(payload)
    if errors:
        raise ValidationFailed(errors)
    owner = user
    if payload.get("owner_id") is not None:
        owner = require_member_reference(s, payload.get("owner_id"), "owner_id", roles=MANAGER_ROLES)
    code = clean_str(payload.get("code"))
    _ensure_code_free(s, code)

    now = datetime.utcnow()
    project = Project(
        owner_id=owner.id,
        code=code,
        name=clean_str(payload.get("name")),
        description=clean_str(payload.get("description")),
        created_at=now,
        updated_at=now,
    )
    s.add(project)
    s.flush()
    record_event(
        s,
        actor=user,
        action="project.create",
        entity_type="Project",
        entity_id=project.id,
        metadata={"code": project.code, "owner_id": project.owner_id},
    )
    return project


def update_project(s: "Session", project: Project, payload: dict, user: "User") -> Project:
    _ensure_can_manage(project, user)
    errors = validate_project_payload(payload, partial=True)
    if errors:
        raise ValidationFailed(errors)

    changes: dict = {}
    if "code" in payload:
        code = clean_str(payload.get("code"))
        if code != project.code:
            _ensure_code_free(s, code, exclude_id=project.id)
        track_change(changes, project, "code", code)
    if "name" in payload:
        track_change(changes, project, "name", clean_str(payload.get("name")))
    if "description" in payload:
        track_change(changes, project, "description", clean_str(payload.get("description")))
    if payload.get("owner_id") is not None:
        owner = require_member_reference(s, payload.get("owner_id"), "owner_id", roles=MANAGER_ROLES)
        track_change(changes, project, "owner_id", owner.id)
        project.owner = owner

    project.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="project.update",
        entity_type="Project",
        entity_id=project.id,
        metadata={"code": project.code, "changes": changes},
    )
    return project


def erase_project(s: "Session", project: Project, user: "User") -> None:
    _ensure_can_manage(project, user)
    now = datetime.utcnow()
    project.deleted_at = now
    project.updated_at = now
    record_event(s, actor=user, action="project.erase", entity_type="Project", entity_id=project.id, metadata={"code": project.code})


# ---------- Members ----------
def search_project_members(s: "Session", project: Project, body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=MEMBER_SORTABLE, default_sort="created_at")
    q = s.query(ProjectMember).filter(ProjectMember.project_id == project.id, ProjectMember.deleted_at.is_(None))
    q = filter_exact(q, ProjectMember.user_id, parse_uuid(body.get("user_id"), "user_id"))
    columns = {"created_at": ProjectMember.created_at}
    return paginate(q, page, columns, id_column=ProjectMember.id, serialize=serialize_project_member)


def get_project_member(s: "Session", project: Project, member_id: str) -> ProjectMember:
    m = s.get(ProjectMember, member_id)
    if m is None or m.deleted_at is not None or m.project_id != project.id:
        raise NotFound("Project member not found.")
    return m


def add_project_member(s: "Session", project: Project, payload: dict, user: "User") -> ProjectMember:
    member = require_member_reference(s, payload.get("user_id"), "user_id")
    existing = (
        s.query(ProjectMember)
        .filter(
            ProjectMember.project_id == project.id,
            ProjectMember.user_id == member.id,
            ProjectMember.deleted_at.is_(None),
        )
        .first()
    )
    if existing is not None:
        raise Conflict("Member already belongs to this project.")

    m = ProjectMember(project_id=project.id, user_id=member.id, created_at=datetime.utcnow())
    s.add(m)
    s.flush()
    record_event(
        s,
        actor=user,
        action="project.member_add",
        entity_type="ProjectMember",
        entity_id=m.id,
        metadata={"project_id": project.id, "user_id": member.id},
    )
    return m


def remove_project_member(s: "Session", member: ProjectMember, user: "User") -> None:
    member.deleted_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="project.member_remove",
        entity_type="ProjectMember",
        entity_id=member.id,
        metadata={"project_id": member.project_id, "user_id": member.user_id},
    )
