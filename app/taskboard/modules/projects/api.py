from __future__ import annotations

from uuid import UUID

from flask import Blueprint, jsonify

from app.taskboard.constants import ALL_ROLES, MANAGER_ROLES
from app.taskboard.db import db_session
from app.taskboard.modules.projects.service import (
    add_project_member,
    create_project,
    erase_project,
    get_project,
    get_project_member,
    remove_project_member,
    search_project_members,
    search_projects,
    serialize_project,
    serialize_project_member,
    update_project,
)
from app.taskboard.rbac import current_user, require_role
from app.taskboard.utils import json_body

bp = Blueprint("projects", __name__)


# ---------- Projects ----------
@bp.patch("/<role>/projects")
@require_role(*ALL_ROLES)
def projects_index():
    return jsonify(search_projects(db_session(), json_body()))


@bp.post("/<role>/projects")
@require_role(*MANAGER_ROLES)
def projects_create():
    s = db_session()
    project = create_project(s, json_body(), current_user())
    s.commit()
    return jsonify(serialize_project(project)), 201


@bp.get("/<role>/projects/<uuid:project_id>")
@require_role(*ALL_ROLES)
def projects_at(project_id: UUID):
    return jsonify(serialize_project(get_project(db_session(), str(project_id))))


@bp.put("/<role>/projects/<uuid:project_id>")
@require_role(*MANAGER_ROLES)
def projects_update(project_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    update_project(s, project, json_body(), current_user())
    s.commit()
    return jsonify(serialize_project(project))


@bp.delete("/<role>/projects/<uuid:project_id>")
@require_role(*MANAGER_ROLES)
def projects_erase(project_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    erase_project(s, project, current_user())
    s.commit()
    return "", 204


# ---------- Project members ----------
@bp.patch("/<role>/projects/<uuid:project_id>/members")
@require_role(*MANAGER_ROLES)
def project_members_index(project_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    return jsonify(search_project_members(s, project, json_body()))


@bp.post("/<role>/projects/<uuid:project_id>/members")
@require_role(*MANAGER_ROLES)
def project_members_create(project_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    member = add_project_member(s, project, json_body(), current_user())
    s.commit()
    return jsonify(serialize_project_member(member)), 201


@bp.get("/<role>/projects/<uuid:project_id>/members/<uuid:member_id>")
@require_role(*MANAGER_ROLES)
def project_members_at(project_id: UUID, member_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    return jsonify(serialize_project_member(get_project_member(s, project, str(member_id))))


@bp.delete("/<role>/projects/<uuid:project_id>/members/<uuid:member_id>")
@require_role(*MANAGER_ROLES)
def project_members_erase(project_id: UUID, member_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    member = get_project_member(s, project, str(member_id))
    remove_project_member(s, member, current_user())
    s.commit()
    return "", 204
