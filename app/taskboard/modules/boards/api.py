from __future__ import annotations

from uuid import UUID

from flask import Blueprint, jsonify

from app.taskboard.constants import ALL_ROLES, MANAGER_ROLES
from app.taskboard.db import db_session
from app.taskboard.modules.boards.service import (
    add_board_member,
    create_board,
    erase_board,
    find_board,
    get_board,
    get_board_member,
    remove_board_member,
    search_board_members,
    search_boards,
    serialize_board,
    serialize_board_member,
    update_board,
)
from app.taskboard.modules.projects.service import get_project
from app.taskboard.rbac import current_user, require_role
from app.taskboard.utils import json_body

bp = Blueprint("boards", __name__)


# ---------- Project boards ----------
@bp.patch("/<role>/projects/<uuid:project_id>/boards")
@require_role(*MANAGER_ROLES)
def boards_index(project_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    return jsonify(search_boards(s, project, json_body()))


@bp.post("/<role>/projects/<uuid:project_id>/boards")
@require_role(*MANAGER_ROLES)
def boards_create(project_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    board = create_board(s, project, json_body(), current_user())
    s.commit()
    return jsonify(serialize_board(board)), 201


@bp.get("/<role>/projects/<uuid:project_id>/boards/<uuid:board_id>")
@require_role(*MANAGER_ROLES)
def boards_at(project_id: UUID, board_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    return jsonify(serialize_board(get_board(s, project, str(board_id))))


@bp.put("/<role>/projects/<uuid:project_id>/boards/<uuid:board_id>")
@require_role(*MANAGER_ROLES)
def boards_update(project_id: UUID, board_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    board = get_board(s, project, str(board_id))
    update_board(s, project, board, json_body(), current_user())
    s.commit()
    return jsonify(serialize_board(board))


@bp.delete("/<role>/projects/<uuid:project_id>/boards/<uuid:board_id>")
@require_role(*MANAGER_ROLES)
def boards_erase(project_id: UUID, board_id: UUID):
    s = db_session()
    project = get_project(s, str(project_id))
    board = get_board(s, project, str(board_id))
    erase_board(s, project, board, current_user())
    s.commit()
    return "", 204


# ---------- Board members ----------
@bp.patch("/<role>/boards/<uuid:board_id>/members")
@require_role(*ALL_ROLES)
def board_members_index(board_id: UUID):
    s = db_session()
    board = find_board(s, str(board_id))
    return jsonify(search_board_members(s, board, json_body()))


@bp.post("/<role>/boards/<uuid:board_id>/members")
@require_role(*ALL_ROLES)
def board_members_create(board_id: UUID):
    s = db_session()
    board = find_board(s, str(board_id))
    member = add_board_member(s, board, json_body(), current_user())
    s.commit()
    return jsonify(serialize_board_member(member)), 201


@bp.get("/<role>/boards/<uuid:board_id>/members/<uuid:member_id>")
@require_role(*ALL_ROLES)
def board_members_at(board_id: UUID, member_id: UUID):
    s = db_session()
    board = find_board(s, str(board_id))
    return jsonify(serialize_board_member(get_board_member(s, board, str(member_id))))


@bp.delete("/<role>/boards/<uuid:board_id>/members/<uuid:member_id>")
@require_role(*ALL_ROLES)
def board_members_erase(board_id: UUID, member_id: UUID):
    s = db_session()
    board = find_board(s, str(board_id))
    member = get_board_member(s, board, str(member_id))
    remove_board_member(s, member, current_user())
    s.commit()
    return "", 204
