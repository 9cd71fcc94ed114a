from __future__ import annotations

from uuid import UUID

from flask import Blueprint, jsonify

from app.taskboard.constants import ALL_ROLES
from app.taskboard.db import db_session
from app.taskboard.modules.tasks.service import (
    create_assignment,
    create_comment,
    create_status_change,
    create_task,
    erase_assignment,
    erase_comment,
    erase_status_change,
    erase_task,
    get_assignment,
    get_comment,
    get_status_change,
    get_task,
    list_assignments,
    search_comments,
    search_status_changes,
    search_tasks,
    serialize_assignment,
    serialize_comment,
    serialize_status_change,
    serialize_task,
    update_comment,
    update_status_change,
    update_task,
)
from app.taskboard.rbac import current_user, require_role
from app.taskboard.utils import json_body

bp = Blueprint("tasks", __name__)

TASK = "/<role>/tasks/<uuid:task_id>"


# ---------- Tasks ----------
@bp.patch("/<role>/tasks")
@require_role(*ALL_ROLES)
def tasks_index():
    return jsonify(search_tasks(db_session(), json_body()))


@bp.post("/<role>/tasks")
@require_role(*ALL_ROLES)
def tasks_create():
    s = db_session()
    task = create_task(s, json_body(), current_user())
    s.commit()
    return jsonify(serialize_task(task)), 201


@bp.get(TASK)
@require_role(*ALL_ROLES)
def tasks_at(task_id: UUID):
    return jsonify(serialize_task(get_task(db_session(), str(task_id))))


@bp.put(TASK)
@require_role(*ALL_ROLES)
def tasks_update(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    update_task(s, task, json_body(), current_user())
    s.commit()
    return jsonify(serialize_task(task))


@bp.delete(TASK)
@require_role(*ALL_ROLES)
def tasks_erase(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    erase_task(s, task, current_user())
    s.commit()
    return "", 204


# ---------- Assignments ----------
@bp.patch(f"{TASK}/assignments")
@require_role(*ALL_ROLES)
def assignments_index(task_id: UUID):
    task = get_task(db_session(), str(task_id))
    return jsonify(list_assignments(task))


@bp.post(f"{TASK}/assignments")
@require_role(*ALL_ROLES)
def assignments_create(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    assignment = create_assignment(s, task, json_body(), current_user())
    s.commit()
    return jsonify(serialize_assignment(assignment)), 201


@bp.get(f"{TASK}/assignments/<uuid:assignment_id>")
@require_role(*ALL_ROLES)
def assignments_at(task_id: UUID, assignment_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    return jsonify(serialize_assignment(get_assignment(s, task, str(assignment_id))))


@bp.delete(f"{TASK}/assignments/<uuid:assignment_id>")
@require_role(*ALL_ROLES)
def assignments_erase(task_id: UUID, assignment_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    assignment = get_assignment(s, task, str(assignment_id))
    erase_assignment(s, task, assignment, current_user())
    s.commit()
    return "", 204


# ---------- Comments ----------
@bp.patch(f"{TASK}/comments")
@require_role(*ALL_ROLES)
def comments_index(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    return jsonify(search_comments(s, task, json_body()))


@bp.post(f"{TASK}/comments")
@require_role(*ALL_ROLES)
def comments_create(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    comment = create_comment(s, task, json_body(), current_user())
    s.commit()
    return jsonify(serialize_comment(comment)), 201


@bp.get(f"{TASK}/comments/<uuid:comment_id>")
@require_role(*ALL_ROLES)
def comments_at(task_id: UUID, comment_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    return jsonify(serialize_comment(get_comment(s, task, str(comment_id))))


@bp.put(f"{TASK}/comments/<uuid:comment_id>")
@require_role(*ALL_ROLES)
def comments_update(task_id: UUID, comment_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    comment = get_comment(s, task, str(comment_id))
    update_comment(s, comment, json_body(), current_user())
    s.commit()
    return jsonify(serialize_comment(comment))


@bp.delete(f"{TASK}/comments/<uuid:comment_id>")
@require_role(*ALL_ROLES)
def comments_erase(task_id: UUID, comment_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    comment = get_comment(s, task, str(comment_id))
    erase_comment(s, comment, current_user())
    s.commit()
    return "", 204


# ---------- Status changes ----------
@bp.patch(f"{TASK}/status-changes")
@require_role(*ALL_ROLES)
def status_changes_index(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    return jsonify(search_status_changes(s, task, json_body()))


@bp.post(f"{TASK}/status-changes")
@require_role(*ALL_ROLES)
def status_changes_create(task_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    change = create_status_change(s, task, json_body(), current_user())
    s.commit()
    return jsonify(serialize_status_change(change)), 201


@bp.get(f"{TASK}/status-changes/<uuid:change_id>")
@require_role(*ALL_ROLES)
def status_changes_at(task_id: UUID, change_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    return jsonify(serialize_status_change(get_status_change(s, task, str(change_id))))


@bp.put(f"{TASK}/status-changes/<uuid:change_id>")
@require_role(*ALL_ROLES)
def status_changes_update(task_id: UUID, change_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    change = get_status_change(s, task, str(change_id))
    update_status_change(s, change, json_body(), current_user())
    s.commit()
    return jsonify(serialize_status_change(change))


@bp.delete(f"{TASK}/status-changes/<uuid:change_id>")
@require_role(*ALL_ROLES)
def status_changes_erase(task_id: UUID, change_id: UUID):
    s = db_session()
    task = get_task(s, str(task_id))
    change = get_status_change(s, task, str(change_id))
    erase_status_change(s, change, current_user())
    s.commit()
    return "", 204
