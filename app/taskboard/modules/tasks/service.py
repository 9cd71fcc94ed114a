from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import exists
from werkzeug.exceptions import Conflict, Forbidden, NotFound

from app.taskboard.audit import record_event, track_change
from app.taskboard.constants import MANAGER_ROLES
from app.taskboard.errors import ValidationFailed
from app.taskboard.modules.boards.models import Board
from app.taskboard.modules.boards.service import live_board
from app.taskboard.modules.catalogs.models import Priority, TaskStatus
from app.taskboard.modules.directory.service import require_member_reference
from app.taskboard.modules.notifications.service import notify
from app.taskboard.modules.projects.models import Project
from app.taskboard.modules.tasks.models import Task, TaskAssignment, TaskComment, TaskStatusChange
from app.taskboard.pagination import PageRequest, filter_contains, filter_exact, filter_range, paginate
from app.taskboard.utils import clean_str, iso, parse_datetime, parse_uuid

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.taskboard.models import User

SORTABLE = ("created_at", "updated_at", "title", "due_date")
COMMENT_SORTABLE = ("created_at", "updated_at")
STATUS_CHANGE_SORTABLE = ("changed_at",)


# ---------- Serializers ----------
def serialize_task_summary(t: Task) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "status_id": t.status_id,
        "status_name": t.status.name if t.status else None,
        "priority_id": t.priority_id,
        "priority_name": t.priority.name if t.priority else None,
        "creator_id": t.creator_id,
        "project_id": t.project_id,
        "board_id": t.board_id,
        "due_date": iso(t.due_date),
        "created_at": iso(t.created_at),
        "updated_at": iso(t.updated_at),
    }


def serialize_task(t: Task) -> dict:
    out = serialize_task_summary(t)
    out["description"] = t.description
    out["assignee_ids"] = [a.assignee_id for a in t.assignments]
    return out


def serialize_assignment(a: TaskAssignment) -> dict:
    return {
        "id": a.id,
        "task_id": a.task_id,
        "assignee_id": a.assignee_id,
        "assigned_at": iso(a.assigned_at),
    }


def serialize_comment(c: TaskComment) -> dict:
    return {
        "id": c.id,
        "task_id": c.task_id,
        "commenter_id": c.commenter_id,
        "comment_body": c.comment_body,
        "created_at": iso(c.created_at),
        "updated_at": iso(c.updated_at),
    }


def serialize_status_change(c: TaskStatusChange) -> dict:
    return {
        "id": c.id,
        "task_id": c.task_id,
        "new_status_id": c.new_status_id,
        "changed_by_id": c.changed_by_id,
        "changed_at": iso(c.changed_at),
        "comment": c.comment,
        "created_at": iso(c.created_at),
        "updated_at": iso(c.updated_at),
    }


# ---------- Reference lookups (unknown ids in a body are a 400) ----------
def _active(s: "Session", model, raw_id, field: str):
    ref_id = parse_uuid(raw_id, field)
    row = s.get(model, ref_id) if ref_id else None
    if row is None or row.deleted_at is not None:
        raise ValidationFailed([f"{field} does not reference an existing record."])
    return row


def _active_board(s: "Session", raw_id) -> Board:
    board = live_board(s, parse_uuid(raw_id, "board_id"))
    if board is None:
        raise ValidationFailed(["board_id does not reference an existing record."])
    return board


def _check_board_in_project(board: Board | None, project: Project | None) -> None:
    if board is not None and project is not None and board.project_id != project.id:
        raise ValidationFailed(["board_id must belong to project_id."])


# ---------- Tasks ----------
def validate_task_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors = []
    required = ("title", "status_id", "priority_id")
    for field in required:
        if partial and field not in payload:
            continue
        if not clean_str(payload.get(field)):
            errors.append(f"{field} is required.")
    title = clean_str(payload.get("title"))
    if title and len(title) > 255:
        errors.append("title must be at most 255 characters.")
    return errors


def search_tasks(s: "Session", body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=SORTABLE, default_sort="-created_at")
    q = s.query(Task).filter(Task.deleted_at.is_(None))
    for field in ("status_id", "priority_id", "creator_id", "project_id", "board_id"):
        q = filter_exact(q, getattr(Task, field), parse_uuid(body.get(field), field))
    assignee_id = parse_uuid(body.get("assignee_id"), "assignee_id")
    if assignee_id:
        q = q.filter(
            exists().where(TaskAssignment.task_id == Task.id, TaskAssignment.assignee_id == assignee_id)
        )
    q = filter_contains(q, body.get("title"), Task.title)
    q = filter_range(q, Task.created_at, body, "created")
    q = filter_range(q, Task.due_date, body, "due")
    columns = {name: getattr(Task, name) for name in SORTABLE}
    return paginate(q, page, columns, id_column=Task.id, serialize=serialize_task_summary)


def get_task(s: "Session", task_id: str) -> Task:
    t = s.get(Task, task_id)
    if t is None or t.deleted_at is not None:
        raise NotFound("Task not found.")
    return t


def create_task(s: "Session", payload: dict, user: "User") -> Task:
    errors = validate_task_payload(payload)
    if errors:
        raise ValidationFailed(errors)

    creator_id = parse_uuid(payload.get("creator_id"), "creator_id")
    if creator_id and creator_id != user.id:
        raise Forbidden("creator_id must be the calling member.")

    status = _active(s, TaskStatus, payload.get("status_id"), "status_id")
    priority = _active(s, Priority, payload.get("priority_id"), "priority_id")
    project = _active(s, Project, payload.get("project_id"), "project_id") if payload.get("project_id") else None
    board = _active_board(s, payload.get("board_id")) if payload.get("board_id") else None
    _check_board_in_project(board, project)

    now = datetime.utcnow()
    task = Task(
        status=status,
        priority=priority,
        creator_id=user.id,
        project_id=project.id if project else (board.project_id if board else None),
        board_id=board.id if board else None,
        title=clean_str(payload.get("title")),
        description=clean_str(payload.get("description")),
        due_date=parse_datetime(payload.get("due_date"), "due_date"),
        created_at=now,
        updated_at=now,
    )
    s.add(task)
    s.flush()
    record_event(
        s,
        actor=user,
        action="task.create",
        entity_type="Task",
        entity_id=task.id,
        metadata={"title": task.title, "status_id": task.status_id, "priority_id": task.priority_id},
    )
    return task


def _ensure_can_edit(task: Task, user: "User") -> None:
    if user.id == task.creator_id or user.role in MANAGER_ROLES:
        return
    if any(a.assignee_id == user.id for a in task.assignments):
        return
    raise Forbidden("Only the creator, an assignee or a manager may edit this task.")


def _append_status_change(s: "Session", task: Task, status: TaskStatus, user: "User", when: datetime, comment: str | None) -> TaskStatusChange:
    change = TaskStatusChange(
        task_id=task.id,
        new_status_id=status.id,
        changed_by_id=user.id,
        changed_at=when,
        comment=comment,
        created_at=when,
        updated_at=when,
    )
    s.add(change)
    return change


def update_task(s: "Session", task: Task, payload: dict, user: "User") -> Task:
    _ensure_can_edit(task, user)
    errors = validate_task_payload(payload, partial=True)
    if errors:
        raise ValidationFailed(errors)

    now = datetime.utcnow()
    changes: dict = {}
    if "title" in payload:
        track_change(changes, task, "title", clean_str(payload.get("title")))
    if "description" in payload:
        track_change(changes, task, "description", clean_str(payload.get("description")))
    if "due_date" in payload:
        track_change(changes, task, "due_date", parse_datetime(payload.get("due_date"), "due_date"))
    if "priority_id" in payload:
        priority = _active(s, Priority, payload.get("priority_id"), "priority_id")
        track_change(changes, task, "priority_id", priority.id)
        task.priority = priority

    project = s.get(Project, task.project_id) if task.project_id else None
    board = s.get(Board, task.board_id) if task.board_id else None
    if "project_id" in payload:
        project = _active(s, Project, payload.get("project_id"), "project_id") if payload.get("project_id") else None
    if "board_id" in payload:
        board = _active_board(s, payload.get("board_id")) if payload.get("board_id") else None
        if board is not None and "project_id" not in payload:
            project = s.get(Project, board.project_id)
    if "project_id" in payload or "board_id" in payload:
        _check_board_in_project(board, project)
        track_change(changes, task, "project_id", project.id if project else None)
        track_change(changes, task, "board_id", board.id if board else None)

    if "status_id" in payload:
        status = _active(s, TaskStatus, payload.get("status_id"), "status_id")
        if status.id != task.status_id:
            track_change(changes, task, "status_id", status.id)
            task.status = status
            _append_status_change(s, task, status, user, now, clean_str(payload.get("status_comment")))

    task.updated_at = now
    record_event(
        s,
        actor=user,
        action="task.update",
        entity_type="Task",
        entity_id=task.id,
        metadata={"title": task.title, "changes": changes},
    )
    return task


def erase_task(s: "Session", task: Task, user: "User") -> None:
    if user.id != task.creator_id and user.role not in MANAGER_ROLES:
        raise Forbidden("Only the creator or a manager may remove this task.")
    now = datetime.utcnow()
    task.deleted_at = now
    task.updated_at = now
    record_event(s, actor=user, action="task.erase", entity_type="Task", entity_id=task.id, metadata={"title": task.title})


# ---------- Assignments ----------
def list_assignments(task: Task) -> list[dict]:
    rows = sorted(task.assignments, key=lambda a: (a.assigned_at, a.id))
    return [serialize_assignment(a) for a in rows]


def get_assignment(s: "Session", task: Task, assignment_id: str) -> TaskAssignment:
    a = s.get(TaskAssignment, assignment_id)
    if a is None or a.task_id != task.id:
        raise NotFound("Assignment not found.")
    return a


def create_assignment(s: "Session", task: Task, payload: dict, user: "User") -> TaskAssignment:
    assignee = require_member_reference(s, payload.get("assignee_id"), "assignee_id")
    if any(a.assignee_id == assignee.id for a in task.assignments):
        raise Conflict("Member is already assigned to this task.")

    a = TaskAssignment(assignee_id=assignee.id, assigned_at=datetime.utcnow())
    task.assignments.append(a)
    s.flush()
    notify(
        s,
        recipient_id=assignee.id,
        task_id=task.id,
        notification_type="assignment",
        message=f"You were assigned to '{task.title}'.",
    )
    record_event(
        s,
        actor=user,
        action="task.assign",
        entity_type="TaskAssignment",
        entity_id=a.id,
        metadata={"task_id": task.id, "assignee_id": assignee.id},
    )
    return a


def erase_assignment(s: "Session", task: Task, assignment: TaskAssignment, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="task.unassign",
        entity_type="TaskAssignment",
        entity_id=assignment.id,
        metadata={"task_id": task.id, "assignee_id": assignment.assignee_id},
    )
    task.assignments.remove(assignment)


# ---------- Comments ----------
def search_comments(s: "Session", task: Task, body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=COMMENT_SORTABLE, default_sort="created_at")
    q = s.query(TaskComment).filter(TaskComment.task_id == task.id, TaskComment.deleted_at.is_(None))
    q = filter_exact(q, TaskComment.commenter_id, parse_uuid(body.get("commenter_id"), "commenter_id"))
    q = filter_contains(q, body.get("search"), TaskComment.comment_body)
    q = filter_range(q, TaskComment.created_at, body, "created")
    columns = {name: getattr(TaskComment, name) for name in COMMENT_SORTABLE}
    return paginate(q, page, columns, id_column=TaskComment.id, serialize=serialize_comment)


def get_comment(s: "Session", task: Task, comment_id: str) -> TaskComment:
    c = s.get(TaskComment, comment_id)
    if c is None or c.deleted_at is not None or c.task_id != task.id:
        raise NotFound("Comment not found.")
    return c


def create_comment(s: "Session", task: Task, payload: dict, user: "User") -> TaskComment:
    body = clean_str(payload.get("comment_body"))
    if not body:
        raise ValidationFailed(["comment_body is required."])

    now = datetime.utcnow()
    comment = TaskComment(task_id=task.id, commenter_id=user.id, comment_body=body, created_at=now, updated_at=now)
    s.add(comment)
    s.flush()

    recipients = [task.creator_id] + [a.assignee_id for a in task.assignments]
    seen: set[str] = {user.id}
    for recipient_id in recipients:
        if recipient_id in seen:
            continue
        seen.add(recipient_id)
        notify(
            s,
            recipient_id=recipient_id,
            task_id=task.id,
            notification_type="comment",
            message=f"{user.name} commented on '{task.title}'.",
        )

    record_event(
        s,
        actor=user,
        action="task.comment_create",
        entity_type="TaskComment",
        entity_id=comment.id,
        metadata={"task_id": task.id},
    )
    return comment


def update_comment(s: "Session", comment: TaskComment, payload: dict, user: "User") -> TaskComment:
    if comment.commenter_id != user.id:
        raise Forbidden("Only the commenter may edit this comment.")
    body = clean_str(payload.get("comment_body"))
    if not body:
        raise ValidationFailed(["comment_body is required."])
    changes: dict = {}
    track_change(changes, comment, "comment_body", body)
    comment.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="task.comment_update",
        entity_type="TaskComment",
        entity_id=comment.id,
        metadata={"task_id": comment.task_id, "changes": changes},
    )
    return comment


def erase_comment(s: "Session", comment: TaskComment, user: "User") -> None:
    if comment.commenter_id != user.id and user.role not in MANAGER_ROLES:
        raise Forbidden("Only the commenter or a manager may remove this comment.")
    now = datetime.utcnow()
    comment.deleted_at = now
    comment.updated_at = now
    record_event(
        s,
        actor=user,
        action="task.comment_erase",
        entity_type="TaskComment",
        entity_id=comment.id,
        metadata={"task_id": comment.task_id},
    )


# ---------- Status changes ----------
def search_status_changes(s: "Session", task: Task, body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=STATUS_CHANGE_SORTABLE, default_sort="changed_at")
    q = s.query(TaskStatusChange).filter(TaskStatusChange.task_id == task.id, TaskStatusChange.deleted_at.is_(None))
    q = filter_exact(q, TaskStatusChange.new_status_id, parse_uuid(body.get("new_status_id"), "new_status_id"))
    q = filter_range(q, TaskStatusChange.changed_at, body, "changed")
    columns = {"changed_at": TaskStatusChange.changed_at}
    return paginate(q, page, columns, id_column=TaskStatusChange.id, serialize=serialize_status_change)


def get_status_change(s: "Session", task: Task, change_id: str) -> TaskStatusChange:
    c = s.get(TaskStatusChange, change_id)
    if c is None or c.deleted_at is not None or c.task_id != task.id:
        raise NotFound("Status change not found.")
    return c


def create_status_change(s: "Session", task: Task, payload: dict, user: "User") -> TaskStatusChange:
    if not payload.get("new_status_id"):
        raise ValidationFailed(["new_status_id is required."])
    status = _active(s, TaskStatus, payload.get("new_status_id"), "new_status_id")
    now = datetime.utcnow()
    changed_at = parse_datetime(payload.get("changed_at"), "changed_at") or now

    change = _append_status_change(s, task, status, user, changed_at, clean_str(payload.get("comment")))
    change.created_at = now
    change.updated_at = now
    old_status_id = task.status_id
    task.status = status
    task.updated_at = now
    s.flush()
    record_event(
        s,
        actor=user,
        action="task.status_change",
        entity_type="TaskStatusChange",
        entity_id=change.id,
        metadata={"task_id": task.id, "changes": {"status_id": {"old": old_status_id, "new": status.id}}},
    )
    return change


def update_status_change(s: "Session", change: TaskStatusChange, payload: dict, user: "User") -> TaskStatusChange:
    changes: dict = {}
    if payload.get("new_status_id") is not None:
        status = _active(s, TaskStatus, payload.get("new_status_id"), "new_status_id")
        track_change(changes, change, "new_status_id", status.id)
    if payload.get("changed_at") is not None:
        track_change(changes, change, "changed_at", parse_datetime(payload.get("changed_at"), "changed_at"))
    if "comment" in payload:
        track_change(changes, change, "comment", clean_str(payload.get("comment")))
    change.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="task.status_change_update",
        entity_type="TaskStatusChange",
        entity_id=change.id,
        metadata={"task_id": change.task_id, "changes": changes},
    )
    return change


def erase_status_change(s: "Session", change: TaskStatusChange, user: "User") -> None:
    now = datetime.utcnow()
    change.deleted_at = now
    change.updated_at = now
    record_event(
        s,
        actor=user,
        action="task.status_change_erase",
        entity_type="TaskStatusChange",
        entity_id=change.id,
        metadata={"task_id": change.task_id},
    )
