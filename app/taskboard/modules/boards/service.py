from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import Conflict, Forbidden, NotFound

from app.taskboard.audit import record_event, track_change
from app.taskboard.errors import ValidationFailed
from app.taskboard.models import User
from app.taskboard.modules.boards.models import Board, BoardMember
from app.taskboard.modules.directory.service import require_member_reference, serialize_member
from app.taskboard.modules.projects.models import Project
from app.taskboard.pagination import PageRequest, filter_contains, filter_exact, paginate
from app.taskboard.utils import clean_str, iso, parse_uuid

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

SORTABLE = ("name", "code", "created_at", "updated_at")
MEMBER_SORTABLE = ("user_id", "created_at")


def serialize_board(b: Board) -> dict:
    return {
        "id": b.id,
        "project_id": b.project_id,
        "owner_id": b.owner_id,
        "code": b.code,
        "name": b.name,
        "description": b.description,
        "created_at": iso(b.created_at),
        "updated_at": iso(b.updated_at),
    }


def serialize_board_member(m: BoardMember) -> dict:
    return {
        "id": m.id,
        "board_id": m.board_id,
        "user_id": m.user_id,
        "member": serialize_member(m.user) if m.user else None,
        "created_at": iso(m.created_at),
        "updated_at": iso(m.updated_at),
    }


def validate_board_payload(payload: dict, project: Project, *, partial: bool = False) -> list[str]:
    errors = []
    for field in ("code", "name"):
        if partial and field not in payload:
            continue
        if not clean_str(payload.get(field)):
            errors.append(f"{field} is required.")
    if not partial and not payload.get("project_id"):
        errors.append("project_id is required.")
    if payload.get("project_id") is not None:
        project_id = parse_uuid(payload.get("project_id"), "project_id")
        if project_id != project.id:
            errors.append("project_id must match the project in the path.")
    return errors


def _ensure_code_free(s: "Session", project_id: str, code: str, exclude_id: str | None = None) -> None:
    q = s.query(Board).filter(Board.project_id == project_id, Board.code == code)
    if exclude_id:
        q = q.filter(Board.id != exclude_id)
    if q.first() is not None:
        raise Conflict(f"Board code '{code}' already exists in this project.")


def _ensure_can_manage(board: Board, project: Project, user: User) -> None:
    if user.id not in (board.owner_id, project.owner_id) and user.role != "pmo":
        raise Forbidden("Only the board owner, the project owner or a pmo may change this board.")


def search_boards(s: "Session", project: Project, body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=SORTABLE, default_sort="name")
    q = s.query(Board).filter(Board.project_id == project.id, Board.deleted_at.is_(None))
    q = filter_contains(q, body.get("name"), Board.name)
    q = filter_exact(q, Board.code, body.get("code"))
    q = filter_exact(q, Board.owner_id, parse_uuid(body.get("owner_id"), "owner_id"))
    columns = {name: getattr(Board, name) for name in SORTABLE}
    return paginate(q, page, columns, id_column=Board.id, serialize=serialize_board)


def live_board(s: "Session", board_id: str | None) -> Board | None:
    """The board, unless it or its project has been removed."""
    b = s.get(Board, board_id) if board_id else None
    if b is None or b.deleted_at is not None:
        return None
    project = s.get(Project, b.project_id)
    if project is None or project.deleted_at is not None:
        return None
    return b


def find_board(s: "Session", board_id: str) -> Board:
    b = live_board(s, board_id)
    if b is None:
        raise NotFound("Board not found.")
    return b


def get_board(s: "Session", project: Project, board_id: str) -> Board:
    b = find_board(s, board_id)
    if b.project_id != project.id:
        raise NotFound("Board not found.")
    return b


def create_board(s: "Session", project: Project, payload: dict, user: User) -> Board:
    errors = validate_board_payload(payload, project)
    if errors:
        raise ValidationFailed(errors)
    owner = user
    if payload.get("owner_id") is not None:
        owner = require_member_reference(s, payload.get("owner_id"), "owner_id")
    code = clean_str(payload.get("code"))
    _ensure_code_free(s, project.id, code)

    now = datetime.utcnow()
    board = Board(
        project_id=project.id,
        owner_id=owner.id,
        code=code,
        name=clean_str(payload.get("name")),
        description=clean_str(payload.get("description")),
        created_at=now,
        updated_at=now,
    )
    s.add(board)
    s.flush()
    record_event(
        s,
        actor=user,
        action="board.create",
        entity_type="Board",
        entity_id=board.id,
        metadata={"project_id": project.id, "code": board.code},
    )
    return board


def update_board(s: "Session", project: Project, board: Board, payload: dict, user: User) -> Board:
    _ensure_can_manage(board, project, user)
    errors = validate_board_payload(payload, project, partial=True)
    if errors:
        raise ValidationFailed(errors)

    changes: dict = {}
    if "code" in payload:
        code = clean_str(payload.get("code"))
        if code != board.code:
            _ensure_code_free(s, project.id, code, exclude_id=board.id)
        track_change(changes, board, "code", code)
    if "name" in payload:
        track_change(changes, board, "name", clean_str(payload.get("name")))
    if "description" in payload:
        track_change(changes, board, "description", clean_str(payload.get("description")))
    if payload.get("owner_id") is not None:
        owner = require_member_reference(s, payload.get("owner_id"), "owner_id")
        track_change(changes, board, "owner_id", owner.id)

    board.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="board.update",
        entity_type="Board",
        entity_id=board.id,
        metadata={"project_id": project.id, "changes": changes},
    )
    return board


def erase_board(s: "Session", project: Project, board: Board, user: User) -> None:
    _ensure_can_manage(board, project, user)
    now = datetime.utcnow()
    board.deleted_at = now
    board.updated_at = now
    record_event(
        s,
        actor=user,
        action="board.erase",
        entity_type="Board",
        entity_id=board.id,
        metadata={"project_id": project.id, "code": board.code},
    )


# ---------- Board members ----------
def search_board_members(s: "Session", board: Board, body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=MEMBER_SORTABLE, default_sort="created_at")
    q = (
        s.query(BoardMember)
        .join(User, BoardMember.user_id == User.id)
        .filter(BoardMember.board_id == board.id, BoardMember.deleted_at.is_(None))
    )
    q = filter_exact(q, BoardMember.user_id, parse_uuid(body.get("user_id"), "user_id"))
    q = filter_contains(q, body.get("search"), User.name, User.email)
    columns = {"user_id": BoardMember.user_id, "created_at": BoardMember.created_at}
    return paginate(q, page, columns, id_column=BoardMember.id, serialize=serialize_board_member)


def get_board_member(s: "Session", board: Board, member_id: str) -> BoardMember:
    m = s.get(BoardMember, member_id)
    if m is None or m.deleted_at is not None or m.board_id != board.id:
        raise NotFound("Board member not found.")
    return m


def add_board_member(s: "Session", board: Board, payload: dict, user: User) -> BoardMember:
    member = require_member_reference(s, payload.get("user_id"), "user_id")
    existing = (
        s.query(BoardMember)
        .filter(
            BoardMember.board_id == board.id,
            BoardMember.user_id == member.id,
            BoardMember.deleted_at.is_(None),
        )
        .first()
    )
    if existing is not None:
        raise Conflict("Member already belongs to this board.")

    now = datetime.utcnow()
    m = BoardMember(board_id=board.id, user_id=member.id, created_at=now, updated_at=now)
    s.add(m)
    s.flush()
    record_event(
        s,
        actor=user,
        action="board.member_add",
        entity_type="BoardMember",
        entity_id=m.id,
        metadata={"board_id": board.id, "user_id": member.id},
    )
    return m


def remove_board_member(s: "Session", member: BoardMember, user: User) -> None:
    now = datetime.utcnow()
    member.deleted_at = now
    member.updated_at = now
    record_event(
        s,
        actor=user,
        action="board.member_remove",
        entity_type="BoardMember",
        entity_id=member.id,
        metadata={"board_id": member.board_id, "user_id": member.user_id},
    )
