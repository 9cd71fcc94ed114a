from __future__ import annotations

from uuid import UUID

from flask import Blueprint, g, jsonify
from werkzeug.exceptions import Forbidden

from app.taskboard.constants import ALL_ROLES, DIRECTORY_SEGMENTS, DIRECTORY_VISIBILITY
from app.taskboard.db import db_session
from app.taskboard.modules.directory.service import (
    create_member,
    erase_member,
    get_member,
    search_members,
    serialize_member,
    update_member,
)
from app.taskboard.rbac import current_user, require_role
from app.taskboard.utils import json_body

bp = Blueprint("directory", __name__)

_PEOPLE = "any(" + ", ".join(DIRECTORY_SEGMENTS) + "):people"


def _listed_role(people: str) -> str:
    u = current_user()
    if people not in DIRECTORY_VISIBILITY.get(u.role, frozenset()):
        g.missing_role = f"role {u.role!r} may not browse {people!r}"
        raise Forbidden(f"Role '{u.role}' may not browse {people}.")
    return DIRECTORY_SEGMENTS[people]


@bp.patch(f"/<role>/<{_PEOPLE}>")
@require_role(*ALL_ROLES)
def members_index(people: str):
    return jsonify(search_members(db_session(), _listed_role(people), json_body()))


@bp.post(f"/<role>/<{_PEOPLE}>")
@require_role(*ALL_ROLES)
def members_create(people: str):
    s = db_session()
    member = create_member(s, _listed_role(people), json_body(), current_user())
    s.commit()
    return jsonify(serialize_member(member)), 201


@bp.get(f"/<role>/<{_PEOPLE}>/<uuid:member_id>")
@require_role(*ALL_ROLES)
def members_at(people: str, member_id: UUID):
    member = get_member(db_session(), _listed_role(people), str(member_id))
    return jsonify(serialize_member(member))


@bp.put(f"/<role>/<{_PEOPLE}>/<uuid:member_id>")
@require_role(*ALL_ROLES)
def members_update(people: str, member_id: UUID):
    s = db_session()
    member = get_member(s, _listed_role(people), str(member_id))
    update_member(s, member, json_body(), current_user())
    s.commit()
    return jsonify(serialize_member(member))


@bp.delete(f"/<role>/<{_PEOPLE}>/<uuid:member_id>")
@require_role(*ALL_ROLES)
def members_erase(people: str, member_id: UUID):
    s = db_session()
    member = get_member(s, _listed_role(people), str(member_id))
    erase_member(s, member, current_user())
    s.commit()
    return "", 204
