from __future__ import annotations

import json

from flask import Blueprint, jsonify

from app.taskboard.db import db_session
from app.taskboard.models import AuditEvent
from app.taskboard.pagination import PageRequest, filter_contains, filter_exact, filter_range, paginate
from app.taskboard.rbac import require_role
from app.taskboard.utils import iso, json_body, parse_uuid

bp = Blueprint("admin", __name__)


def serialize_audit_event(ev: AuditEvent) -> dict:
    return {
        "id": ev.id,
        "created_at": iso(ev.created_at),
        "request_id": ev.request_id,
        "actor_user_id": ev.actor_user_id,
        "actor_role": ev.actor_role,
        "actor_email": ev.actor_email,
        "action": ev.action,
        "entity_type": ev.entity_type,
        "entity_id": ev.entity_id,
        "reason": ev.reason,
        "metadata": json.loads(ev.metadata_json) if ev.metadata_json else None,
        "client_ip": ev.client_ip,
    }


@bp.patch("/<role>/audit-events")
@require_role("pmo")
def audit_index():
    """
    Audit trail search (pmo only). Filters:
    - action (contains)
    - actor_id, entity_type, entity_id (exact)
    - created_from / created_to
    """
    body = json_body()
    page = PageRequest.from_body(body, sortable=("created_at",), default_sort="-created_at")
    q = db_session().query(AuditEvent)
    q = filter_contains(q, body.get("action"), AuditEvent.action)
    q = filter_exact(q, AuditEvent.actor_user_id, parse_uuid(body.get("actor_id"), "actor_id"))
    q = filter_exact(q, AuditEvent.entity_type, body.get("entity_type"))
    q = filter_exact(q, AuditEvent.entity_id, body.get("entity_id"))
    q = filter_range(q, AuditEvent.created_at, body, "created")
    columns = {"created_at": AuditEvent.created_at}
    return jsonify(paginate(q, page, columns, id_column=AuditEvent.id, serialize=serialize_audit_event))
