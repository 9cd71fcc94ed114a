from __future__ import annotations

from uuid import UUID

from flask import Blueprint, jsonify

from app.taskboard.constants import ALL_ROLES
from app.taskboard.db import db_session
from app.taskboard.modules.notifications.service import (
    create_preference,
    erase_notification,
    erase_preference,
    get_notification,
    get_preference,
    search_notifications,
    search_preferences,
    serialize_notification,
    serialize_preference,
    update_notification,
    update_preference,
)
from app.taskboard.rbac import current_user, require_role
from app.taskboard.utils import json_body

bp = Blueprint("notifications", __name__)


# ---------- Notifications ----------
@bp.patch("/<role>/notifications")
@require_role(*ALL_ROLES)
def notifications_index():
    return jsonify(search_notifications(db_session(), current_user(), json_body()))


@bp.get("/<role>/notifications/<uuid:notification_id>")
@require_role(*ALL_ROLES)
def notifications_at(notification_id: UUID):
    n = get_notification(db_session(), current_user(), str(notification_id))
    return jsonify(serialize_notification(n))


@bp.put("/<role>/notifications/<uuid:notification_id>")
@require_role(*ALL_ROLES)
def notifications_update(notification_id: UUID):
    s = db_session()
    u = current_user()
    n = get_notification(s, u, str(notification_id))
    update_notification(s, n, json_body(), u)
    s.commit()
    return jsonify(serialize_notification(n))


@bp.delete("/<role>/notifications/<uuid:notification_id>")
@require_role(*ALL_ROLES)
def notifications_erase(notification_id: UUID):
    s = db_session()
    u = current_user()
    n = get_notification(s, u, str(notification_id))
    erase_notification(s, n, u)
    s.commit()
    return "", 204


# ---------- Preferences ----------
@bp.patch("/<role>/notification-preferences")
@require_role(*ALL_ROLES)
def preferences_index():
    return jsonify(search_preferences(db_session(), current_user(), json_body()))


@bp.post("/<role>/notification-preferences")
@require_role(*ALL_ROLES)
def preferences_create():
    s = db_session()
    pref = create_preference(s, json_body(), current_user())
    s.commit()
    return jsonify(serialize_preference(pref)), 201


@bp.get("/<role>/notification-preferences/<uuid:preference_id>")
@require_role(*ALL_ROLES)
def preferences_at(preference_id: UUID):
    pref = get_preference(db_session(), current_user(), str(preference_id))
    return jsonify(serialize_preference(pref))


@bp.put("/<role>/notification-preferences/<uuid:preference_id>")
@require_role(*ALL_ROLES)
def preferences_update(preference_id: UUID):
    s = db_session()
    u = current_user()
    pref = get_preference(s, u, str(preference_id))
    update_preference(s, pref, json_body(), u)
    s.commit()
    return jsonify(serialize_preference(pref))


@bp.delete("/<role>/notification-preferences/<uuid:preference_id>")
@require_role(*ALL_ROLES)
def preferences_erase(preference_id: UUID):
    s = db_session()
    u = current_user()
    pref = get_preference(s, u, str(preference_id))
    erase_preference(s, pref, u)
    s.commit()
    return "", 204
