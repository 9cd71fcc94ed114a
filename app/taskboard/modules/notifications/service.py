from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.exceptions import Conflict, NotFound

from app.taskboard.audit import record_event, track_change
from app.taskboard.constants import DELIVERY_METHODS
from app.taskboard.errors import ValidationFailed
from app.taskboard.modules.notifications.models import Notification, NotificationPreference
from app.taskboard.pagination import PageRequest, filter_exact, paginate
from app.taskboard.utils import clean_str, iso, parse_bool, parse_uuid

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.taskboard.models import User

logger = logging.getLogger(__name__)

SORTABLE = ("created_at",)
PREFERENCE_SORTABLE = ("preference_key", "created_at", "updated_at")


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "recipient_id": n.recipient_id,
        "task_id": n.task_id,
        "notification_type": n.notification_type,
        "message": n.message,
        "is_read": n.is_read,
        "read_at": iso(n.read_at),
        "created_at": iso(n.created_at),
        "updated_at": iso(n.updated_at),
    }


def serialize_preference(p: NotificationPreference) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "preference_key": p.preference_key,
        "delivery_method": p.delivery_method,
        "enabled": p.enabled,
        "created_at": iso(p.created_at),
        "updated_at": iso(p.updated_at),
    }


def notify(
    s: "Session",
    *,
    recipient_id: str,
    notification_type: str,
    message: str,
    task_id: str | None = None,
) -> Notification | None:
    """
    Queue an in-app notification for a member.
    Skipped when the member disabled the preference keyed by notification_type.
    """
    pref = (
        s.query(NotificationPreference)
        .filter(
            NotificationPreference.user_id == recipient_id,
            NotificationPreference.preference_key == notification_type,
            NotificationPreference.deleted_at.is_(None),
        )
        .one_or_none()
    )
    if pref is not None and not pref.enabled:
        logger.debug("Notification %s suppressed for %s by preference", notification_type, recipient_id)
        return None

    now = datetime.utcnow()
    n = Notification(
        recipient_id=recipient_id,
        task_id=task_id,
        notification_type=notification_type,
        message=message,
        is_read=False,
        created_at=now,
        updated_at=now,
    )
    s.add(n)
    return n


# ---------- Notifications ----------
def search_notifications(s: "Session", user: "User", body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=SORTABLE, default_sort="-created_at")
    q = s.query(Notification).filter(Notification.recipient_id == user.id, Notification.deleted_at.is_(None))
    q = filter_exact(q, Notification.is_read, parse_bool(body.get("is_read"), "is_read"))
    q = filter_exact(q, Notification.notification_type, body.get("notification_type"))
    q = filter_exact(q, Notification.task_id, parse_uuid(body.get("task_id"), "task_id"))
    columns = {"created_at": Notification.created_at}
    return paginate(q, page, columns, id_column=Notification.id, serialize=serialize_notification)


def get_notification(s: "Session", user: "User", notification_id: str) -> Notification:
    n = s.get(Notification, notification_id)
    # another member's notification is indistinguishable from a missing one
    if n is None or n.deleted_at is not None or n.recipient_id != user.id:
        raise NotFound("Notification not found.")
    return n


def update_notification(s: "Session", n: Notification, payload: dict, user: "User") -> Notification:
    is_read = parse_bool(payload.get("is_read"), "is_read")
    if is_read is None:
        raise ValidationFailed(["is_read is required."])
    changes: dict = {}
    track_change(changes, n, "is_read", is_read)
    if changes:
        n.read_at = datetime.utcnow() if is_read else None
    n.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="notification.update",
        entity_type="Notification",
        entity_id=n.id,
        metadata={"changes": changes},
    )
    return n


def erase_notification(s: "Session", n: Notification, user: "User") -> None:
    now = datetime.utcnow()
    n.deleted_at = now
    n.updated_at = now
    record_event(s, actor=user, action="notification.erase", entity_type="Notification", entity_id=n.id)


# ---------- Preferences ----------
def validate_preference_payload(payload: dict, *, partial: bool = False) -> list[str]:
    errors = []
    if not partial and not clean_str(payload.get("preference_key")):
        errors.append("preference_key is required.")
    if "preference_key" in payload and partial and not clean_str(payload.get("preference_key")):
        errors.append("preference_key cannot be blank.")
    method = clean_str(payload.get("delivery_method"))
    if method and method not in DELIVERY_METHODS:
        errors.append(f"Invalid delivery_method. Must be one of: {', '.join(DELIVERY_METHODS)}")
    if payload.get("enabled") is not None and not isinstance(payload.get("enabled"), bool):
        errors.append("enabled must be a boolean.")
    return errors


def search_preferences(s: "Session", user: "User", body: dict) -> dict:
    page = PageRequest.from_body(body, sortable=PREFERENCE_SORTABLE, default_sort="preference_key")
    q = s.query(NotificationPreference).filter(
        NotificationPreference.user_id == user.id,
        NotificationPreference.deleted_at.is_(None),
    )
    q = filter_exact(q, NotificationPreference.preference_key, body.get("preference_key"))
    q = filter_exact(q, NotificationPreference.delivery_method, body.get("delivery_method"))
    q = filter_exact(q, NotificationPreference.enabled, parse_bool(body.get("enabled"), "enabled"))
    columns = {name: getattr(NotificationPreference, name) for name in PREFERENCE_SORTABLE}
    return paginate(q, page, columns, id_column=NotificationPreference.id, serialize=serialize_preference)


def get_preference(s: "Session", user: "User", preference_id: str) -> NotificationPreference:
    p = s.get(NotificationPreference, preference_id)
    if p is None or p.deleted_at is not None or p.user_id != user.id:
        raise NotFound("Notification preference not found.")
    return p


def _find_by_key(s: "Session", user_id: str, key: str) -> NotificationPreference | None:
    return (
        s.query(NotificationPreference)
        .filter(NotificationPreference.user_id == user_id, NotificationPreference.preference_key == key)
        .one_or_none()
    )


def create_preference(s: "Session", payload: dict, user: "User") -> NotificationPreference:
    errors = validate_preference_payload(payload)
    if errors:
        raise ValidationFailed(errors)
    key = clean_str(payload.get("preference_key"))
    method = clean_str(payload.get("delivery_method")) or "in_app"
    enabled = payload.get("enabled")
    enabled = True if enabled is None else enabled
    now = datetime.utcnow()

    pref = _find_by_key(s, user.id, key)
    if pref is not None and pref.deleted_at is None:
        raise Conflict(f"Preference '{key}' already exists.")
    if pref is not None:
        # (user_id, preference_key) is unique across soft-deleted rows too; revive it
        pref.deleted_at = None
        pref.delivery_method = method
        pref.enabled = enabled
        pref.created_at = now
        pref.updated_at = now
    else:
        pref = NotificationPreference(
            user_id=user.id,
            preference_key=key,
            delivery_method=method,
            enabled=enabled,
            created_at=now,
            updated_at=now,
        )
        s.add(pref)
    s.flush()
    record_event(
        s,
        actor=user,
        action="notification_preference.create",
        entity_type="NotificationPreference",
        entity_id=pref.id,
        metadata={"preference_key": key, "delivery_method": method, "enabled": enabled},
    )
    return pref


def update_preference(s: "Session", pref: NotificationPreference, payload: dict, user: "User") -> NotificationPreference:
    errors = validate_preference_payload(payload, partial=True)
    if errors:
        raise ValidationFailed(errors)

    changes: dict = {}
    if "preference_key" in payload:
        key = clean_str(payload.get("preference_key"))
        if key != pref.preference_key and _find_by_key(s, user.id, key) is not None:
            raise Conflict(f"Preference '{key}' already exists.")
        track_change(changes, pref, "preference_key", key)
    if clean_str(payload.get("delivery_method")):
        track_change(changes, pref, "delivery_method", clean_str(payload.get("delivery_method")))
    if payload.get("enabled") is not None:
        track_change(changes, pref, "enabled", payload.get("enabled"))

    pref.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="notification_preference.update",
        entity_type="NotificationPreference",
        entity_id=pref.id,
        metadata={"preference_key": pref.preference_key, "changes": changes},
    )
    return pref


def erase_preference(s: "Session", pref: NotificationPreference, user: "User") -> None:
    now = datetime.utcnow()
    pref.deleted_at = now
    pref.updated_at = now
    record_event(
        s,
        actor=user,
        action="notification_preference.erase",
        entity_type="NotificationPreference",
        entity_id=pref.id,
        metadata={"preference_key": pref.preference_key},
    )
