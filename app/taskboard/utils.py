from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from app.taskboard.errors import ValidationFailed


def iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def clean_str(value: Any) -> str | None:
    """Strip a JSON string field; empty strings become None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def parse_datetime(value: Any, field: str) -> datetime | None:
    """
    Parse an ISO-8601 date-time (a trailing "Z" is accepted).
    Aware values are normalized to naive UTC, matching the storage columns.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationFailed([f"{field} must be an ISO-8601 date-time string."])
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationFailed([f"{field} must be an ISO-8601 date-time string."])
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_uuid(value: Any, field: str) -> str | None:
    if value is None or value == "":
        return None
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise ValidationFailed([f"{field} must be a UUID."])


def parse_bool(value: Any, field: str) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    raise ValidationFailed([f"{field} must be a boolean."])


def json_body() -> dict:
    """Request body as a dict; a missing body is an empty search/update."""
    from flask import request

    if not request.data:
        return {}
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationFailed(["Request body must be a JSON object."])
    return body
