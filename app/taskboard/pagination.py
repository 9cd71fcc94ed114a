"""
Paged "index" searches.

Every index endpoint takes its filters, page, limit and sort in a JSON body and
answers with {"pagination": {...}, "data": [...]}.
"""
from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from app.taskboard.errors import ValidationFailed
from app.taskboard.utils import clean_str, parse_datetime


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int
    sort_field: str
    descending: bool

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_body(cls, body: Mapping[str, Any], *, sortable: tuple[str, ...], default_sort: str) -> "PageRequest":
        errors: list[str] = []
        page = _positive_int(body.get("page"), "page", 1, errors)
        limit = _positive_int(body.get("limit"), "limit", current_app.config["DEFAULT_PAGE_LIMIT"], errors)
        max_limit = current_app.config["MAX_PAGE_LIMIT"]
        if limit > max_limit:
            errors.append(f"limit must be at most {max_limit}.")
        if errors:
            raise ValidationFailed(errors)

        field, descending = _parse_sort(body)
        if field not in sortable:
            field, descending = _parse_sort({"sort": default_sort})
        return cls(page=page, limit=limit, sort_field=field, descending=descending)


def _positive_int(raw: Any, name: str, default: int, errors: list[str]) -> int:
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        errors.append(f"{name} must be an integer.")
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        errors.append(f"{name} must be an integer.")
        return default
    if value < 1:
        errors.append(f"{name} must be at least 1.")
        return default
    return value


def _parse_sort(body: Mapping[str, Any]) -> tuple[str, bool]:
    """
    Accepts:
      {"sort": "name"} / {"sort": "-name"} / {"sort": "name desc"}
      {"orderBy": "-name"}
      {"sortBy": "name", "sortDirection": "desc"} (or "order")
    """
    sort_by = clean_str(body.get("sortBy"))
    if sort_by:
        direction = (clean_str(body.get("sortDirection")) or clean_str(body.get("order")) or "asc").lower()
        return sort_by, direction == "desc"

    raw = clean_str(body.get("sort")) or clean_str(body.get("orderBy")) or ""
    if raw.startswith("-"):
        return raw[1:].strip(), True
    if raw.startswith("+"):
        raw = raw[1:]
    parts = raw.split()
    if len(parts) == 2 and parts[1].lower() in ("asc", "desc"):
        return parts[0], parts[1].lower() == "desc"
    return raw, False


def paginate(
    query: Query,
    page_request: PageRequest,
    columns: Mapping[str, Any],
    *,
    id_column: Any,
    serialize: Callable[[Any], dict],
) -> dict:
    """Order, count and slice `query`; `columns` maps sortable names to columns."""
    direction = desc if page_request.descending else asc
    records = query.order_by(None).count()
    rows = (
        query.order_by(direction(columns[page_request.sort_field]), asc(id_column))
        .offset(page_request.offset)
        .limit(page_request.limit)
        .all()
    )
    return {
        "pagination": {
            "current": page_request.page,
            "limit": page_request.limit,
            "records": records,
            "pages": math.ceil(records / page_request.limit),
        },
        "data": [serialize(row) for row in rows],
    }


# ---------- Filter helpers ----------
def filter_exact(query: Query, column: Any, value: Any) -> Query:
    if value is not None and not isinstance(value, (str, int, float, bool)):
        raise ValidationFailed([f"{column.key} must be a single value."])
    value = clean_str(value) if isinstance(value, str) else value
    if value is None:
        return query
    return query.filter(column == value)


def filter_contains(query: Query, value: Any, *columns: Any) -> Query:
    """Case-insensitive substring match on any of `columns`."""
    term = clean_str(value)
    if not term:
        return query
    like = f"%{term}%"
    clause = columns[0].ilike(like)
    for col in columns[1:]:
        clause = clause | col.ilike(like)
    return query.filter(clause)


def filter_range(query: Query, column: Any, body: Mapping[str, Any], prefix: str) -> Query:
    """Inclusive <prefix>_from / <prefix>_to date-time range."""
    start = parse_datetime(body.get(f"{prefix}_from"), f"{prefix}_from")
    end = parse_datetime(body.get(f"{prefix}_to"), f"{prefix}_to")
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query
