from __future__ import annotations

from uuid import UUID

from flask import Blueprint, jsonify

from app.taskboard.db import db_session
from app.taskboard.modules.catalogs.service import (
    CATALOGS,
    Catalog,
    create_entry,
    erase_entry,
    get_entry,
    search_entries,
    serialize_entry,
    update_entry,
)
from app.taskboard.rbac import current_user, require_role
from app.taskboard.utils import json_body

bp = Blueprint("catalogs", __name__)


def _register(catalog: Catalog) -> None:
    base = f"/<role>/{catalog.segment}"
    item = f"{base}/<uuid:entry_id>"
    name = catalog.action_prefix

    @require_role(*catalog.read_roles)
    def index():
        return jsonify(search_entries(db_session(), catalog, json_body()))

    @require_role(*catalog.write_roles)
    def create():
        s = db_session()
        row = create_entry(s, catalog, json_body(), current_user())
        s.commit()
        return jsonify(serialize_entry(row)), 201

    @require_role(*catalog.read_roles)
    def at(entry_id: UUID):
        return jsonify(serialize_entry(get_entry(db_session(), catalog, str(entry_id))))

    @require_role(*catalog.write_roles)
    def update(entry_id: UUID):
        s = db_session()
        row = get_entry(s, catalog, str(entry_id))
        update_entry(s, catalog, row, json_body(), current_user())
        s.commit()
        return jsonify(serialize_entry(row))

    @require_role(*catalog.write_roles)
    def erase(entry_id: UUID):
        s = db_session()
        row = get_entry(s, catalog, str(entry_id))
        erase_entry(s, catalog, row, current_user())
        s.commit()
        return "", 204

    bp.add_url_rule(base, endpoint=f"{name}_index", view_func=index, methods=["PATCH"])
    bp.add_url_rule(base, endpoint=f"{name}_create", view_func=create, methods=["POST"])
    bp.add_url_rule(item, endpoint=f"{name}_at", view_func=at, methods=["GET"])
    bp.add_url_rule(item, endpoint=f"{name}_update", view_func=update, methods=["PUT"])
    bp.add_url_rule(item, endpoint=f"{name}_erase", view_func=erase, methods=["DELETE"])


for _catalog in CATALOGS:
    _register(_catalog)
