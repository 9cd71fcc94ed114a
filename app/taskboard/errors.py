from __future__ import annotations

import logging

from flask import Flask, g, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, HTTPException, InternalServerError

logger = logging.getLogger(__name__)


class ValidationFailed(BadRequest):
    """400 carrying every payload problem found, not just the first."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(description="; ".join(self.errors) or "Invalid request.")


def _error_body(exc: HTTPException, details: list[str] | None = None) -> dict:
    body = {
        "code": exc.code,
        "name": exc.name,
        "message": exc.description,
    }
    if details:
        body["details"] = details
    rid = getattr(g, "request_id", None)
    if rid:
        body["request_id"] = rid
    return {"error": body}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationFailed)
    def _validation_failed(e: ValidationFailed):
        return jsonify(_error_body(e, e.errors)), 400

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        if e.code == 403:
            missing = getattr(g, "missing_role", None)
            if missing:
                logger.warning("Forbidden: %s request_id=%s", missing, getattr(g, "request_id", None))
        return jsonify(_error_body(e)), e.code

    @app.errorhandler(IntegrityError)
    def _integrity_error(e: IntegrityError):
        s = getattr(g, "db_session", None)
        if s is not None:
            s.rollback()
        logger.warning("IntegrityError (request_id=%s): %s", getattr(g, "request_id", None), e.orig)
        return jsonify(_error_body(Conflict("The request conflicts with an existing record."))), 409

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify(_error_body(InternalServerError("Internal server error."))), 500
