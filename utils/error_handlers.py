"""Centralized JSON error handlers."""

from __future__ import annotations

import logging

from flask import jsonify
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException

from extensions import db
from utils.exceptions import AppError

logger = logging.getLogger(__name__)


def _json_error(code: str, detail: str, status: int, **extra):
    payload = {"error": code, "detail": detail}
    payload.update(extra)
    return jsonify(payload), status


def register_error_handlers(app) -> None:
    """Register error handlers on the Flask app."""

    @app.errorhandler(AppError)
    def app_error(err: AppError):  # type: ignore[no-redef]
        if err.status_code >= 500:
            logger.warning("Upstream failure: %s", err.detail)
        return _json_error(err.code, err.detail, err.status_code, **err.payload)

    @app.errorhandler(CSRFError)
    def csrf_error(err: CSRFError):  # type: ignore[no-redef]
        return _json_error("csrf_failed", err.description or "CSRF validation failed.", 400)

    @app.errorhandler(HTTPException)
    def http_error(err: HTTPException):  # type: ignore[no-redef]
        code = (err.name or "error").lower().replace(" ", "_")
        return _json_error(code, err.description or err.name, err.code or 500)

    @app.errorhandler(500)
    def internal(err):  # type: ignore[no-redef]
        db.session.rollback()
        logger.exception("Unhandled server error")
        return _json_error("server_error", "A server error occurred.", 500)
