"""JSON API blueprint and shared request helpers."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from flask import Blueprint, request

from extensions import db
from utils.exceptions import NotFoundError, ValidationError

api_bp = Blueprint("api", __name__, url_prefix="/api")

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200


def parse_id(value: Any, *, field: str = "id") -> int:
    """Coerce a JSON id to a positive int, rejecting anything else with a 400."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer.")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer.") from exc
    if parsed < 1:
        raise ValidationError(f"{field} must be a positive integer.")
    return parsed


def get_or_404(model, object_id: int, *, label: str | None = None):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found.")
    return obj


def json_body() -> Dict[str, Any]:
    """Return the request JSON object, rejecting anything else."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def int_arg(name: str, default: int, *, minimum: int | None = None, maximum: int | None = None) -> int:
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def paginate(query) -> Tuple[list, Dict[str, int]]:
    limit = int_arg("limit", DEFAULT_PAGE_LIMIT, minimum=1, maximum=MAX_PAGE_LIMIT)
    offset = int_arg("offset", 0, minimum=0)
    total = query.count()
    rows = query.offset(offset).limit(limit).all()
    return rows, {"total": total, "limit": limit, "offset": offset}


__all__ = ["api_bp", "parse_id", "get_or_404", "json_body", "int_arg", "paginate"]
