"""Collection API routes."""

from __future__ import annotations

from flask import Response, jsonify, request
from flask_login import current_user, login_required

from extensions import db, limiter
from models import CollectionItem
from services import collection_io, pricing
from services.authz import ensure_owned
from utils.exceptions import ValidationError

from .base import api_bp, int_arg, json_body


def _load_item(item_id: int) -> CollectionItem:
    item = db.session.get(CollectionItem, item_id)
    ensure_owned(item, label="Collection item")
    return item


@api_bp.get("/collection")
@login_required
def list_collection():
    items = collection_io.list_items(current_user.id, q=request.args.get("q"))
    return jsonify({"data": [collection_io.serialize_item(i) for i in items], "total": len(items)})


@api_bp.post("/collection")
@login_required
def add_collection_item():
    item = collection_io.add_item(current_user.id, json_body())
    db.session.commit()
    return jsonify({"data": collection_io.serialize_item(item)}), 201


@api_bp.patch("/collection/<int:item_id>")
@login_required
def update_collection_item(item_id: int):
    item = _load_item(item_id)
    updated = collection_io.update_item(item, json_body())
    db.session.commit()
    if updated is None:
        return jsonify({"data": None, "deleted": True})
    return jsonify({"data": collection_io.serialize_item(updated)})


@api_bp.delete("/collection/<int:item_id>")
@login_required
def delete_collection_item(item_id: int):
    item = _load_item(item_id)
    collection_io.delete_item(item)
    db.session.commit()
    return "", 204


@api_bp.get("/collection/export")
@login_required
def export_collection():
    body, mimetype, filename = collection_io.export_collection(current_user.id, request.args.get("format", "csv"))
    return Response(body, mimetype=mimetype, headers={"Content-Disposition": f'attachment; filename="{filename}"'})


@api_bp.post("/collection/import")
@login_required
@limiter.limit("10 per minute")
def import_collection():
    """Import a CSV upload (``file`` form field) or ``{"text": "..."}`` body."""
    upload = request.files.get("file")
    if upload is not None:
        text = upload.read().decode("utf-8-sig", errors="replace")
    else:
        text = json_body().get("text")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Upload a CSV file or provide CSV text.")
    try:
        stats = collection_io.import_collection_csv(current_user.id, text)
    except collection_io.HeaderValidationError as exc:
        raise ValidationError(str(exc), payload={"details": exc.details}) from exc
    db.session.commit()
    return jsonify({"data": stats.to_dict()})


@api_bp.get("/collection/value-history")
@login_required
def collection_value_history():
    days = pricing.clamp_days(int_arg("days", 30))
    return jsonify({"data": pricing.collection_value_history(current_user.id, days), "days": days})
