"""Notification API routes."""

from __future__ import annotations

from datetime import datetime

from flask import jsonify, request
from flask_login import current_user, login_required

from extensions import db
from models import Notification
from services.authz import ensure_owned

from .base import api_bp, paginate


def _serialize(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "action_url": notification.action_url,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


@api_bp.get("/notifications")
@login_required
def list_notifications():
    """Newest first; ``unread=1`` hides notifications already read."""
    query = Notification.query.filter_by(user_id=current_user.id)
    if request.args.get("unread") in {"1", "true", "yes"}:
        query = query.filter(Notification.read_at.is_(None))
    rows, pagination = paginate(query.order_by(Notification.created_at.desc(), Notification.id.desc()))
    unread = Notification.query.filter_by(user_id=current_user.id).filter(Notification.read_at.is_(None)).count()
    return jsonify({"data": [_serialize(n) for n in rows], "pagination": pagination, "unread": unread})


@api_bp.post("/notifications/<int:notification_id>/read")
@login_required
def mark_notification_read(notification_id: int):
    notification = db.session.get(Notification, notification_id)
    ensure_owned(notification, label="Notification")
    if notification.read_at is None:
        notification.read_at = datetime.utcnow()
        db.session.commit()
    return jsonify({"data": _serialize(notification)})
