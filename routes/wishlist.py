"""Wishlist API routes (with per-item price alerts)."""

from __future__ import annotations

from typing import Any, Dict

from flask import jsonify
from flask_login import current_user, login_required

from extensions import db
from models import Card, WishlistItem
from services import scryfall_client
from services.authz import ensure_owned
from utils.exceptions import NotFoundError, ValidationError

from .base import api_bp, json_body


def _serialize_item(item: WishlistItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "card_id": item.card_id,
        "name": item.name,
        "quantity": item.quantity,
        "priority": item.priority,
        "note": item.note,
        "target_price_usd": item.target_price_usd,
        "alert_enabled": bool(item.alert_enabled),
        "alert_type": item.alert_type,
        "last_notified_at": item.last_notified_at.isoformat() if item.last_notified_at else None,
        "price_usd": item.card.price_usd if item.card else None,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }


def _parse_int(value, default=1) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _apply_fields(item: WishlistItem, payload: Dict[str, Any]) -> None:
    if "quantity" in payload:
        qty = _parse_int(payload.get("quantity"), default=0)
        if qty < 1:
            raise ValidationError("quantity must be at least 1.")
        item.quantity = qty
    if "priority" in payload:
        priority = str(payload.get("priority") or "medium").lower()
        if priority not in WishlistItem.PRIORITIES:
            raise ValidationError(f"priority must be one of {', '.join(WishlistItem.PRIORITIES)}.")
        item.priority = priority
    if "note" in payload:
        item.note = payload.get("note") or None
    if "target_price_usd" in payload:
        raw = payload.get("target_price_usd")
        if raw in (None, ""):
            item.target_price_usd = None
        else:
            try:
                target = float(raw)
            except (TypeError, ValueError) as exc:
                raise ValidationError("target_price_usd must be a number.") from exc
            if target <= 0:
                raise ValidationError("target_price_usd must be positive.")
            item.target_price_usd = target
    if "alert_type" in payload:
        alert_type = str(payload.get("alert_type") or WishlistItem.ALERT_BELOW).lower()
        if alert_type not in WishlistItem.ALERT_TYPES:
            raise ValidationError("alert_type must be 'below' or 'above'.")
        item.alert_type = alert_type
    if "alert_enabled" in payload:
        enabled = bool(payload.get("alert_enabled"))
        if enabled and not item.alert_enabled:
            # Re-arming an alert clears the cooldown stamp
            item.last_notified_at = None
        item.alert_enabled = enabled
    if item.alert_enabled and item.target_price_usd is None:
        raise ValidationError("Set target_price_usd before enabling an alert.")


def _load_item(item_id: int) -> WishlistItem:
    item = db.session.get(WishlistItem, item_id)
    ensure_owned(item, label="Wishlist item")
    return item


@api_bp.get("/wishlist")
@login_required
def list_wishlist():
    items = (
        WishlistItem.query.filter_by(user_id=current_user.id)
        .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
        .all()
    )
    return jsonify({"data": [_serialize_item(i) for i in items]})


@api_bp.post("/wishlist")
@login_required
def add_wishlist_item():
    payload = json_body()
    card = None
    if payload.get("card_id"):
        card = db.session.get(Card, _parse_int(payload.get("card_id"), default=0))
        if card is None:
            raise NotFoundError("Card not found.")
    elif payload.get("name"):
        card = scryfall_client.resolve_card(str(payload["name"]), allow_remote=bool(payload.get("lookup", True)))
    else:
        raise ValidationError("Provide card_id or name.")

    name = card.name if card else str(payload["name"]).strip()
    item = WishlistItem(user_id=current_user.id, card_id=card.id if card else None, name=name)
    _apply_fields(item, payload)
    db.session.add(item)
    db.session.commit()
    return jsonify({"data": _serialize_item(item)}), 201


@api_bp.patch("/wishlist/<int:item_id>")
@login_required
def update_wishlist_item(item_id: int):
    item = _load_item(item_id)
    _apply_fields(item, json_body())
    db.session.commit()
    return jsonify({"data": _serialize_item(item)})


@api_bp.delete("/wishlist/<int:item_id>")
@login_required
def delete_wishlist_item(item_id: int):
    item = _load_item(item_id)
    db.session.delete(item)
    db.session.commit()
    return "", 204
