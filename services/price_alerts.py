"""Wishlist price alerts: notify when a card crosses its target price."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import quote

from flask import current_app, has_app_context

from extensions import db
from models import Notification, WishlistItem
from services.pricing import parse_price

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_HOURS = 24


def _cooldown() -> timedelta:
    hours = DEFAULT_COOLDOWN_HOURS
    if has_app_context():
        hours = current_app.config.get("PRICE_ALERT_COOLDOWN_HOURS", DEFAULT_COOLDOWN_HOURS)
    return timedelta(hours=float(hours))


def should_alert(alert_type: Optional[str], current_price: float, target_price: float) -> bool:
    if alert_type == WishlistItem.ALERT_ABOVE:
        return current_price >= target_price
    return current_price <= target_price


def _current_usd(item: WishlistItem) -> Optional[float]:
    if item.card is None:
        return None
    return parse_price((item.card.prices or {}).get("usd"))


def _notify(item: WishlistItem, current_price: float) -> Notification:
    target = float(item.target_price_usd)
    notification = Notification(
        user_id=item.user_id,
        type=Notification.TYPE_PRICE_ALERT,
        title=f"Price Alert: {item.name}",
        message=f"{item.name} is now ${current_price:.2f}! Your target was ${target:.2f}.",
        action_url=f"/cards?search={quote(item.name)}",
    )
    db.session.add(notification)
    return notification


def check_price_alerts(now: datetime | None = None) -> Dict[str, Any]:
    """Scan alert-enabled wishlist items and create notifications for hits."""
    now = now or datetime.utcnow()
    cutoff = now - _cooldown()
    items = (
        WishlistItem.query.filter(
            WishlistItem.alert_enabled.is_(True),
            WishlistItem.target_price_usd.isnot(None),
        )
        .order_by(WishlistItem.id)
        .all()
    )

    stats = {"checked": len(items), "notified": 0, "skipped_no_price": 0, "skipped_cooldown": 0}
    for item in items:
        current = _current_usd(item)
        if current is None:
            stats["skipped_no_price"] += 1
            continue
        if item.last_notified_at and item.last_notified_at > cutoff:
            stats["skipped_cooldown"] += 1
            continue
        if not should_alert(item.alert_type, current, float(item.target_price_usd)):
            continue
        _notify(item, current)
        item.last_notified_at = now
        stats["notified"] += 1

    db.session.commit()
    logger.info("Price alerts checked=%s notified=%s", stats["checked"], stats["notified"])
    return stats
