"""Shared pricing helpers plus daily price/value snapshots.

The formatting helpers turn Scryfall price payloads into numbers and short
display strings. The capture functions record one ``CardPriceSnapshot`` per
card per day and one ``CollectionValueSnapshot`` per user per day; the
history readers return chart-ready series and are memoized through
Flask-Caching.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from extensions import cache, db
from models import (
    Card,
    CardPriceSnapshot,
    CollectionItem,
    CollectionValueSnapshot,
    DeckCard,
    WishlistItem,
)
from services import scryfall_client
from utils.exceptions import AppError

logger = logging.getLogger(__name__)

__all__ = [
    "PRICE_KEYS",
    "parse_price",
    "price_has_value",
    "format_price_text",
    "capture_card_price",
    "capture_daily_prices",
    "capture_collection_values",
    "price_history",
    "collection_value_history",
]

PRICE_KEYS: tuple[str, ...] = ("usd", "usd_foil", "usd_etched", "eur", "eur_foil", "tix")
HISTORY_CACHE_TIMEOUT = 300
MAX_HISTORY_DAYS = 365


def parse_price(value: Any) -> Optional[float]:
    """Return a positive float for a Scryfall price string, else None."""
    if value in (None, "", 0, "0", "0.0", "0.00"):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if num > 0 else None


def price_has_value(prices: Dict[str, Any] | None) -> bool:
    """Return True when the provided price mapping contains a positive value."""
    if not prices:
        return False
    return any(parse_price(prices.get(key)) is not None for key in PRICE_KEYS)


def format_price_text(prices: Dict[str, Any] | None) -> str | None:
    """Convert a Scryfall price dict into a compact human string."""
    if not prices:
        return None

    def _fmt(value, prefix):
        num = parse_price(value)
        if num is None:
            return None
        return f"{prefix}{num:,.2f}".replace(",", "")

    sections: list[str] = []
    usd = _fmt(prices.get("usd"), "$")
    usd_foil = _fmt(prices.get("usd_foil"), "$")
    usd_etched = _fmt(prices.get("usd_etched"), "$")
    if usd:
        sections.append(f"Normal {usd}")
    if usd_foil:
        sections.append(f"Foil {usd_foil}")
    if usd_etched:
        sections.append(f"Etched {usd_etched}")

    if not sections:
        eur = _fmt(prices.get("eur"), "EUR ")
        eur_foil = _fmt(prices.get("eur_foil"), "EUR ")
        if eur:
            sections.append(f"Normal {eur}")
        if eur_foil:
            sections.append(f"Foil {eur_foil}")

    if not sections:
        tix = _fmt(prices.get("tix"), "TIX ")
        if tix:
            sections.append(f"MTGO {tix}")

    if not sections:
        return None

    if len(sections) == 1:
        return sections[0]
    if len(sections) == 2:
        return " / ".join(sections)
    return f"{sections[0]} / {sections[1]} (+{len(sections) - 2} more)"


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

def _live_payload(card: Card) -> Dict[str, Any]:
    if card.scryfall_id:
        return scryfall_client.fetch_card(card.scryfall_id)
    return scryfall_client.fetch_named(card.name, exact=True)


def capture_card_price(card: Card, *, today: date | None = None) -> CardPriceSnapshot:
    """Refresh ``card.prices`` from Scryfall and upsert today's snapshot."""
    today = today or date.today()
    payload = _live_payload(card)
    prices = payload.get("prices") or {}
    card.prices = prices

    snapshot = CardPriceSnapshot.query.filter_by(card_id=card.id, snapshot_date=today).first()
    if snapshot is None:
        snapshot = CardPriceSnapshot(card_id=card.id, snapshot_date=today)
        db.session.add(snapshot)
    snapshot.oracle_id = card.oracle_id
    snapshot.card_name = card.name
    snapshot.price_usd = parse_price(prices.get("usd"))
    snapshot.price_usd_foil = parse_price(prices.get("usd_foil"))
    snapshot.price_eur = parse_price(prices.get("eur"))
    snapshot.price_eur_foil = parse_price(prices.get("eur_foil"))
    db.session.flush()
    return snapshot


def tracked_card_ids(limit: int | None = None) -> List[int]:
    """Card ids referenced by any collection, wishlist or deck row."""
    union = select(CollectionItem.card_id).union(
        select(WishlistItem.card_id).where(WishlistItem.card_id.isnot(None)),
        select(DeckCard.card_id),
    ).subquery()
    stmt = select(union.c.card_id).order_by(union.c.card_id)
    if limit:
        stmt = stmt.limit(limit)
    return [row[0] for row in db.session.execute(stmt)]


def capture_daily_prices(limit: int | None = None, *, today: date | None = None) -> Dict[str, int]:
    """Snapshot every tracked card; upstream failures are counted and skipped."""
    today = today or date.today()
    stats = {"processed": 0, "captured": 0, "failed": 0}
    for card_id in tracked_card_ids(limit):
        card = db.session.get(Card, card_id)
        if card is None:
            continue
        stats["processed"] += 1
        try:
            capture_card_price(card, today=today)
        except AppError as exc:
            stats["failed"] += 1
            logger.warning("Price capture failed for card %s (%s): %s", card.id, card.name, exc.detail)
            continue
        stats["captured"] += 1
    db.session.commit()
    cache.delete_memoized(price_history)
    logger.info("Daily price capture: %s", stats)
    return stats


def _item_value(item: CollectionItem) -> float:
    prices = (item.card.prices if item.card else None) or {}
    usd = parse_price(prices.get("usd")) or 0.0
    foil = parse_price(prices.get("usd_foil")) or usd
    return int(item.quantity or 0) * usd + int(item.foil_quantity or 0) * foil


def _capture_user_value(user_id: int, today: date) -> CollectionValueSnapshot:
    items = CollectionItem.query.filter_by(user_id=user_id).all()
    total = round(sum(_item_value(item) for item in items), 2)

    snapshot = CollectionValueSnapshot.query.filter_by(user_id=user_id, snapshot_date=today).first()
    if snapshot is None:
        snapshot = CollectionValueSnapshot(user_id=user_id, snapshot_date=today)
        db.session.add(snapshot)
    snapshot.total_value_usd = total
    snapshot.card_count = sum(item.total_quantity for item in items)
    snapshot.unique_card_count = len({item.card_id for item in items})
    db.session.flush()
    return snapshot


def capture_collection_values(user_id: int | None = None, *, today: date | None = None) -> List[CollectionValueSnapshot]:
    """Upsert today's collection value for one user, or every user with a collection."""
    today = today or date.today()
    if user_id is not None:
        user_ids = [user_id]
    else:
        user_ids = [
            row[0]
            for row in db.session.query(CollectionItem.user_id).distinct().order_by(CollectionItem.user_id)
        ]
    snapshots = [_capture_user_value(uid, today) for uid in user_ids]
    db.session.commit()
    cache.delete_memoized(collection_value_history)
    logger.info("Captured collection values for %d user(s)", len(snapshots))
    return snapshots


# ---------------------------------------------------------------------------
# History series
# ---------------------------------------------------------------------------

def clamp_days(days: Any, default: int = 30) -> int:
    try:
        value = int(days)
    except (TypeError, ValueError):
        value = default
    return max(1, min(MAX_HISTORY_DAYS, value))


@cache.memoize(timeout=HISTORY_CACHE_TIMEOUT)
def price_history(card_id: int, days: int = 30) -> List[Dict[str, Any]]:
    since = date.today() - timedelta(days=days)
    rows = (
        CardPriceSnapshot.query.filter(
            CardPriceSnapshot.card_id == card_id,
            CardPriceSnapshot.snapshot_date >= since,
        )
        .order_by(CardPriceSnapshot.snapshot_date.asc())
        .all()
    )
    return [
        {
            "date": row.snapshot_date.isoformat(),
            "usd": row.price_usd,
            "usd_foil": row.price_usd_foil,
            "eur": row.price_eur,
            "eur_foil": row.price_eur_foil,
        }
        for row in rows
    ]


@cache.memoize(timeout=HISTORY_CACHE_TIMEOUT)
def collection_value_history(user_id: int, days: int = 30) -> List[Dict[str, Any]]:
    since = date.today() - timedelta(days=days)
    rows = (
        CollectionValueSnapshot.query.filter(
            CollectionValueSnapshot.user_id == user_id,
            CollectionValueSnapshot.snapshot_date >= since,
        )
        .order_by(CollectionValueSnapshot.snapshot_date.asc())
        .all()
    )
    return [
        {
            "date": row.snapshot_date.isoformat(),
            "total_value_usd": row.total_value_usd,
            "card_count": row.card_count,
            "unique_card_count": row.unique_card_count,
        }
        for row in rows
    ]
