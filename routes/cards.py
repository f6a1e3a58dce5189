"""Card catalog API routes."""

from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required
from sqlalchemy import func

from extensions import db, limiter
from models import Card
from services import card_sync, pricing, scryfall_client
from services.deck_service import serialize_card
from utils.exceptions import ValidationError

from .base import api_bp, get_or_404, int_arg, json_body, paginate

REMOTE_SEARCH_LIMIT = 25


@api_bp.get("/cards")
@login_required
def list_cards():
    """Search the local catalog by name; ``remote=1`` pulls matches from Scryfall first."""
    q = (request.args.get("q") or "").strip()
    if request.args.get("remote") in {"1", "true", "yes"}:
        if not q:
            raise ValidationError("A search query is required for remote lookups.")
        results = scryfall_client.search_cards(q)
        cards = [scryfall_client.upsert_card_from_payload(p) for p in (results.get("data") or [])[:REMOTE_SEARCH_LIMIT]]
        db.session.commit()
        return jsonify({"data": [serialize_card(c) for c in cards], "total": results.get("total_cards", len(cards))})

    query = Card.query
    if q:
        query = query.filter(func.lower(Card.name).contains(q.lower()))
    rows, pagination = paginate(query.order_by(func.lower(Card.name), Card.id))
    return jsonify({"data": [serialize_card(c) for c in rows], "pagination": pagination})


@api_bp.get("/cards/<int:card_id>")
@login_required
def card_detail(card_id: int):
    card = get_or_404(Card, card_id)
    data = serialize_card(card)
    data["price_text"] = pricing.format_price_text(card.prices)
    return jsonify({"data": data})


@api_bp.post("/cards/lookup")
@login_required
@limiter.limit("30 per minute")
def card_lookup():
    """Fetch a card from Scryfall by id or name and cache it locally."""
    payload = json_body()
    if payload.get("scryfall_id"):
        remote = scryfall_client.fetch_card(str(payload["scryfall_id"]).strip())
    elif payload.get("name"):
        remote = scryfall_client.fetch_named(str(payload["name"]).strip(), exact=bool(payload.get("exact")))
    else:
        raise ValidationError("Provide scryfall_id or name.")
    card = scryfall_client.upsert_card_from_payload(remote)
    db.session.commit()
    return jsonify({"data": serialize_card(card)})


@api_bp.get("/cards/<int:card_id>/price-history")
@login_required
def card_price_history(card_id: int):
    card = get_or_404(Card, card_id)
    days = pricing.clamp_days(int_arg("days", 30))
    return jsonify({"data": pricing.price_history(card.id, days), "days": days})


@api_bp.get("/cards/sync-status")
@login_required
def card_sync_status():
    """Progress of the last bulk catalog sync (``flask sync-cards``)."""
    status = card_sync.get_sync_status()
    return jsonify({"data": status.to_dict() if status else None})
