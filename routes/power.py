"""Power scoring API routes."""

from __future__ import annotations

from flask import jsonify
from flask_login import login_required

from extensions import db, limiter
from models import Deck
from services import deck_power, edh_power_check
from services.authz import ensure_deck_access
from utils.exceptions import ValidationError

from .base import api_bp, get_or_404, json_body, parse_id


@api_bp.post("/decks/<int:deck_id>/power")
@login_required
@limiter.limit("30 per minute")
def score_deck(deck_id: int):
    """Score a saved deck and persist its rounded power level."""
    deck = get_or_404(Deck, deck_id, label="Deck")
    ensure_deck_access(deck, write=True)
    result = deck_power.score_deck(deck)
    db.session.commit()
    return jsonify({"data": result, "deck_id": deck.id, "power_level": deck.power_level})


@api_bp.post("/power/score")
@login_required
@limiter.limit("60 per minute")
def score_payload():
    return jsonify({"data": deck_power.score_card_payload(json_body())})


@api_bp.post("/power/edh-check")
@login_required
@limiter.limit("10 per minute")
def edh_check():
    """Ask edhpowerlevel.com for a second opinion on a saved deck or an ad-hoc list."""
    payload = json_body()
    if payload.get("deck_id"):
        deck = get_or_404(Deck, parse_id(payload["deck_id"], field="deck_id"), label="Deck")
        ensure_deck_access(deck)
        commander = deck.commander.card.name if deck.commander else None
        cards = [
            {"name": row.card.name, "quantity": row.quantity}
            for row in deck.cards
            if not row.is_commander and row.board != row.BOARD_SIDE
        ]
    else:
        commander = payload.get("commander")
        cards = payload.get("cards") or []
        if not isinstance(cards, list):
            raise ValidationError("cards must be a list.")
    if not cards and not commander:
        raise ValidationError("Provide a deck_id or a commander/cards list.")
    return jsonify({"data": edh_power_check.check_power_level(commander, cards)})
