"""Glue between persisted decks / JSON payloads and the power scorer."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from extensions import db
from models import Card, Deck, DeckCard
from services.audit import record_audit_event
from services.card_catalogs import ScoringCard
from services.power_scoring import EmptyDeckError, calculate_power_score, round_half_up
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_PAYLOAD_CARDS = 250


def scoring_card_from_model(card: Card) -> ScoringCard:
    return ScoringCard(
        name=card.name or "",
        cmc=float(card.cmc or 0),
        type_line=card.type_line or "",
        oracle_text=card.oracle_text or "",
        mana_cost=card.mana_cost or "",
        colors=tuple(card.colors or ()),
        color_identity=tuple(card.color_identity or ()),
        keywords=tuple(card.keywords or ()),
    )


def deck_scoring_cards(deck: Deck) -> tuple[List[ScoringCard], Optional[ScoringCard]]:
    """Expand main-board rows by quantity; the commander row is returned apart."""
    cards: List[ScoringCard] = []
    commander: Optional[ScoringCard] = None
    for row in deck.cards:
        if row.is_commander:
            commander = scoring_card_from_model(row.card)
            continue
        if row.board == DeckCard.BOARD_SIDE:
            continue
        entry = scoring_card_from_model(row.card)
        cards.extend([entry] * max(int(row.quantity or 0), 0))
    return cards, commander


def score_deck(deck: Deck) -> Dict[str, Any]:
    """Score a persisted deck and store the rounded power on it."""
    cards, commander = deck_scoring_cards(deck)
    try:
        result = calculate_power_score(cards, commander=commander)
    except EmptyDeckError as exc:
        raise ValidationError("Deck has no cards to score.") from exc

    deck.power_level = int(round_half_up(result["power"]))
    deck.power_scored_at = datetime.utcnow()
    db.session.flush()
    logger.info(
        "Scored deck %s: power=%s band=%s raw=%s",
        deck.id,
        result["power"],
        result["band"],
        result["raw_score"],
    )
    record_audit_event("deck_scored", {"deck_id": deck.id, "power": result["power"], "band": result["band"]})
    return result


def _payload_card(entry: Any, *, index: int) -> ScoringCard:
    if isinstance(entry, str):
        entry = {"name": entry}
    if not isinstance(entry, dict):
        raise ValidationError(f"cards[{index}] must be an object.")
    card = ScoringCard.from_mapping(entry)
    if not card.name:
        raise ValidationError(f"cards[{index}] is missing a name.")
    return card


def score_card_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Score ``{"commander": {...}, "cards": [{..., "quantity": n}]}`` without touching the DB."""
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object.")
    raw_cards = payload.get("cards") or []
    if not isinstance(raw_cards, list):
        raise ValidationError("cards must be a list.")

    cards: List[ScoringCard] = []
    for index, entry in enumerate(raw_cards):
        card = _payload_card(entry, index=index)
        quantity = entry.get("quantity", 1) if isinstance(entry, dict) else 1
        try:
            quantity = int(quantity)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"cards[{index}] has an invalid quantity.") from exc
        if quantity < 1:
            continue
        cards.extend([card] * quantity)
        if len(cards) > MAX_PAYLOAD_CARDS:
            raise ValidationError(f"At most {MAX_PAYLOAD_CARDS} cards can be scored at once.")

    commander = None
    if payload.get("commander"):
        commander = _payload_card(payload["commander"], index=-1)

    try:
        return calculate_power_score(cards, commander=commander)
    except EmptyDeckError as exc:
        raise ValidationError("No cards to score.") from exc
