"""Deck CRUD and deck-list import/export."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from extensions import db
from models import Card, Deck, DeckCard
from services import scryfall_client
from services.audit import record_audit_event
from services.deck_lists import (
    SECTION_COMMANDER,
    SECTION_SIDEBOARD,
    ParseResult,
    format_deck_list,
    parse_deck_list,
)
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_DECK_NAME = 200

_SECTION_TO_BOARD = {
    SECTION_COMMANDER: DeckCard.BOARD_COMMANDER,
    SECTION_SIDEBOARD: DeckCard.BOARD_SIDE,
}


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize_card(card: Card) -> Dict[str, Any]:
    return {
        "id": card.id,
        "scryfall_id": card.scryfall_id,
        "oracle_id": card.oracle_id,
        "name": card.name,
        "set_code": card.set_code,
        "collector_number": card.collector_number,
        "rarity": card.rarity,
        "mana_cost": card.mana_cost,
        "cmc": card.cmc,
        "type_line": card.type_line,
        "oracle_text": card.oracle_text,
        "colors": card.colors or [],
        "color_identity": card.color_identity or [],
        "prices": card.prices or {},
        "image_uri": card.image_uri,
    }


def serialize_deck(deck: Deck, *, include_cards: bool = False) -> Dict[str, Any]:
    data = {
        "id": deck.id,
        "name": deck.name,
        "format": deck.format,
        "description": deck.description,
        "is_public": bool(deck.is_public),
        "owner_user_id": deck.owner_user_id,
        "power_level": deck.power_level,
        "power_scored_at": deck.power_scored_at.isoformat() if deck.power_scored_at else None,
        "total_cards": deck.total_cards,
        "commander": deck.commander.card.name if deck.commander else None,
        "updated_at": deck.updated_at.isoformat() if isinstance(deck.updated_at, datetime) else None,
    }
    if include_cards:
        data["cards"] = [
            {
                "id": row.id,
                "quantity": row.quantity,
                "board": row.board,
                "is_commander": bool(row.is_commander),
                "card": serialize_card(row.card),
            }
            for row in deck.cards
        ]
    return data


# ---------------------------------------------------------------------------
# Deck CRUD
# ---------------------------------------------------------------------------

def _clean_name(value: Any) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValidationError("Deck name is required.")
    if len(name) > MAX_DECK_NAME:
        raise ValidationError(f"Deck name must be at most {MAX_DECK_NAME} characters.")
    return name


def _clean_format(value: Any) -> str:
    fmt = str(value or Deck.FORMAT_COMMANDER).strip().lower()
    if fmt not in Deck.FORMATS:
        raise ValidationError(f"Unsupported format '{fmt}'.")
    return fmt


def create_deck(owner_id: int, payload: Dict[str, Any]) -> Deck:
    deck = Deck(
        owner_user_id=owner_id,
        name=_clean_name(payload.get("name")),
        format=_clean_format(payload.get("format")),
        description=(payload.get("description") or None),
        is_public=bool(payload.get("is_public", False)),
    )
    db.session.add(deck)
    db.session.flush()
    record_audit_event("deck_created", {"deck_id": deck.id, "name": deck.name})
    return deck


def update_deck(deck: Deck, payload: Dict[str, Any]) -> Deck:
    if "name" in payload:
        deck.name = _clean_name(payload.get("name"))
    if "format" in payload:
        deck.format = _clean_format(payload.get("format"))
    if "description" in payload:
        deck.description = payload.get("description") or None
    if "is_public" in payload:
        deck.is_public = bool(payload.get("is_public"))
    db.session.flush()
    return deck


def delete_deck(deck: Deck) -> None:
    record_audit_event("deck_deleted", {"deck_id": deck.id, "name": deck.name})
    db.session.delete(deck)
    db.session.flush()


# ---------------------------------------------------------------------------
# Deck cards
# ---------------------------------------------------------------------------

def _parse_quantity(value: Any, *, default: int = 1, allow_zero: bool = False) -> int:
    if value in (None, ""):
        return default
    try:
        qty = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Quantity must be a whole number.") from exc
    minimum = 0 if allow_zero else 1
    if qty < minimum:
        raise ValidationError(f"Quantity must be at least {minimum}.")
    return qty


def _parse_card_id(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("card_id must be an integer.") from exc


def _clean_board(value: Any) -> str:
    board = str(value or DeckCard.BOARD_MAIN).strip().lower()
    if board not in DeckCard.BOARDS:
        raise ValidationError(f"Unsupported board '{board}'.")
    return board


def _move_to_board(deck: Deck, row: DeckCard, board: str) -> DeckCard:
    """Move a row to another board, folding it into a row that already holds the card there."""
    target = next(
        (r for r in deck.cards if r is not row and r.card_id == row.card_id and r.board == board),
        None,
    )
    if target is None:
        row.board = board
        return row
    target.quantity += row.quantity
    deck.cards.remove(row)
    db.session.flush()
    return target


def set_commander(deck: Deck, deck_card: DeckCard) -> DeckCard:
    """Mark one row as the commander; any previous commander moves to the main board."""
    for row in list(deck.cards):
        if row is deck_card or not row.is_commander:
            continue
        row.is_commander = False
        if row.card_id == deck_card.card_id:
            deck.cards.remove(row)
            db.session.flush()
        else:
            _move_to_board(deck, row, DeckCard.BOARD_MAIN)
    deck_card.is_commander = True
    deck_card.board = DeckCard.BOARD_COMMANDER
    deck_card.quantity = 1
    return deck_card


def add_card(deck: Deck, card: Card, *, quantity: int = 1, board: str = DeckCard.BOARD_MAIN) -> DeckCard:
    """Add copies of a card, merging with an existing row on the same board."""
    board = _clean_board(board)
    quantity = _parse_quantity(quantity)
    existing = next((row for row in deck.cards if row.card_id == card.id and row.board == board), None)
    if existing is not None and board != DeckCard.BOARD_COMMANDER:
        existing.quantity += quantity
        row = existing
    elif existing is not None:
        row = existing
    else:
        row = DeckCard(card=card, card_id=card.id, quantity=quantity, board=board)
        deck.cards.append(row)
    if board == DeckCard.BOARD_COMMANDER:
        set_commander(deck, row)
    db.session.flush()
    return row


def add_card_from_payload(deck: Deck, payload: Dict[str, Any]) -> DeckCard:
    card = None
    if payload.get("card_id"):
        card = db.session.get(Card, _parse_card_id(payload["card_id"]))
    elif payload.get("name"):
        card = scryfall_client.resolve_card(str(payload["name"]))
    else:
        raise ValidationError("Provide card_id or name.")
    if card is None:
        raise NotFoundError("Card not found.")
    board = DeckCard.BOARD_COMMANDER if payload.get("is_commander") else payload.get("board")
    return add_card(deck, card, quantity=payload.get("quantity", 1), board=board)


def get_deck_card(deck: Deck, deck_card_id: int) -> DeckCard:
    row = next((r for r in deck.cards if r.id == deck_card_id), None)
    if row is None:
        raise NotFoundError("Deck card not found.")
    return row


def update_deck_card(deck: Deck, row: DeckCard, payload: Dict[str, Any]) -> Optional[DeckCard]:
    """Apply quantity/board/commander changes; quantity 0 removes the row."""
    if "quantity" in payload:
        qty = _parse_quantity(payload.get("quantity"), allow_zero=True)
        if qty == 0:
            remove_deck_card(deck, row)
            return None
        row.quantity = qty
    if payload.get("is_commander"):
        set_commander(deck, row)
    elif "board" in payload:
        board = _clean_board(payload.get("board"))
        if board == DeckCard.BOARD_COMMANDER:
            set_commander(deck, row)
        else:
            row.is_commander = False
            row = _move_to_board(deck, row, board)
    db.session.flush()
    return row


def remove_deck_card(deck: Deck, row: DeckCard) -> None:
    deck.cards.remove(row)
    db.session.flush()


# ---------------------------------------------------------------------------
# Text import / export
# ---------------------------------------------------------------------------

def import_deck_list(
    owner_id: int,
    *,
    name: str,
    text: str,
    deck_format: str | None = None,
    allow_remote: bool = True,
) -> tuple[Deck, ParseResult, List[str]]:
    """Create a deck from a pasted list; unresolved names are reported, not fatal."""
    parsed = parse_deck_list(text)
    if not parsed.cards:
        raise ValidationError("No cards could be parsed from the deck list.", payload={"errors": parsed.errors})

    deck = create_deck(owner_id, {"name": name, "format": deck_format})
    missing: List[str] = []
    for line in parsed.cards:
        card = scryfall_client.resolve_card(line.name, allow_remote=allow_remote)
        if card is None:
            missing.append(line.name)
            continue
        board = _SECTION_TO_BOARD.get(line.section, DeckCard.BOARD_MAIN)
        add_card(deck, card, quantity=line.quantity, board=board)

    if missing:
        logger.info("Deck import %s: %d unresolved card(s)", deck.id, len(missing))
    return deck, parsed, missing


def export_deck_list(deck: Deck) -> str:
    entries = []
    for row in deck.cards:
        if row.is_commander:
            section = SECTION_COMMANDER
        elif row.board == DeckCard.BOARD_SIDE:
            section = SECTION_SIDEBOARD
        else:
            section = "main"
        entries.append((row.card.name, int(row.quantity), section))
    return format_deck_list(entries)
