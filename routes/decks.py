"""Deck API routes."""

from __future__ import annotations

from flask import Response, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import func, or_

from extensions import db
from models import Deck
from services import deck_service
from services.authz import ensure_deck_access
from utils.exceptions import ValidationError

from .base import api_bp, get_or_404, json_body, paginate


def _load_deck(deck_id: int, *, write: bool = False) -> Deck:
    deck = get_or_404(Deck, deck_id, label="Deck")
    ensure_deck_access(deck, write=write)
    return deck


@api_bp.get("/decks")
@login_required
def list_decks():
    """List the current user's decks; ``public=1`` also includes other users' public decks."""
    filters = [Deck.owner_user_id == current_user.id]
    if request.args.get("public") in {"1", "true", "yes"}:
        filters.append(Deck.is_public.is_(True))
    query = Deck.query.filter(or_(*filters)).order_by(func.lower(Deck.name), Deck.id)
    rows, pagination = paginate(query)
    return jsonify({"data": [deck_service.serialize_deck(d) for d in rows], "pagination": pagination})


@api_bp.post("/decks")
@login_required
def create_deck():
    deck = deck_service.create_deck(current_user.id, json_body())
    db.session.commit()
    return jsonify({"data": deck_service.serialize_deck(deck, include_cards=True)}), 201


@api_bp.get("/decks/<int:deck_id>")
@login_required
def deck_detail(deck_id: int):
    deck = _load_deck(deck_id)
    return jsonify({"data": deck_service.serialize_deck(deck, include_cards=True)})


@api_bp.patch("/decks/<int:deck_id>")
@login_required
def update_deck(deck_id: int):
    deck = _load_deck(deck_id, write=True)
    deck_service.update_deck(deck, json_body())
    db.session.commit()
    return jsonify({"data": deck_service.serialize_deck(deck, include_cards=True)})


@api_bp.delete("/decks/<int:deck_id>")
@login_required
def delete_deck(deck_id: int):
    deck = _load_deck(deck_id, write=True)
    deck_service.delete_deck(deck)
    db.session.commit()
    return "", 204


@api_bp.post("/decks/<int:deck_id>/cards")
@login_required
def add_deck_card(deck_id: int):
    deck = _load_deck(deck_id, write=True)
    deck_service.add_card_from_payload(deck, json_body())
    db.session.commit()
    return jsonify({"data": deck_service.serialize_deck(deck, include_cards=True)}), 201


@api_bp.patch("/decks/<int:deck_id>/cards/<int:deck_card_id>")
@login_required
def update_deck_card(deck_id: int, deck_card_id: int):
    deck = _load_deck(deck_id, write=True)
    row = deck_service.get_deck_card(deck, deck_card_id)
    deck_service.update_deck_card(deck, row, json_body())
    db.session.commit()
    return jsonify({"data": deck_service.serialize_deck(deck, include_cards=True)})


@api_bp.delete("/decks/<int:deck_id>/cards/<int:deck_card_id>")
@login_required
def delete_deck_card(deck_id: int, deck_card_id: int):
    deck = _load_deck(deck_id, write=True)
    row = deck_service.get_deck_card(deck, deck_card_id)
    deck_service.remove_deck_card(deck, row)
    db.session.commit()
    return "", 204


@api_bp.post("/decks/import")
@login_required
def import_deck():
    """Create a deck from pasted text: ``{"name": ..., "text": ..., "format": ...}``."""
    payload = json_body()
    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Deck list text is required.")
    deck, parsed, missing = deck_service.import_deck_list(
        current_user.id,
        name=payload.get("name") or "Imported Deck",
        text=text,
        deck_format=payload.get("format"),
    )
    db.session.commit()
    return (
        jsonify(
            {
                "data": deck_service.serialize_deck(deck, include_cards=True),
                "errors": parsed.errors,
                "warnings": parsed.warnings,
                "missing": missing,
            }
        ),
        201,
    )


@api_bp.get("/decks/<int:deck_id>/export")
@login_required
def export_deck(deck_id: int):
    deck = _load_deck(deck_id)
    body = deck_service.export_deck_list(deck)
    filename = f"deck-{deck.id}.txt"
    return Response(
        body,
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
