"""Authorization helpers for DeckForge."""
from __future__ import annotations

from flask_login import current_user

from utils.exceptions import NotFoundError, PermissionDeniedError


def _is_owner(owner_id) -> bool:
    return bool(owner_id) and current_user.is_authenticated and current_user.id == owner_id


def ensure_deck_access(deck, *, write: bool = False) -> None:
    """Owners may read and write; anyone signed in may read a public deck."""
    if deck is None:
        raise NotFoundError("Deck not found.")
    if _is_owner(getattr(deck, "owner_user_id", None)):
        return
    if not (getattr(deck, "is_public", False) and current_user.is_authenticated):
        # Private decks stay invisible to other users
        raise NotFoundError("Deck not found.")
    if write:
        raise PermissionDeniedError("You do not have permission to modify this deck.")


def ensure_owned(row, *, label: str = "Item") -> None:
    """Rows scoped to a single user (collection, wishlist, notifications)."""
    if row is None or not _is_owner(getattr(row, "user_id", None)):
        raise NotFoundError(f"{label} not found.")
