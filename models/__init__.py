"""SQLAlchemy models package for DeckForge.
Re-exports the shared `db` instance to avoid import loops and provides
convenient names for the model classes.

Usage:
    from models import db, Card, Deck, WishlistItem
"""
from __future__ import annotations

from extensions import db  # shared SQLAlchemy() instance

# Import models only after db exists to avoid circular imports
from .card import Card  # type: ignore F401
from .collection import CollectionItem  # type: ignore F401
from .deck import Deck, DeckCard  # type: ignore F401
from .notification import Notification  # type: ignore F401
from .price_history import CardPriceSnapshot, CollectionValueSnapshot  # type: ignore F401
from .sync_status import SyncStatus  # type: ignore F401
from .user import AuditLog, User  # type: ignore F401
from .wishlist import WishlistItem  # type: ignore F401

__all__ = [
    "db",
    "AuditLog",
    "Card",
    "CardPriceSnapshot",
    "CollectionItem",
    "CollectionValueSnapshot",
    "Deck",
    "DeckCard",
    "Notification",
    "SyncStatus",
    "User",
    "WishlistItem",
]
