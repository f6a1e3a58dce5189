from __future__ import annotations

from datetime import datetime

from extensions import db


class Deck(db.Model):
    __tablename__ = "decks"

    FORMAT_COMMANDER = "commander"
    FORMATS = ("commander", "standard", "modern", "pioneer", "legacy", "vintage", "pauper", "casual")

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    format = db.Column(db.String(32), nullable=False, default=FORMAT_COMMANDER)
    description = db.Column(db.Text, nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=False, server_default=db.text("0"))

    # Last computed heuristic power (1-10, rounded) and when it was scored
    power_level = db.Column(db.Integer, nullable=True)
    power_scored_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = db.relationship("User", back_populates="decks")
    cards = db.relationship(
        "DeckCard",
        back_populates="deck",
        cascade="all, delete-orphan",
        order_by="DeckCard.id",
    )

    @property
    def commander(self) -> "DeckCard | None":
        for row in self.cards:
            if row.is_commander:
                return row
        return None

    @property
    def total_cards(self) -> int:
        return sum(int(row.quantity or 0) for row in self.cards if row.board != DeckCard.BOARD_SIDE)

    def __repr__(self) -> str:
        return f"<Deck {self.id} {self.name!r}>"


class DeckCard(db.Model):
    __tablename__ = "deck_cards"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="quantity_positive"),
        db.UniqueConstraint("deck_id", "card_id", "board", name="uq_deck_cards_deck_card_board"),
    )

    BOARD_MAIN = "main"
    BOARD_SIDE = "sideboard"
    BOARD_COMMANDER = "commander"
    BOARDS = (BOARD_MAIN, BOARD_SIDE, BOARD_COMMANDER)

    id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(db.Integer, db.ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    board = db.Column(db.String(16), nullable=False, default=BOARD_MAIN)
    is_commander = db.Column(db.Boolean, nullable=False, default=False, server_default=db.text("0"))

    deck = db.relationship("Deck", back_populates="cards")
    card = db.relationship("Card")

    def __repr__(self) -> str:
        return f"<DeckCard deck={self.deck_id} card={self.card_id} x{self.quantity}>"
