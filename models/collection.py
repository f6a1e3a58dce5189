from __future__ import annotations

from datetime import datetime

from extensions import db


class CollectionItem(db.Model):
    __tablename__ = "collection_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_nonneg"),
        db.CheckConstraint("foil_quantity >= 0", name="foil_nonneg"),
        db.UniqueConstraint("user_id", "card_id", "condition", name="uq_collection_items_user_card_condition"),
    )

    CONDITIONS = ("near_mint", "lightly_played", "moderately_played", "heavily_played", "damaged")
    CONDITION_LABELS = {
        "near_mint": "Near Mint",
        "lightly_played": "Lightly Played",
        "moderately_played": "Moderately Played",
        "heavily_played": "Heavily Played",
        "damaged": "Damaged",
    }

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    foil_quantity = db.Column(db.Integer, nullable=False, default=0)
    condition = db.Column(db.String(24), nullable=False, default="near_mint")
    purchase_price = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    card = db.relationship("Card")
    user = db.relationship("User", back_populates="collection_items")

    @property
    def total_quantity(self) -> int:
        return int(self.quantity or 0) + int(self.foil_quantity or 0)

    def __repr__(self) -> str:
        return f"<CollectionItem user={self.user_id} card={self.card_id} x{self.quantity}>"
