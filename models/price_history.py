from __future__ import annotations

from datetime import datetime

from extensions import db


class CardPriceSnapshot(db.Model):
    """Daily price capture for a single printing."""

    __tablename__ = "card_price_snapshots"
    __table_args__ = (
        db.UniqueConstraint("card_id", "snapshot_date", name="uq_card_price_snapshots_card_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    oracle_id = db.Column(db.String(36), nullable=True, index=True)
    card_name = db.Column(db.String(255), nullable=False)
    snapshot_date = db.Column(db.Date, nullable=False, index=True)
    price_usd = db.Column(db.Float, nullable=True)
    price_usd_foil = db.Column(db.Float, nullable=True)
    price_eur = db.Column(db.Float, nullable=True)
    price_eur_foil = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    card = db.relationship("Card")

    def __repr__(self) -> str:
        return f"<CardPriceSnapshot card={self.card_id} {self.snapshot_date} ${self.price_usd}>"


class CollectionValueSnapshot(db.Model):
    """Daily total value of one user's collection."""

    __tablename__ = "collection_value_snapshots"
    __table_args__ = (
        db.UniqueConstraint("user_id", "snapshot_date", name="uq_collection_value_snapshots_user_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    snapshot_date = db.Column(db.Date, nullable=False, index=True)
    total_value_usd = db.Column(db.Float, nullable=False, default=0.0)
    card_count = db.Column(db.Integer, nullable=False, default=0)
    unique_card_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<CollectionValueSnapshot user={self.user_id} {self.snapshot_date} ${self.total_value_usd}>"
