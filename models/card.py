from datetime import datetime

from extensions import db


class Card(db.Model):
    """One Scryfall printing cached locally for deck, collection and price lookups."""

    __tablename__ = "cards"
    __table_args__ = (
        db.Index("ix_cards_set_print", "set_code", "collector_number"),
        db.Index("ix_cards_updated_at", "updated_at"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Scryfall identity
    scryfall_id = db.Column(db.String(36), unique=True, nullable=True, index=True)
    oracle_id = db.Column(db.String(36), nullable=True, index=True)

    name = db.Column(db.String(255), index=True, nullable=False)
    set_code = db.Column(db.String(10), nullable=True)
    collector_number = db.Column(db.String(20), nullable=True)
    rarity = db.Column(db.String(16), nullable=True)

    # Rules text used by the power scorer
    mana_cost = db.Column(db.String(64), nullable=True)
    cmc = db.Column(db.Float, nullable=False, default=0.0)
    type_line = db.Column(db.Text, nullable=True)
    oracle_text = db.Column(db.Text, nullable=True)
    power = db.Column(db.String(8), nullable=True)
    toughness = db.Column(db.String(8), nullable=True)
    colors = db.Column(db.JSON, nullable=True)
    color_identity = db.Column(db.JSON, nullable=True)
    keywords = db.Column(db.JSON, nullable=True)

    # Latest Scryfall price payload ({"usd": "1.23", ...})
    prices = db.Column(db.JSON, nullable=True)
    image_uri = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_land(self) -> bool:
        return "land" in (self.type_line or "").lower()

    @property
    def price_usd(self) -> float | None:
        raw = (self.prices or {}).get("usd")
        if raw in (None, ""):
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None

    def __repr__(self):
        return f"<Card {self.name} [{self.set_code} #{self.collector_number}]>"
