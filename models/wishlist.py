from datetime import datetime

from extensions import db


class WishlistItem(db.Model):
    __tablename__ = "wishlist_items"

    ALERT_BELOW = "below"
    ALERT_ABOVE = "above"
    ALERT_TYPES = (ALERT_BELOW, ALERT_ABOVE)

    PRIORITIES = ("low", "medium", "high")

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Optional linkage to a known Card row (nullable so names can be wished before lookup)
    card_id = db.Column(
        db.Integer,
        db.ForeignKey("cards.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Display name
    name = db.Column(db.String(200), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    priority = db.Column(db.String(8), nullable=False, default="medium")
    note = db.Column(db.Text, nullable=True)

    target_price_usd = db.Column(db.Float, nullable=True)
    alert_enabled = db.Column(db.Boolean, nullable=False, default=False, server_default=db.text("0"))
    alert_type = db.Column(db.String(8), nullable=False, default=ALERT_BELOW)
    last_notified_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    card = db.relationship("Card")
    user = db.relationship("User", back_populates="wishlist_items")

    def __repr__(self):
        return f"<WishlistItem {self.name!r} x{self.quantity}>"
