from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime
from typing import Optional

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db

TOKEN_HINT_LENGTH = 8


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class User(UserMixin, db.Model):
    """A DeckForge account: owns decks, a collection and a wishlist.

    Clients authenticate with the session cookie from ``/api/auth/login`` or
    with a bearer token; only the token's SHA-256 digest is stored.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    api_token_hash = db.Column(db.String(64), nullable=True, unique=True)
    api_token_hint = db.Column(db.String(12), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    decks = db.relationship("Deck", back_populates="owner", lazy="dynamic", cascade="all, delete-orphan")
    collection_items = db.relationship(
        "CollectionItem", back_populates="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    wishlist_items = db.relationship(
        "WishlistItem", back_populates="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    audit_logs = db.relationship("AuditLog", back_populates="user", lazy="dynamic")

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password.strip())

    def check_password(self, raw_password: str | None) -> bool:
        if not raw_password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, raw_password.strip())

    def issue_api_token(self) -> str:
        """Replace the bearer token; the plaintext is only available from this call."""
        token = secrets.token_urlsafe(32)
        self.api_token_hash = _token_digest(token)
        self.api_token_hint = token[-TOKEN_HINT_LENGTH:]
        return token

    def clear_api_token(self) -> None:
        self.api_token_hash = None
        self.api_token_hint = None

    @classmethod
    def verify_api_token(cls, token: str | None) -> Optional["User"]:
        if not token:
            return None
        digest = _token_digest(token)
        user = cls.query.filter_by(api_token_hash=digest).first()
        if user is None or not hmac.compare_digest(user.api_token_hash or "", digest):
            return None
        return user

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    action = db.Column(db.String(120), nullable=False)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    user = db.relationship("User", back_populates="audit_logs")
