"""Authentication and account API routes."""

from __future__ import annotations

from datetime import datetime

from flask import jsonify, session
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func

from extensions import db, generate_csrf, limiter
from models import User
from services.audit import record_audit_event
from utils.exceptions import AppError, ValidationError

from .base import api_bp, json_body

MIN_PASSWORD_LENGTH = 8
MAX_USERNAME_LENGTH = 80


class InvalidCredentialsError(AppError):
    status_code = 401
    code = "invalid_credentials"


def _serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "display_name": user.display_name,
        "api_token_hint": user.api_token_hint,
    }


@api_bp.get("/auth/csrf")
def csrf_token():
    """Hand a CSRF token to cookie-session clients."""
    return jsonify({"data": {"csrf_token": generate_csrf()}})


@api_bp.post("/auth/register")
@limiter.limit("10 per minute")
def register():
    payload = json_body()
    email = str(payload.get("email") or "").strip().lower()
    username = str(payload.get("username") or "").strip().lower()
    password = str(payload.get("password") or "").strip()

    if not email or not username or not password:
        raise ValidationError("Email, username, and password are required.")
    if "@" not in email:
        raise ValidationError("Enter a valid email address.")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be {MAX_USERNAME_LENGTH} characters or fewer.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    if User.query.filter(func.lower(User.email) == email).first():
        raise ValidationError("That email is already registered.")
    if User.query.filter(func.lower(User.username) == username).first():
        raise ValidationError("That username is already taken.")

    user = User(email=email, username=username, display_name=payload.get("display_name") or None)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    record_audit_event("user_registered", {"email": email, "username": username})
    db.session.commit()
    return jsonify({"data": _serialize_user(user)}), 201


@api_bp.post("/auth/login")
@limiter.limit("10 per minute")
def login():
    payload = json_body()
    identifier = str(payload.get("identifier") or payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    user = None
    if identifier:
        user = User.query.filter(func.lower(User.email) == identifier).first()
        if not user:
            user = User.query.filter(func.lower(User.username) == identifier).first()
    if not user or not user.check_password(password):
        raise InvalidCredentialsError("Invalid email/username or password.")

    login_user(user, remember=False, fresh=True)
    user.last_login_at = datetime.utcnow()
    record_audit_event("login", {"email": user.email})
    db.session.commit()
    return jsonify({"data": _serialize_user(user)})


@api_bp.post("/auth/logout")
@login_required
def logout():
    record_audit_event("logout", {"email": current_user.email})
    db.session.commit()
    logout_user()
    session.clear()
    return jsonify({"data": {"logged_out": True}})


@api_bp.post("/auth/token")
@login_required
def api_token():
    """Issue a fresh API token (shown once) or revoke the current one."""
    payload = json_body()
    if payload.get("revoke"):
        current_user.clear_api_token()
        record_audit_event("api_token_revoked", {})
        db.session.commit()
        return jsonify({"data": {"revoked": True}})

    token = current_user.issue_api_token()
    record_audit_event("api_token_issued", {"hint": token[-8:]})
    db.session.commit()
    return jsonify({"data": {"token": token, "hint": current_user.api_token_hint}}), 201


@api_bp.get("/me")
@login_required
def me():
    """Return the authenticated user's basic profile."""
    return jsonify({"data": _serialize_user(current_user)})
