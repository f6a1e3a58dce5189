"""Flask application factory, CLI entry points, and database bootstrap."""

import json
import logging
from logging.handlers import RotatingFileHandler
import os
import sqlite3
import uuid
from pathlib import Path

import click
from flask import Flask, g, has_request_context, jsonify, request
from flask.logging import default_handler
from flask_compress import Compress
from flask_talisman import Talisman
from sqlalchemy import event, func
from sqlalchemy.engine import Engine

from dotenv import load_dotenv; load_dotenv()

from config import Config, INSTANCE_DIR as CONFIG_INSTANCE_DIR
from extensions import db, migrate, cache, csrf, limiter, login_manager
from utils.error_handlers import register_error_handlers

# Endpoints a cookie client can hit before it has a session to protect
CSRF_EXEMPT_ENDPOINTS = {"api.login", "api.register", "api.csrf_token"}
_SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

_installed_log_handlers: list = []


class RequestIdFilter(logging.Filter):
    """Inject request-scoped metadata into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = getattr(g, "request_id", "n/a")
            record.path = request.path
            record.method = request.method
        else:
            record.request_id = getattr(record, "request_id", "startup")
            record.path = getattr(record, "path", "")
            record.method = getattr(record, "method", "")
        return True


class JsonRequestFormatter(logging.Formatter):
    """Simple JSON formatter for logfmt-friendly ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "n/a"),
            "path": getattr(record, "path", ""),
            "method": getattr(record, "method", ""),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def _bearer_token(req):
    auth_header = req.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return None


def _configure_login_manager(app: Flask) -> None:
    """Bind Flask-Login and support API token authentication."""
    login_manager.init_app(app)
    login_manager.session_protection = "strong"

    @login_manager.user_loader
    def _load_user(user_id: str):
        from models import User

        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.request_loader
    def _load_user_from_request(req):
        from models import User

        token = _bearer_token(req)
        if not token:
            return None
        return User.verify_api_token(token)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"error": "authentication_required", "detail": "Sign in or send a Bearer token."}), 401


# ---------------------------------------------------------------------------
# Extension bootstrap helpers
# ---------------------------------------------------------------------------

def _safe_init_sqlalchemy(app: Flask):
    """Initialise SQLAlchemy only if it has not been bound yet."""
    if not getattr(app, "extensions", None) or "sqlalchemy" not in app.extensions:
        db.init_app(app)


def _safe_init_migrate(app: Flask):
    """Bind Flask-Migrate with batch mode so SQLite ALTERs work."""
    if not getattr(app, "extensions", None) or "migrate" not in app.extensions:
        migrate.init_app(app, db, render_as_batch=True)


def _safe_init_cache(app: Flask):
    """Register the cache extension, falling back to SimpleCache if the backend is unavailable."""
    try:
        cache.init_app(app)
    except Exception as exc:
        app.logger.warning("Primary cache init failed (%s); falling back to SimpleCache.", exc)
        cache.init_app(app, config={"CACHE_TYPE": "SimpleCache", "CACHE_DEFAULT_TIMEOUT": 600})


def _configure_logging(app: Flask) -> None:
    """Configure structured logging with request IDs."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")), logging.INFO)

    stream_handler = logging.StreamHandler()
    stream_handler.addFilter(RequestIdFilter())
    stream_handler.setFormatter(JsonRequestFormatter())
    stream_handler.setLevel(level)

    handlers = [stream_handler]

    try:
        logs_dir = Path(app.instance_path) / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            logs_dir / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.addFilter(RequestIdFilter())
        file_handler.setFormatter(JsonRequestFormatter())
        file_handler.setLevel(level)
        handlers.append(file_handler)
    except OSError as exc:
        app.logger.warning("Falling back to stream-only logging (file handler unavailable): %s", exc)

    # Module loggers propagate to root; replace anything a previous app instance installed
    root = logging.getLogger()
    for handler in _installed_log_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_log_handlers[:] = handlers
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

    app.logger.removeHandler(default_handler)
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    # Route modules attach their views to api_bp on import
    from routes import auth, cards, collection, decks, notifications, power, wishlist  # noqa: F401
    from routes.base import api_bp

    app.register_blueprint(api_bp)


def create_app():
    """Create, configure, and return a fully-initialised Flask app."""
    app = Flask(
        __name__,
        instance_path=str(CONFIG_INSTANCE_DIR),
        instance_relative_config=False,
    )
    app.config.from_object(Config)
    os.makedirs(app.instance_path, exist_ok=True)
    _configure_logging(app)

    # --- Core extensions ---
    _safe_init_sqlalchemy(app)
    _safe_init_migrate(app)
    _safe_init_cache(app)
    _configure_login_manager(app)
    csrf.init_app(app)
    limiter.init_app(app)
    Compress(app)

    if app.config.get("ENABLE_TALISMAN", True):
        Talisman(
            app,
            content_security_policy=app.config.get("CONTENT_SECURITY_POLICY"),
            force_https=app.config.get("TALISMAN_FORCE_HTTPS", not app.debug),
            session_cookie_secure=app.config.get("SESSION_COOKIE_SECURE", True),
            session_cookie_samesite=app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        )

    register_error_handlers(app)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    @app.before_request
    def _reject_querystring_api_token():
        if "api_token" not in request.args:
            return
        detail = "API tokens must be sent using the Authorization: Bearer header; query parameters are not accepted."
        return jsonify({"error": "api_token_query_not_supported", "detail": detail}), 400

    @app.before_request
    def _csrf_for_cookie_sessions():
        """Bearer-token clients are exempt; cookie sessions must echo the CSRF token."""
        if not app.config.get("WTF_CSRF_ENABLED", True):
            return
        if request.method in _SAFE_METHODS or request.endpoint in CSRF_EXEMPT_ENDPOINTS:
            return
        if _bearer_token(request):
            return
        csrf.protect()

    _register_blueprints(app)

    # Alembic owns the schema outside local development
    if app.debug:
        with app.app_context():
            import models  # noqa: F401

            db.create_all()

    # ------------------------------------------------------------------
    # CLI COMMANDS
    # ------------------------------------------------------------------
    from models import Deck, User
    from services import card_sync, deck_power, price_alerts, pricing
    from utils.exceptions import AppError

    @app.cli.command("create-user")
    @click.argument("username")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--display-name", default=None, help="Optional label shown in the UI")
    def create_user(username, email, password, display_name):
        normalized = email.strip().lower()
        if not normalized:
            raise click.ClickException("Email is required.")
        if User.query.filter(func.lower(User.email) == normalized).first():
            raise click.ClickException(f"User {normalized} already exists.")
        username_clean = username.strip().lower()
        if not username_clean:
            raise click.ClickException("Username is required.")
        if User.query.filter(func.lower(User.username) == username_clean).first():
            raise click.ClickException(f"Username {username_clean} already exists.")
        user = User(email=normalized, username=username_clean, display_name=display_name)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created user {normalized}/{username_clean}.")

    @app.cli.command("score-deck")
    @click.argument("deck_id", type=int)
    @click.option("--json", "as_json", is_flag=True, help="Print the full scoring breakdown as JSON.")
    def score_deck_cmd(deck_id, as_json):
        deck = db.session.get(Deck, deck_id)
        if deck is None:
            raise click.ClickException(f"Deck {deck_id} not found.")
        result = deck_power.score_deck(deck)
        db.session.commit()
        if as_json:
            click.echo(json.dumps(result, indent=2))
            return
        click.echo(f"{deck.name}: power {result['power']} ({result['band']}), raw score {result['raw_score']}")
        for line in result["drivers"]:
            click.echo(f"  + {line}")
        for line in result["drags"]:
            click.echo(f"  - {line}")

    @app.cli.command("sync-cards")
    @click.option("--query", default=None, help="Sync only cards matching a Scryfall search instead of the oracle bulk file.")
    @click.option("--max-pages", type=click.IntRange(min=1), default=None, help="Stop a --query sync after this many pages.")
    @click.option("--batch-size", type=click.IntRange(min=1), default=card_sync.DEFAULT_BATCH_SIZE, show_default=True)
    @click.option("--force", is_flag=True, help="Start even if another sync still looks like it is running.")
    def sync_cards_cmd(query, max_pages, batch_size, force):
        try:
            stats = card_sync.sync_cards(query=query, max_pages=max_pages, batch_size=batch_size, force=force)
        except AppError as exc:
            raise click.ClickException(exc.detail) from exc
        click.echo(
            f"Synced {stats['upserted']} card(s) from {stats['processed']} record(s) "
            f"({stats['skipped']} skipped)."
        )

    @app.cli.command("capture-prices")
    @click.option("--limit", type=int, default=None, help="Maximum cards to snapshot (defaults to PRICE_CAPTURE_LIMIT).")
    def capture_prices_cmd(limit):
        stats = pricing.capture_daily_prices(limit or app.config.get("PRICE_CAPTURE_LIMIT"))
        click.echo(f"Captured {stats['captured']}/{stats['processed']} card prices ({stats['failed']} failed).")

    @app.cli.command("capture-collection-values")
    @click.option("--user-id", type=int, default=None, help="Only snapshot this user's collection.")
    def capture_collection_values_cmd(user_id):
        snapshots = pricing.capture_collection_values(user_id)
        click.echo(f"Captured {len(snapshots)} collection value snapshot(s).")

    @app.cli.command("check-price-alerts")
    def check_price_alerts_cmd():
        stats = price_alerts.check_price_alerts()
        click.echo(f"Checked {stats['checked']} alert(s); sent {stats['notified']} notification(s).")

    @app.after_request
    def attach_request_id(resp):
        rid = getattr(g, "request_id", None)
        if rid:
            resp.headers.setdefault("X-Request-ID", rid)
        return resp

    @app.after_request
    def security_headers(resp):
        """Attach a minimal set of security-related HTTP headers to each response."""
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        return resp

    return app


if __name__ == "__main__":
    _app = create_app()
    _app.run(host="127.0.0.1", port=5000, debug=True)


# Single SQLite PRAGMA hook (avoid duplicate listeners)
_SQLITE_PRAGMA_STATEMENTS = (
    "PRAGMA foreign_keys=ON;",
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
)


@event.listens_for(Engine, "connect")
def _sqlite_pragmas(dbapi_connection, _) -> None:
    """Apply pragmatic performance/safety PRAGMAs each time SQLite opens a connection."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cur = dbapi_connection.cursor()
    for statement in _SQLITE_PRAGMA_STATEMENTS:
        cur.execute(statement)
    cur.close()
