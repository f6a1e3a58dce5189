from __future__ import annotations
import os
from pathlib import Path

# Absolute project dir
BASE_DIR = Path(__file__).resolve().parent
# Absolute instance dir (defaults to <project>/instance)
INSTANCE_DIR = Path(os.getenv("INSTANCE_DIR", BASE_DIR / "instance")).resolve()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    # Flask basics
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")  # override in prod!

    # Database (absolute sqlite path; forward slashes are fine on Windows)
    DEFAULT_SQLITE = f"sqlite:///{(INSTANCE_DIR / 'deckforge.db').as_posix()}"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", DEFAULT_SQLITE)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Uploads / responses
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 8 * 1024 * 1024))

    # Cookie security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")

    # CSRF is enforced manually for cookie sessions; bearer-token clients skip it
    WTF_CSRF_CHECK_DEFAULT = False

    # Cache configuration (defaults to in-process SimpleCache)
    CACHE_DEFAULT_TIMEOUT = int(os.getenv("CACHE_DEFAULT_TIMEOUT", 600))
    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per minute")
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "1")
    ENABLE_TALISMAN = _env_flag("ENABLE_TALISMAN", "1")
    TALISMAN_FORCE_HTTPS = _env_flag("TALISMAN_FORCE_HTTPS", "1")
    CONTENT_SECURITY_POLICY = {
        "default-src": "'self'",
        "img-src": "'self' data: https://c1.scryfall.com https://cards.scryfall.io",
        "connect-src": "'self'",
    }

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Scryfall (read-only card data)
    SCRYFALL_API_BASE = os.getenv("SCRYFALL_API_BASE", "https://api.scryfall.com")
    SCRYFALL_UA = os.getenv("SCRYFALL_UA", "DeckForge/1.0 (+https://deckforge.local)")
    SCRYFALL_HTTP_TIMEOUT = float(os.getenv("SCRYFALL_HTTP_TIMEOUT", 15))
    SCRYFALL_RETRY_TOTAL = int(os.getenv("SCRYFALL_RETRY_TOTAL", 3))
    SCRYFALL_RETRY_BACKOFF = float(os.getenv("SCRYFALL_RETRY_BACKOFF", 0.5))
    SCRYFALL_BULK_TIMEOUT = float(os.getenv("SCRYFALL_BULK_TIMEOUT", 600))

    # Price history / alerts
    PRICE_CAPTURE_LIMIT = int(os.getenv("PRICE_CAPTURE_LIMIT", 500))
    PRICE_ALERT_COOLDOWN_HOURS = int(os.getenv("PRICE_ALERT_COOLDOWN_HOURS", 24))

    # edhpowerlevel.com lookups
    EDH_POWER_CHECK_URL = os.getenv("EDH_POWER_CHECK_URL", "https://edhpowerlevel.com/")
    EDH_POWER_CHECK_TIMEOUT = float(os.getenv("EDH_POWER_CHECK_TIMEOUT", 8))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    TALISMAN_FORCE_HTTPS = False


class TestingConfig(BaseConfig):
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    ENABLE_TALISMAN = False
    CACHE_TYPE = "NullCache"


class ProductionConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


def _select_config():
    env = os.getenv("FLASK_ENV")
    if env == "development":
        return DevelopmentConfig
    if env == "testing":
        return TestingConfig
    secret = os.getenv("SECRET_KEY", "dev")
    if not secret or secret == "dev":
        raise RuntimeError("SECRET_KEY must be set to a non-default value in production.")
    return ProductionConfig


# Choose config
Config = _select_config()
