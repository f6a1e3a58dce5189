"""Read-only Scryfall API client and local card catalog upserts."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from flask import current_app, has_app_context
from requests.adapters import HTTPAdapter
from sqlalchemy import func
from urllib3.util.retry import Retry

from extensions import db
from models import Card
from utils.exceptions import NotFoundError, ScryfallError

logger = logging.getLogger(__name__)

_DEFAULTS = {
    "SCRYFALL_API_BASE": "https://api.scryfall.com",
    "SCRYFALL_UA": "DeckForge/1.0 (+https://deckforge.local)",
    "SCRYFALL_HTTP_TIMEOUT": 15.0,
    "SCRYFALL_RETRY_TOTAL": 3,
    "SCRYFALL_RETRY_BACKOFF": 0.5,
    "SCRYFALL_BULK_TIMEOUT": 600.0,
}
_STATUS_FORCELIST = (429, 500, 502, 503, 504)
_session: Optional[requests.Session] = None

FACE_SEPARATOR = "\n//\n"


def _setting(key: str):
    if has_app_context():
        return current_app.config.get(key, _DEFAULTS[key])
    return _DEFAULTS[key]


def _scryfall_session() -> requests.Session:
    """Return a shared requests Session with UA + retry config."""
    global _session
    if _session is not None:
        return _session

    retries = Retry(
        total=int(_setting("SCRYFALL_RETRY_TOTAL")),
        backoff_factor=float(_setting("SCRYFALL_RETRY_BACKOFF")),
        status_forcelist=_STATUS_FORCELIST,
        allowed_methods=frozenset(["GET", "HEAD", "OPTIONS"]),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    sess = requests.Session()
    sess.mount("https://", adapter)
    sess.mount("http://", adapter)
    sess.headers.update({
        "User-Agent": _setting("SCRYFALL_UA"),
        "Accept": "application/json",
    })
    _session = sess
    return _session


def _get_json(path: str, params: Dict[str, Any] | None = None, *, timeout: float | None = None) -> Any:
    if path.startswith(("http://", "https://")):
        url = path
    else:
        url = f"{str(_setting('SCRYFALL_API_BASE')).rstrip('/')}{path}"
    if timeout is None:
        timeout = float(_setting("SCRYFALL_HTTP_TIMEOUT"))
    try:
        resp = _scryfall_session().get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Scryfall request failed: %s (%s)", url, exc)
        raise ScryfallError("Failed to reach Scryfall.") from exc
    if resp.status_code == 404:
        raise NotFoundError("Card not found on Scryfall.")
    if resp.status_code >= 400:
        logger.warning("Scryfall API error %s for %s", resp.status_code, url)
        raise ScryfallError(f"Scryfall returned HTTP {resp.status_code}.")
    return resp.json()


def fetch_card(scryfall_id: str) -> Dict[str, Any]:
    return _get_json(f"/cards/{scryfall_id}")


def fetch_named(name: str, *, exact: bool = False) -> Dict[str, Any]:
    key = "exact" if exact else "fuzzy"
    return _get_json("/cards/named", {key: name})


def search_cards(q: str, *, page: int = 1, unique: str = "cards") -> Dict[str, Any]:
    try:
        return _get_json("/cards/search", {"q": q, "page": page, "unique": unique, "order": "name"})
    except NotFoundError:
        return {"data": [], "total_cards": 0, "has_more": False}


def fetch_bulk_index() -> List[Dict[str, Any]]:
    """Fetch Scryfall bulk index metadata."""
    return (_get_json("/bulk-data") or {}).get("data", [])


def get_bulk_metadata(kind: str) -> Optional[Dict[str, Any]]:
    """Return the metadata block for a given Scryfall bulk dataset."""
    for item in fetch_bulk_index():
        if item.get("type") == kind:
            return item
    return None


def download_bulk(download_uri: str) -> List[Dict[str, Any]]:
    """Download a bulk dataset (a JSON array of card objects)."""
    payload = _get_json(download_uri, timeout=float(_setting("SCRYFALL_BULK_TIMEOUT")))
    if not isinstance(payload, list):
        raise ScryfallError("Unexpected bulk data payload from Scryfall.")
    return payload


def _face_text(payload: Dict[str, Any], key: str) -> str:
    if payload.get(key):
        return payload[key]
    faces = payload.get("card_faces") or []
    parts = [face.get(key) for face in faces if face.get(key)]
    if key == "mana_cost":
        return " // ".join(parts)
    return FACE_SEPARATOR.join(parts)


def _image_uri(payload: Dict[str, Any]) -> str | None:
    uris = payload.get("image_uris")
    if not uris:
        faces = payload.get("card_faces") or []
        uris = faces[0].get("image_uris") if faces else None
    if not uris:
        return None
    return uris.get("normal") or uris.get("large") or uris.get("small")


def card_fields_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Map a Scryfall card object onto Card column values."""
    return {
        "scryfall_id": payload.get("id"),
        "oracle_id": payload.get("oracle_id"),
        "name": payload.get("name") or "",
        "set_code": (payload.get("set") or "").lower() or None,
        "collector_number": payload.get("collector_number"),
        "rarity": payload.get("rarity"),
        "mana_cost": _face_text(payload, "mana_cost"),
        "cmc": float(payload.get("cmc") or 0),
        "type_line": _face_text(payload, "type_line"),
        "oracle_text": _face_text(payload, "oracle_text"),
        "power": payload.get("power"),
        "toughness": payload.get("toughness"),
        "colors": payload.get("colors") or [],
        "color_identity": payload.get("color_identity") or [],
        "keywords": payload.get("keywords") or [],
        "prices": payload.get("prices") or {},
        "image_uri": _image_uri(payload),
    }


def upsert_card_from_payload(payload: Dict[str, Any]) -> Card:
    """Insert or refresh the local Card row for a Scryfall payload (flushes, no commit)."""
    fields = card_fields_from_payload(payload)
    card = None
    if fields["scryfall_id"]:
        card = Card.query.filter_by(scryfall_id=fields["scryfall_id"]).first()
    if card is None:
        card = Card()
        db.session.add(card)
    for key, value in fields.items():
        setattr(card, key, value)
    db.session.flush()
    return card


def find_local_card(name: str) -> Card | None:
    cleaned = (name or "").strip()
    if not cleaned:
        return None
    return (
        Card.query.filter(func.lower(Card.name) == cleaned.lower())
        .order_by(Card.updated_at.desc())
        .first()
    )


def resolve_card(name: str, *, allow_remote: bool = True) -> Card | None:
    """Find a card by name locally, falling back to a fuzzy Scryfall lookup."""
    card = find_local_card(name)
    if card is not None or not allow_remote:
        return card
    try:
        payload = fetch_named(name)
    except NotFoundError:
        return None
    return upsert_card_from_payload(payload)
