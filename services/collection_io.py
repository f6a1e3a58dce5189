# services/collection_io.py
"""Collection items: CRUD, CSV/JSON/Moxfield export and CSV import."""
from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func

from extensions import db
from models import Card, CollectionItem
from services import scryfall_client
from services.audit import record_audit_event
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json", "moxfield")

CSV_HEADERS = ["Card Name", "Quantity", "Foil", "Condition", "Set Code", "Price (USD)"]
MOXFIELD_HEADERS = [
    "Count",
    "Tradelist Count",
    "Name",
    "Edition",
    "Condition",
    "Language",
    "Foil",
    "Tags",
    "Last Modified",
    "Collector Number",
    "Alter",
    "Proxy",
    "Purchase Price",
]

# Ordered header variants (first match wins).
EXPECTED = {
    "name": ["card name", "card_name", "name", "card"],
    "qty": ["quantity", "qty", "count", "copies"],
    "set_code": ["set code", "set_code", "set", "edition", "expansion"],
    "condition": ["condition", "cond"],
    "is_foil": ["foil", "printing", "is foil", "is_foil"],
}

_CONDITION_ALIASES = {
    "nm": "near_mint",
    "m": "near_mint",
    "mint": "near_mint",
    "lp": "lightly_played",
    "sp": "lightly_played",
    "mp": "moderately_played",
    "hp": "heavily_played",
    "dmg": "damaged",
    "d": "damaged",
}

_POSITIVE_FOIL_VALUES = {"1", "true", "t", "y", "yes", "foil", "etched", "gilded"}
_NEGATIVE_FOIL_VALUES = {"0", "false", "f", "n", "no", "nonfoil", "normal", "regular", ""}

SKIP_DETAIL_LIMIT = 50


class HeaderValidationError(ValueError):
    """Raised when required headers are missing from the import file."""

    def __init__(self, details: List[str]):
        super().__init__("Missing required column(s): " + "; ".join(details))
        self.details = details


@dataclass
class ImportStats:
    added: int = 0
    updated: int = 0
    skipped: int = 0
    skipped_details: list = field(default_factory=list)

    def skip(self, line: int, reason: str) -> None:
        self.skipped += 1
        if len(self.skipped_details) < SKIP_DETAIL_LIMIT:
            self.skipped_details.append({"line": line, "reason": reason})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------

def normalize_condition(value: Any) -> str:
    """Map a slug, label ("Near Mint") or short code ("LP") onto a condition slug."""
    raw = str(value or "").strip().lower()
    if not raw:
        return "near_mint"
    slug = raw.replace("-", " ").replace(" ", "_")
    if slug in CollectionItem.CONDITIONS:
        return slug
    if raw in _CONDITION_ALIASES:
        return _CONDITION_ALIASES[raw]
    raise ValidationError(f"Unknown condition '{value}'.")


def _to_bool(value: Any) -> bool:
    s = str(value or "").strip().lower().replace(" ", "").replace("-", "")
    if s in _NEGATIVE_FOIL_VALUES:
        return False
    if s in _POSITIVE_FOIL_VALUES:
        return True
    return "foil" in s and "non" not in s


def _to_int(value: Any, default: int = 1) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _to_card_id(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("card_id must be an integer.") from exc


def _to_price(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("purchase_price must be a number.") from exc
    if price < 0:
        raise ValidationError("purchase_price cannot be negative.")
    return price


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def serialize_item(item: CollectionItem) -> Dict[str, Any]:
    card = item.card
    return {
        "id": item.id,
        "card_id": item.card_id,
        "name": card.name if card else None,
        "set_code": card.set_code if card else None,
        "collector_number": card.collector_number if card else None,
        "quantity": item.quantity,
        "foil_quantity": item.foil_quantity,
        "condition": item.condition,
        "purchase_price": item.purchase_price,
        "price_usd": card.price_usd if card else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


def list_items(user_id: int, *, q: str | None = None) -> List[CollectionItem]:
    query = CollectionItem.query.join(Card).filter(CollectionItem.user_id == user_id)
    if q:
        query = query.filter(func.lower(Card.name).contains(q.strip().lower()))
    return query.order_by(func.lower(Card.name), CollectionItem.id).all()


def _merge_item(
    user_id: int,
    card: Card,
    *,
    quantity: int,
    foil_quantity: int,
    condition: str,
    purchase_price: Optional[float] = None,
) -> Tuple[CollectionItem, bool]:
    """Add to the user's (card, condition) row, creating it if needed; returns (item, created)."""
    item = CollectionItem.query.filter_by(user_id=user_id, card_id=card.id, condition=condition).first()
    created = item is None
    if created:
        item = CollectionItem(
            user_id=user_id,
            card_id=card.id,
            card=card,
            quantity=0,
            foil_quantity=0,
            condition=condition,
        )
        db.session.add(item)
    item.quantity = int(item.quantity or 0) + quantity
    item.foil_quantity = int(item.foil_quantity or 0) + foil_quantity
    if purchase_price is not None:
        item.purchase_price = purchase_price
    db.session.flush()
    return item, created


def add_item(user_id: int, payload: Dict[str, Any]) -> CollectionItem:
    card = None
    if payload.get("card_id"):
        card = db.session.get(Card, _to_card_id(payload["card_id"]))
    elif payload.get("name"):
        card = scryfall_client.resolve_card(str(payload["name"]))
    else:
        raise ValidationError("Provide card_id or name.")
    if card is None:
        raise NotFoundError("Card not found.")

    quantity = _to_int(payload.get("quantity"), default=1)
    foil_quantity = _to_int(payload.get("foil_quantity"), default=0)
    if quantity < 0 or foil_quantity < 0 or quantity + foil_quantity < 1:
        raise ValidationError("Add at least one copy.")

    item, _ = _merge_item(
        user_id,
        card,
        quantity=quantity,
        foil_quantity=foil_quantity,
        condition=normalize_condition(payload.get("condition")),
        purchase_price=_to_price(payload.get("purchase_price")),
    )
    return item


def update_item(item: CollectionItem, payload: Dict[str, Any]) -> Optional[CollectionItem]:
    """Patch an item; when both quantities reach zero the row is deleted."""
    if "quantity" in payload:
        qty = _to_int(payload.get("quantity"), default=-1)
        if qty < 0:
            raise ValidationError("quantity must be a non-negative integer.")
        item.quantity = qty
    if "foil_quantity" in payload:
        foil = _to_int(payload.get("foil_quantity"), default=-1)
        if foil < 0:
            raise ValidationError("foil_quantity must be a non-negative integer.")
        item.foil_quantity = foil
    if "condition" in payload:
        condition = normalize_condition(payload.get("condition"))
        if condition != item.condition:
            item = _move_condition(item, condition)
    if "purchase_price" in payload:
        item.purchase_price = _to_price(payload.get("purchase_price"))

    if item.total_quantity == 0:
        delete_item(item)
        return None
    db.session.flush()
    return item


def _move_condition(item: CollectionItem, condition: str) -> CollectionItem:
    """Relabel an item, folding it into the user's existing row for that condition."""
    target = CollectionItem.query.filter_by(
        user_id=item.user_id, card_id=item.card_id, condition=condition
    ).first()
    if target is None:
        item.condition = condition
        return item
    target.quantity = int(target.quantity or 0) + int(item.quantity or 0)
    target.foil_quantity = int(target.foil_quantity or 0) + int(item.foil_quantity or 0)
    if target.purchase_price is None:
        target.purchase_price = item.purchase_price
    db.session.delete(item)
    db.session.flush()
    return target


def delete_item(item: CollectionItem) -> None:
    db.session.delete(item)
    db.session.flush()


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _export_rows(items: Iterable[CollectionItem]) -> Iterable[Tuple[CollectionItem, int, bool]]:
    """Yield (item, count, foil) with non-foil and foil copies as separate rows."""
    for item in items:
        if item.quantity:
            yield item, int(item.quantity), False
        if item.foil_quantity:
            yield item, int(item.foil_quantity), True


def _row_price(card: Card, foil: bool) -> Optional[float]:
    prices = card.prices or {}
    raw = prices.get("usd_foil") if foil else None
    if raw in (None, ""):
        raw = prices.get("usd")
    try:
        return float(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _export_csv(items: List[CollectionItem]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for item, count, foil in _export_rows(items):
        price = _row_price(item.card, foil)
        writer.writerow([
            item.card.name,
            count,
            "Yes" if foil else "No",
            item.condition,
            item.card.set_code or "",
            f"{price:.2f}" if price is not None else "0",
        ])
    return buf.getvalue()


def _export_moxfield(items: List[CollectionItem]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(MOXFIELD_HEADERS)
    for item, count, foil in _export_rows(items):
        card = item.card
        modified = item.updated_at or item.created_at
        writer.writerow([
            count,
            0,
            card.name,
            (card.set_code or "").upper(),
            CollectionItem.CONDITION_LABELS.get(item.condition, "Near Mint"),
            "English",
            "foil" if foil else "",
            "",
            modified.isoformat() if modified else "",
            card.collector_number or "",
            "",
            "",
            "" if item.purchase_price is None else f"{item.purchase_price:.2f}",
        ])
    return buf.getvalue()


def _export_json(items: List[CollectionItem]) -> str:
    data = []
    for item in items:
        card = item.card
        data.append({
            "name": card.name,
            "quantity": item.quantity,
            "foil_quantity": item.foil_quantity,
            "condition": item.condition,
            "set_code": card.set_code,
            "collector_number": card.collector_number,
            "price_usd": card.price_usd,
            "purchase_price": item.purchase_price,
            "card_details": {
                "type_line": card.type_line,
                "mana_cost": card.mana_cost,
                "rarity": card.rarity,
            },
        })
    return json.dumps(data, indent=2)


def export_collection(user_id: int, fmt: str = "csv") -> Tuple[str, str, str]:
    """Return (body, mimetype, filename) for the requested export format."""
    fmt = (fmt or "csv").strip().lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format '{fmt}'.", payload={"formats": list(EXPORT_FORMATS)})
    items = list_items(user_id)
    if fmt == "json":
        return _export_json(items), "application/json", "collection.json"
    if fmt == "moxfield":
        return _export_moxfield(items), "text/csv", "collection-moxfield.csv"
    return _export_csv(items), "text/csv", "collection.csv"


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def _make_reader(text: str) -> csv.DictReader:
    content = (text or "").lstrip("\ufeff")
    try:
        dialect = csv.Sniffer().sniff(content[:4096], delimiters=[",", ";", "\t", "|"])
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ","
    return csv.DictReader(io.StringIO(content), delimiter=delimiter)


def _normalize_headers(headers: Optional[List[str]]) -> Dict[str, str]:
    if not headers:
        raise HeaderValidationError(["No headers found. Include at least a 'Card Name' column."])
    lower_to_original = {h.strip().lower(): h for h in headers if isinstance(h, str)}
    mapping: Dict[str, str] = {}
    for key, variants in EXPECTED.items():
        for variant in variants:
            if variant in lower_to_original:
                mapping[key] = lower_to_original[variant]
                break
    if "name" not in mapping:
        raise HeaderValidationError([f"Card name (accepted: {', '.join(EXPECTED['name'])})"])
    return mapping


def _resolve_import_card(name: str, set_code: str, *, allow_remote: bool) -> Optional[Card]:
    if set_code:
        card = (
            Card.query.filter(func.lower(Card.name) == name.lower(), Card.set_code == set_code)
            .order_by(Card.updated_at.desc())
            .first()
        )
        if card is not None:
            return card
    return scryfall_client.resolve_card(name, allow_remote=allow_remote)


def import_collection_csv(user_id: int, text: str, *, allow_remote: bool = True) -> ImportStats:
    """Merge rows from a CSV export into the user's collection."""
    reader = _make_reader(text)
    mapping = _normalize_headers(reader.fieldnames)
    stats = ImportStats()

    for line, row in enumerate(reader, start=2):
        name = (row.get(mapping["name"]) or "").strip()
        if not name:
            stats.skip(line, "Missing card name")
            continue
        qty = _to_int(row.get(mapping["qty"]), default=1) if "qty" in mapping else 1
        if qty < 1:
            stats.skip(line, f"Invalid quantity for {name}")
            continue
        try:
            condition = normalize_condition(row.get(mapping["condition"]) if "condition" in mapping else None)
        except ValidationError as exc:
            stats.skip(line, exc.detail)
            continue
        foil = _to_bool(row.get(mapping["is_foil"])) if "is_foil" in mapping else False
        set_code = (row.get(mapping["set_code"]) or "").strip().lower() if "set_code" in mapping else ""

        card = _resolve_import_card(name, set_code, allow_remote=allow_remote)
        if card is None:
            stats.skip(line, f"Card not found: {name}")
            continue

        _, created = _merge_item(
            user_id,
            card,
            quantity=0 if foil else qty,
            foil_quantity=qty if foil else 0,
            condition=condition,
        )
        if created:
            stats.added += 1
        else:
            stats.updated += 1

    logger.info(
        "Collection import for user %s: added=%s updated=%s skipped=%s",
        user_id,
        stats.added,
        stats.updated,
        stats.skipped,
    )
    record_audit_event("collection_imported", {"added": stats.added, "updated": stats.updated, "skipped": stats.skipped})
    return stats
