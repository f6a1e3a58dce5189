"""Bulk card catalog sync from Scryfall.

Without a query the Scryfall ``oracle_cards`` bulk dataset is downloaded
and every playable card is upserted; with a query the ``/cards/search``
pages for it are walked instead. Progress lives in a ``SyncStatus`` row
that is committed every batch so another process can watch it, and a
second sync is refused while one is running unless the running one has
gone stale.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, Optional

from extensions import db
from models import SyncStatus
from services import scryfall_client
from utils.exceptions import ConflictError, ScryfallError

logger = logging.getLogger(__name__)

__all__ = ["SYNC_KEY", "is_syncable", "get_sync_status", "sync_cards"]

SYNC_KEY = "scryfall_cards"
BULK_KIND = "oracle_cards"
DEFAULT_BATCH_SIZE = 50
STALE_AFTER = timedelta(minutes=30)


def is_syncable(payload: Dict[str, Any]) -> bool:
    """Tokens and objects without a type line or set are not catalog cards."""
    type_line = payload.get("type_line") or ""
    if not type_line or not payload.get("set"):
        return False
    return "token" not in type_line.lower()


def get_sync_status() -> Optional[SyncStatus]:
    return db.session.get(SyncStatus, SYNC_KEY)


def _begin(now: datetime, *, force: bool) -> SyncStatus:
    status = get_sync_status()
    if status is not None and status.status == SyncStatus.STATUS_RUNNING and not force:
        if now - status.last_sync < STALE_AFTER:
            raise ConflictError("Card sync already running.", payload={"status": status.to_dict()})
        logger.warning("Resetting stuck card sync last seen at %s", status.last_sync)
    if status is None:
        status = SyncStatus(id=SYNC_KEY)
        db.session.add(status)
    status.status = SyncStatus.STATUS_RUNNING
    status.last_sync = now
    status.error_message = None
    status.records_processed = 0
    status.total_records = None
    db.session.commit()
    return status


def _search_payloads(query: str, status: SyncStatus, max_pages: Optional[int]) -> Iterator[Dict[str, Any]]:
    page = 1
    while True:
        result = scryfall_client.search_cards(query, page=page)
        if status.total_records is None:
            status.total_records = result.get("total_cards")
        yield from result.get("data") or []
        if not result.get("has_more") or (max_pages and page >= max_pages):
            return
        page += 1


def _bulk_payloads(status: SyncStatus) -> Iterable[Dict[str, Any]]:
    meta = scryfall_client.get_bulk_metadata(BULK_KIND)
    if not meta or not meta.get("download_uri"):
        raise ScryfallError("Oracle cards bulk data not found.")
    logger.info("Downloading %s bulk data (%s bytes)", BULK_KIND, meta.get("size"))
    payloads = scryfall_client.download_bulk(meta["download_uri"])
    status.total_records = len(payloads)
    return payloads


def _checkpoint(status: SyncStatus, processed: int) -> None:
    status.records_processed = processed
    status.last_sync = datetime.utcnow()
    db.session.commit()


def _mark_failed(message: str) -> None:
    db.session.rollback()
    status = get_sync_status()
    if status is None:
        return
    status.status = SyncStatus.STATUS_FAILED
    status.error_message = message
    status.last_sync = datetime.utcnow()
    db.session.commit()


def sync_cards(
    *,
    query: Optional[str] = None,
    max_pages: Optional[int] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    force: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Upsert Scryfall cards into the local catalog and return counters."""
    batch_size = max(1, int(batch_size))
    status = _begin(now or datetime.utcnow(), force=force)
    stats = {"processed": 0, "upserted": 0, "skipped": 0}
    try:
        if query:
            payloads = _search_payloads(query, status, max_pages)
        else:
            payloads = _bulk_payloads(status)
        for payload in payloads:
            stats["processed"] += 1
            if not is_syncable(payload):
                stats["skipped"] += 1
                continue
            scryfall_client.upsert_card_from_payload(payload)
            stats["upserted"] += 1
            if stats["upserted"] % batch_size == 0:
                _checkpoint(status, stats["processed"])
    except Exception as exc:
        logger.exception("Card sync failed after %s records", stats["processed"])
        _mark_failed(getattr(exc, "detail", None) or str(exc))
        raise

    status.status = SyncStatus.STATUS_COMPLETED
    if status.total_records is None:
        status.total_records = stats["processed"]
    _checkpoint(status, stats["processed"])
    logger.info("Card sync finished: %s", stats)
    return {**stats, "status": status.to_dict()}
