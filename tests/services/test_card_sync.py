from datetime import datetime, timedelta

import pytest

from extensions import db
from models import Card, SyncStatus
from services import card_sync, scryfall_client
from utils.exceptions import ConflictError, ScryfallError

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _card(name, **extra):
    payload = {
        "id": f"id-{name.lower().replace(' ', '-')}",
        "name": name,
        "set": "cmm",
        "collector_number": "1",
        "type_line": "Artifact",
        "cmc": 1,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def bulk(monkeypatch):
    calls = {}

    def _install(payloads):
        def _meta(kind):
            calls["kind"] = kind
            return {"type": kind, "download_uri": "https://data.scryfall.io/oracle-cards.json", "size": 1024}

        def _download(uri):
            calls["uri"] = uri
            return payloads

        monkeypatch.setattr(scryfall_client, "get_bulk_metadata", _meta)
        monkeypatch.setattr(scryfall_client, "download_bulk", _download)
        return calls

    return _install


@pytest.mark.parametrize(
    "payload, expected",
    [
        (_card("Sol Ring"), True),
        (_card("Treasure", type_line="Token Artifact - Treasure"), False),
        (_card("Nameless", type_line=""), False),
        (_card("Setless", set=None), False),
    ],
)
def test_is_syncable(payload, expected):
    assert card_sync.is_syncable(payload) is expected


def test_bulk_sync_upserts_cards_and_tracks_progress(db_session, bulk):
    calls = bulk([
        _card("Sol Ring"),
        _card("Treasure", type_line="Token Artifact - Treasure"),
        _card("Arcane Signet"),
        _card("Command Tower", type_line="Land"),
    ])

    result = card_sync.sync_cards(batch_size=2, now=NOW)

    assert calls == {"kind": "oracle_cards", "uri": "https://data.scryfall.io/oracle-cards.json"}
    assert (result["processed"], result["upserted"], result["skipped"]) == (4, 3, 1)
    assert sorted(card.name for card in Card.query.all()) == ["Arcane Signet", "Command Tower", "Sol Ring"]
    status = db.session.get(SyncStatus, card_sync.SYNC_KEY)
    assert status.status == SyncStatus.STATUS_COMPLETED
    assert (status.records_processed, status.total_records) == (4, 4)
    assert result["status"]["status"] == "completed"


def test_resync_refreshes_existing_rows(db_session, bulk):
    bulk([_card("Sol Ring", prices={"usd": "1.00"})])
    card_sync.sync_cards(now=NOW)
    bulk([_card("Sol Ring", prices={"usd": "1.50"})])
    card_sync.sync_cards(now=NOW + timedelta(days=1))

    assert Card.query.count() == 1
    assert Card.query.one().prices == {"usd": "1.50"}


def test_query_sync_walks_search_pages(db_session, monkeypatch):
    pages = {
        1: {"data": [_card("Sol Ring")], "has_more": True, "total_cards": 3},
        2: {"data": [_card("Mana Vault")], "has_more": True, "total_cards": 3},
        3: {"data": [_card("Mana Crypt")], "has_more": False, "total_cards": 3},
    }
    seen = []

    def _search(q, page=1, unique="cards"):
        seen.append((q, page))
        return pages[page]

    monkeypatch.setattr(scryfall_client, "search_cards", _search)

    result = card_sync.sync_cards(query="t:artifact mv<=2", now=NOW)
    assert seen == [("t:artifact mv<=2", 1), ("t:artifact mv<=2", 2), ("t:artifact mv<=2", 3)]
    assert result["upserted"] == 3
    assert result["status"]["total_records"] == 3

    seen.clear()
    limited = card_sync.sync_cards(query="t:artifact mv<=2", max_pages=2, now=NOW + timedelta(hours=1))
    assert [page for _, page in seen] == [1, 2]
    assert limited["processed"] == 2


def test_running_sync_blocks_a_second_one(db_session, bulk):
    bulk([_card("Sol Ring")])
    db.session.add(SyncStatus(id=card_sync.SYNC_KEY, status="running", last_sync=NOW - timedelta(minutes=5)))
    db.session.commit()

    with pytest.raises(ConflictError) as excinfo:
        card_sync.sync_cards(now=NOW)
    assert excinfo.value.payload["status"]["status"] == "running"
    assert Card.query.count() == 0

    assert card_sync.sync_cards(now=NOW, force=True)["upserted"] == 1


def test_stale_running_sync_is_reset(db_session, bulk):
    bulk([_card("Sol Ring")])
    db.session.add(SyncStatus(id=card_sync.SYNC_KEY, status="running", last_sync=NOW - timedelta(minutes=45)))
    db.session.commit()

    assert card_sync.sync_cards(now=NOW)["status"]["status"] == "completed"


def test_failed_sync_records_the_error(db_session, monkeypatch):
    monkeypatch.setattr(scryfall_client, "get_bulk_metadata", lambda kind: None)

    with pytest.raises(ScryfallError):
        card_sync.sync_cards(now=NOW)

    status = card_sync.get_sync_status()
    assert status.status == SyncStatus.STATUS_FAILED
    assert status.error_message == "Oracle cards bulk data not found."
