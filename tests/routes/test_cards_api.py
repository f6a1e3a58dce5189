from datetime import date, datetime

from models import Card, CardPriceSnapshot, SyncStatus
from services import scryfall_client
from tests.factories import create_card
from utils.exceptions import NotFoundError

REMOTE_CARD = {
    "id": "f0000000-0000-4000-8000-00000000beef",
    "name": "Rhystic Study",
    "set": "PCY",
    "collector_number": "45",
    "cmc": 3.0,
    "type_line": "Enchantment",
    "oracle_text": "Whenever an opponent casts a spell, you may draw a card unless that player pays {1}.",
    "prices": {"usd": "35.00", "usd_foil": "80.00"},
}


def test_local_search_and_detail(client, auth_headers):
    _, headers = auth_headers()
    sol = create_card(name="Sol Ring", prices={"usd": "1.5", "usd_foil": "4"})
    create_card(name="Arcane Signet")

    body = client.get("/api/cards?q=ring", headers=headers).get_json()
    assert [c["name"] for c in body["data"]] == ["Sol Ring"]
    assert body["pagination"]["total"] == 1

    detail = client.get(f"/api/cards/{sol.id}", headers=headers).get_json()["data"]
    assert detail["price_text"] == "Normal $1.50 / Foil $4.00"

    missing = client.get("/api/cards/9999", headers=headers)
    assert missing.status_code == 404
    assert missing.get_json()["detail"] == "Card not found."


def test_remote_search_caches_results(client, auth_headers, monkeypatch):
    _, headers = auth_headers()
    monkeypatch.setattr(
        scryfall_client, "search_cards", lambda q: {"data": [REMOTE_CARD], "total_cards": 1}
    )

    body = client.get("/api/cards?q=rhystic&remote=1", headers=headers).get_json()

    assert body["total"] == 1
    assert body["data"][0]["set_code"] == "pcy"
    assert Card.query.filter_by(scryfall_id=REMOTE_CARD["id"]).count() == 1
    assert client.get("/api/cards?remote=1", headers=headers).status_code == 400


def test_lookup(client, auth_headers, monkeypatch):
    _, headers = auth_headers()

    def _named(name, exact=False):
        if name == "Rhystic Study":
            return REMOTE_CARD
        raise NotFoundError("Card not found on Scryfall.")

    monkeypatch.setattr(scryfall_client, "fetch_named", _named)

    resp = client.post("/api/cards/lookup", json={"name": "Rhystic Study"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["name"] == "Rhystic Study"

    assert client.post("/api/cards/lookup", json={"name": "Nope"}, headers=headers).status_code == 404
    assert client.post("/api/cards/lookup", json={}, headers=headers).status_code == 400


def test_price_history(client, auth_headers, db_session):
    _, headers = auth_headers()
    card = create_card(name="Sol Ring")
    db_session.session.add(
        CardPriceSnapshot(card_id=card.id, card_name=card.name, snapshot_date=date.today(), price_usd=1.75)
    )
    db_session.session.commit()

    body = client.get(f"/api/cards/{card.id}/price-history?days=0", headers=headers).get_json()
    assert body["days"] == 1
    assert body["data"] == [
        {"date": date.today().isoformat(), "usd": 1.75, "usd_foil": None, "eur": None, "eur_foil": None}
    ]


def test_sync_status_reports_last_run(client, auth_headers, db_session):
    _, headers = auth_headers()
    assert client.get("/api/cards/sync-status", headers=headers).get_json() == {"data": None}

    db_session.session.add(
        SyncStatus(id="scryfall_cards", status="completed", last_sync=datetime(2026, 3, 1), records_processed=10, total_records=10)
    )
    db_session.session.commit()
    data = client.get("/api/cards/sync-status", headers=headers).get_json()["data"]
    assert (data["status"], data["records_processed"]) == ("completed", 10)
