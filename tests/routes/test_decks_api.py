import pytest

from models import Deck
from services import scryfall_client
from tests.factories import add_deck_card, create_card, create_deck
from utils.exceptions import NotFoundError


@pytest.fixture
def two_users(auth_headers):
    owner, owner_headers = auth_headers()
    other, other_headers = auth_headers(email="other@example.com", username="other")
    return (owner, owner_headers), (other, other_headers)


def test_create_and_list_decks(client, two_users):
    (_, headers), _ = two_users

    resp = client.post("/api/decks", json={"name": "Kinnan Combo", "is_public": True}, headers=headers)
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["format"] == "commander"
    assert data["cards"] == []

    listing = client.get("/api/decks", headers=headers).get_json()
    assert [d["name"] for d in listing["data"]] == ["Kinnan Combo"]
    assert listing["pagination"] == {"total": 1, "limit": 50, "offset": 0}


def test_create_deck_requires_name(client, two_users):
    (_, headers), _ = two_users
    resp = client.post("/api/decks", json={"name": ""}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_private_decks_are_hidden_from_other_users(client, two_users):
    (owner, _), (_, other_headers) = two_users
    private = create_deck(owner, name="Secret")
    public = create_deck(owner, name="Shared", is_public=True)

    assert client.get(f"/api/decks/{private.id}", headers=other_headers).status_code == 404
    assert client.get(f"/api/decks/{public.id}", headers=other_headers).status_code == 200
    resp = client.patch(f"/api/decks/{public.id}", json={"name": "Mine now"}, headers=other_headers)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "forbidden"

    listing = client.get("/api/decks?public=1", headers=other_headers).get_json()["data"]
    assert [d["name"] for d in listing] == ["Shared"]
    assert client.get("/api/decks", headers=other_headers).get_json()["data"] == []


def test_deck_card_lifecycle(client, two_users):
    (owner, headers), _ = two_users
    deck = create_deck(owner)
    card = create_card(name="Sol Ring", type_line="Artifact")

    resp = client.post(f"/api/decks/{deck.id}/cards", json={"card_id": card.id, "quantity": 2}, headers=headers)
    assert resp.status_code == 201
    row = resp.get_json()["data"]["cards"][0]
    assert (row["quantity"], row["board"]) == (2, "main")

    resp = client.patch(f"/api/decks/{deck.id}/cards/{row['id']}", json={"board": "sideboard"}, headers=headers)
    assert resp.get_json()["data"]["cards"][0]["board"] == "sideboard"
    assert resp.get_json()["data"]["total_cards"] == 0

    resp = client.patch(f"/api/decks/{deck.id}/cards/{row['id']}", json={"quantity": 0}, headers=headers)
    assert resp.get_json()["data"]["cards"] == []

    assert client.delete(f"/api/decks/{deck.id}/cards/{row['id']}", headers=headers).status_code == 404


def test_add_card_with_non_numeric_card_id_is_400(client, two_users):
    (owner, headers), _ = two_users
    deck = create_deck(owner)
    resp = client.post(f"/api/decks/{deck.id}/cards", json={"card_id": "x"}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_add_card_by_unknown_name_is_404(client, two_users, monkeypatch):
    (owner, headers), _ = two_users
    deck = create_deck(owner)

    def _missing(name, exact=False):
        raise NotFoundError("Card not found on Scryfall.")

    monkeypatch.setattr(scryfall_client, "fetch_named", _missing)
    resp = client.post(f"/api/decks/{deck.id}/cards", json={"name": "Not A Card"}, headers=headers)
    assert resp.status_code == 404


def test_import_and_export(client, two_users, monkeypatch):
    (_, headers), _ = two_users
    create_card(name="Kinnan, Bonder Prodigy", type_line="Legendary Creature")
    create_card(name="Sol Ring", type_line="Artifact")

    def _missing(name, exact=False):
        raise NotFoundError("Card not found on Scryfall.")

    monkeypatch.setattr(scryfall_client, "fetch_named", _missing)
    text = "Commander\n1 Kinnan, Bonder Prodigy\n\n1 Sol Ring\n2 Totally Fake Card\n0 Island\n"
    resp = client.post("/api/decks/import", json={"name": "Imported", "text": text}, headers=headers)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["missing"] == ["Totally Fake Card"]
    assert body["errors"] == ['Line 6: Invalid quantity "0"']
    assert body["warnings"] == ["Deck only has 4 cards (minimum 40 recommended)"]
    assert body["data"]["commander"] == "Kinnan, Bonder Prodigy"

    export = client.get(f"/api/decks/{body['data']['id']}/export", headers=headers)
    assert export.mimetype == "text/plain"
    assert "attachment" in export.headers["Content-Disposition"]
    assert export.get_data(as_text=True) == "Commander\n1 Kinnan, Bonder Prodigy\n\n1 Sol Ring\n"


def test_import_requires_text(client, two_users):
    (_, headers), _ = two_users
    assert client.post("/api/decks/import", json={"name": "Empty"}, headers=headers).status_code == 400
    resp = client.post("/api/decks/import", json={"text": "// only comments"}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == []


def test_delete_deck(client, two_users):
    (owner, headers), (_, other_headers) = two_users
    deck = create_deck(owner)
    add_deck_card(deck, create_card())

    assert client.delete(f"/api/decks/{deck.id}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/decks/{deck.id}", headers=headers).status_code == 204
    assert Deck.query.count() == 0
    assert client.get(f"/api/decks/{deck.id}", headers=headers).status_code == 404


def test_decks_require_authentication(client):
    resp = client.get("/api/decks")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "authentication_required"
