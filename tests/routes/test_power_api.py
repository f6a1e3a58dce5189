import pytest

from services import edh_power_check
from tests.factories import add_deck_card, create_card, create_deck


class _FakeResponse:
    status_code = 200

    def __init__(self, text):
        self.text = text


@pytest.fixture
def scored_deck(auth_headers):
    owner, headers = auth_headers()
    deck = create_deck(owner, is_public=True)
    add_deck_card(deck, create_card(name="Kinnan, Bonder Prodigy", type_line="Legendary Creature"), is_commander=True)
    add_deck_card(deck, create_card(name="Sol Ring", cmc=1, type_line="Artifact"))
    add_deck_card(deck, create_card(name="Demonic Tutor", cmc=2, type_line="Sorcery"))
    add_deck_card(deck, create_card(name="Island", cmc=0, type_line="Basic Land"), quantity=35)
    return deck, headers


def test_score_saved_deck(client, scored_deck):
    deck, headers = scored_deck

    resp = client.post(f"/api/decks/{deck.id}/power", headers=headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["deck_id"] == deck.id
    assert body["power_level"] == int(body["data"]["power"] + 0.5)
    assert body["data"]["diagnostics"]["tutors"]["count_raw"] == 1
    assert set(body["data"]["subscores"]) == {
        "speed", "interaction", "tutors", "resilience", "card_advantage",
        "mana", "consistency", "stax_pressure", "synergy",
    }
    detail = client.get(f"/api/decks/{deck.id}", headers=headers).get_json()["data"]
    assert detail["power_level"] == body["power_level"]
    assert detail["power_scored_at"] is not None


def test_scoring_needs_write_access(client, scored_deck, auth_headers):
    deck, _ = scored_deck
    _, other_headers = auth_headers(email="other@example.com", username="other")
    assert client.post(f"/api/decks/{deck.id}/power", headers=other_headers).status_code == 403


def test_scoring_empty_deck_is_rejected(client, auth_headers):
    owner, headers = auth_headers()
    deck = create_deck(owner)
    resp = client.post(f"/api/decks/{deck.id}/power", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["detail"] == "Deck has no cards to score."


def test_score_ad_hoc_payload(client, auth_headers):
    _, headers = auth_headers()
    payload = {
        "commander": {"name": "Kinnan, Bonder Prodigy", "cmc": 2, "type_line": "Legendary Creature"},
        "cards": [{"name": "Island", "type_line": "Basic Land", "quantity": 40}, "Mana Crypt"],
    }
    resp = client.post("/api/power/score", json=payload, headers=headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["metrics"]["total_cards"] == 42
    assert data["band"] in {"casual", "mid", "high", "cedh"}

    assert client.post("/api/power/score", json={"cards": []}, headers=headers).status_code == 400


def test_edh_check_for_saved_deck(client, scored_deck, monkeypatch):
    deck, headers = scored_deck
    seen = {}

    def _get(url, headers=None, timeout=None):
        seen["url"] = url
        return _FakeResponse("<div>Power Level: 6.5</div>")

    monkeypatch.setattr(edh_power_check.requests, "get", _get)
    resp = client.post("/api/power/edh-check", json={"deck_id": deck.id}, headers=headers)

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["success"] is True
    assert data["power_level"] == 6.5
    assert seen["url"].endswith("?d=1x+Kinnan%2C+Bonder+Prodigy~~1x+Sol+Ring~1x+Demonic+Tutor~35x+Island~Z~")


def test_edh_check_requires_cards(client, auth_headers):
    _, headers = auth_headers()
    assert client.post("/api/power/edh-check", json={}, headers=headers).status_code == 400
    assert client.post("/api/power/edh-check", json={"cards": "Sol Ring"}, headers=headers).status_code == 400


def test_edh_check_rejects_non_numeric_deck_id(client, auth_headers):
    _, headers = auth_headers()
    resp = client.post("/api/power/edh-check", json={"deck_id": "abc"}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"
