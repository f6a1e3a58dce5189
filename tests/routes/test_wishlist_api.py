from datetime import datetime

import pytest

from models import WishlistItem
from tests.factories import create_card, create_wishlist_item


@pytest.fixture
def wisher(auth_headers):
    return auth_headers()


def test_add_by_card_and_by_name(client, wisher):
    _, headers = wisher
    card = create_card(name="Mana Crypt", prices={"usd": "180.00"})

    resp = client.post(
        "/api/wishlist",
        json={"card_id": card.id, "priority": "HIGH", "target_price_usd": "150", "alert_enabled": True},
        headers=headers,
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert (data["name"], data["priority"], data["target_price_usd"]) == ("Mana Crypt", "high", 150.0)
    assert data["alert_enabled"] is True
    assert data["alert_type"] == "below"
    assert data["price_usd"] == 180.0

    resp = client.post("/api/wishlist", json={"name": " Unreleased Card ", "lookup": False}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["card_id"] is None
    assert resp.get_json()["data"]["name"] == "Unreleased Card"

    names = [row["name"] for row in client.get("/api/wishlist", headers=headers).get_json()["data"]]
    assert sorted(names) == ["Mana Crypt", "Unreleased Card"]


@pytest.mark.parametrize(
    "payload",
    [
        {"quantity": 0},
        {"priority": "urgent"},
        {"target_price_usd": "cheap"},
        {"target_price_usd": -5},
        {"alert_type": "sideways"},
        {"alert_enabled": True},
    ],
)
def test_add_validation(client, wisher, payload):
    _, headers = wisher
    card = create_card()
    resp = client.post("/api/wishlist", json={"card_id": card.id, **payload}, headers=headers)
    assert resp.status_code == 400


def test_add_requires_card_reference(client, wisher):
    _, headers = wisher
    assert client.post("/api/wishlist", json={}, headers=headers).status_code == 400
    assert client.post("/api/wishlist", json={"card_id": 9999}, headers=headers).status_code == 404


def test_only_rearming_a_disabled_alert_clears_cooldown(client, wisher, db_session):
    user, headers = wisher
    item = create_wishlist_item(user, create_card(), target_price_usd=5.0, alert_enabled=True)
    item.last_notified_at = datetime(2026, 1, 1)
    db_session.session.commit()

    resp = client.patch(f"/api/wishlist/{item.id}", json={"alert_type": "above"}, headers=headers)
    assert resp.get_json()["data"]["last_notified_at"] == "2026-01-01T00:00:00"

    resp = client.patch(f"/api/wishlist/{item.id}", json={"alert_enabled": True}, headers=headers)
    assert resp.get_json()["data"]["last_notified_at"] == "2026-01-01T00:00:00"

    client.patch(f"/api/wishlist/{item.id}", json={"alert_enabled": False}, headers=headers)
    resp = client.patch(f"/api/wishlist/{item.id}", json={"alert_enabled": True}, headers=headers)
    data = resp.get_json()["data"]
    assert data["alert_type"] == "above"
    assert data["alert_enabled"] is True
    assert data["last_notified_at"] is None


def test_clearing_target_with_alert_on_is_rejected(client, wisher):
    user, headers = wisher
    item = create_wishlist_item(user, create_card(), target_price_usd=5.0, alert_enabled=True)
    resp = client.patch(f"/api/wishlist/{item.id}", json={"target_price_usd": None}, headers=headers)
    assert resp.status_code == 400


def test_delete_and_ownership(client, wisher, auth_headers):
    user, headers = wisher
    _, other_headers = auth_headers(email="other@example.com", username="other")
    item = create_wishlist_item(user, create_card())

    assert client.patch(f"/api/wishlist/{item.id}", json={"note": "mine"}, headers=other_headers).status_code == 404
    assert client.delete(f"/api/wishlist/{item.id}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/wishlist/{item.id}", headers=headers).status_code == 204
    assert WishlistItem.query.count() == 0
