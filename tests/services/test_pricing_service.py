from datetime import date, timedelta

import pytest

from models import CardPriceSnapshot, CollectionValueSnapshot
from services import pricing, scryfall_client
from tests.factories import add_deck_card, create_card, create_collection_item, create_deck
from utils.exceptions import ScryfallError


@pytest.mark.parametrize(
    "raw, expected",
    [("1.50", 1.5), (2, 2.0), ("0", None), ("0.00", None), ("abc", None), (None, None), ("-3", None)],
)
def test_parse_price(raw, expected):
    assert pricing.parse_price(raw) == expected


def test_price_has_value():
    assert pricing.price_has_value({"usd": None, "tix": "0.02"}) is True
    assert pricing.price_has_value({"usd": "0"}) is False
    assert pricing.price_has_value(None) is False


@pytest.mark.parametrize(
    "prices, expected",
    [
        ({"usd": "1.5"}, "Normal $1.50"),
        ({"usd": "1234.5", "usd_foil": "3"}, "Normal $1234.50 / Foil $3.00"),
        ({"usd": "1.5", "usd_foil": "3", "usd_etched": "4"}, "Normal $1.50 / Foil $3.00 (+1 more)"),
        ({"eur": "2", "eur_foil": "5"}, "Normal EUR 2.00 / Foil EUR 5.00"),
        ({"tix": "0.5"}, "MTGO TIX 0.50"),
        ({"usd": None}, None),
        (None, None),
    ],
)
def test_format_price_text(prices, expected):
    assert pricing.format_price_text(prices) == expected


def test_clamp_days():
    assert pricing.clamp_days("abc") == 30
    assert pricing.clamp_days(0) == 1
    assert pricing.clamp_days("7") == 7
    assert pricing.clamp_days(1000) == 365


def test_capture_card_price_upserts_daily_snapshot(db_session, monkeypatch):
    card = create_card(name="Sol Ring", scryfall_id="sol-ring-id")
    responses = iter([{"prices": {"usd": "2.00", "usd_foil": None}}, {"prices": {"usd": "2.50", "eur": "1.9"}}])
    monkeypatch.setattr(scryfall_client, "fetch_card", lambda scryfall_id: next(responses))
    today = date(2026, 3, 1)

    pricing.capture_card_price(card, today=today)
    snapshot = pricing.capture_card_price(card, today=today)

    assert CardPriceSnapshot.query.count() == 1
    assert snapshot.price_usd == 2.5
    assert snapshot.price_eur == 1.9
    assert snapshot.card_name == "Sol Ring"
    assert card.prices == {"usd": "2.50", "eur": "1.9"}


def test_capture_daily_prices_counts_failures(db_session, create_user, monkeypatch):
    user, _ = create_user()
    owned = create_card(name="Sol Ring", scryfall_id="sol-ring-id")
    decked = create_card(name="Arcane Signet")
    create_card(name="Untracked")
    create_collection_item(user, owned)
    add_deck_card(create_deck(user), decked)

    def _fail(name, exact=False):
        raise ScryfallError("Scryfall returned HTTP 503.")

    monkeypatch.setattr(scryfall_client, "fetch_card", lambda scryfall_id: {"prices": {"usd": "1.00"}})
    monkeypatch.setattr(scryfall_client, "fetch_named", _fail)

    assert pricing.tracked_card_ids() == [owned.id, decked.id]
    stats = pricing.capture_daily_prices()

    assert stats == {"processed": 2, "captured": 1, "failed": 1}
    assert [s.card_id for s in CardPriceSnapshot.query.all()] == [owned.id]


def test_collection_value_snapshot(db_session, create_user):
    user, _ = create_user()
    create_user(email="other@example.com", username="other")
    create_collection_item(
        user,
        create_card(prices={"usd": "1.5", "usd_foil": "3"}),
        quantity=2,
        foil_quantity=1,
    )
    create_collection_item(user, create_card(prices={"usd": None}), quantity=1)
    create_collection_item(user, create_card(prices={"usd": "2"}), quantity=0, foil_quantity=2)
    today = date(2026, 3, 1)

    snapshots = pricing.capture_collection_values(today=today)
    pricing.capture_collection_values(user.id, today=today)

    assert len(snapshots) == 1
    snapshot = CollectionValueSnapshot.query.one()
    assert snapshot.user_id == user.id
    assert snapshot.total_value_usd == 10.0
    assert snapshot.card_count == 6
    assert snapshot.unique_card_count == 3


def test_history_series_respect_window(db_session, create_user):
    user, _ = create_user()
    card = create_card(name="Sol Ring")
    today = date.today()
    for offset, usd in ((40, 1.0), (5, 1.5), (0, 2.0)):
        db_session.session.add(
            CardPriceSnapshot(card_id=card.id, card_name=card.name, snapshot_date=today - timedelta(days=offset), price_usd=usd)
        )
        db_session.session.add(
            CollectionValueSnapshot(user_id=user.id, snapshot_date=today - timedelta(days=offset), total_value_usd=usd * 10)
        )
    db_session.session.commit()

    series = pricing.price_history(card.id, 30)
    assert [point["usd"] for point in series] == [1.5, 2.0]
    assert series[-1]["date"] == today.isoformat()

    values = pricing.collection_value_history(user.id, 90)
    assert [point["total_value_usd"] for point in values] == [10.0, 15.0, 20.0]
