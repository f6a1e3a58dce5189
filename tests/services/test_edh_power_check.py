from __future__ import annotations

import pytest
import requests

from services import edh_power_check as epc


class _FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


def test_clean_and_encode_names():
    assert epc.clean_name("Kinnan, Bonder Prodigy (Commander)") == "Kinnan, Bonder Prodigy"
    assert epc.encode_name("Kinnan, Bonder Prodigy") == "Kinnan%2C+Bonder+Prodigy"
    assert epc.encode_name("Thassa's Oracle") == "Thassa's+Oracle"


def test_decklist_param_merges_copies_and_skips_commander():
    param = epc.build_decklist_param(
        {"name": "Kinnan, Bonder Prodigy"},
        [
            {"name": "Sol Ring", "quantity": 1},
            "sol ring",
            {"name": "Kinnan, Bonder Prodigy (commander)"},
            {"name": "Island", "quantity": "many"},
            "",
        ],
    )
    assert param == "1x+Kinnan%2C+Bonder+Prodigy~~2x+Sol+Ring~1x+Island~Z~"


def test_decklist_param_without_commander():
    assert epc.build_decklist_param(None, ["Sol Ring"]) == "1x+Sol+Ring~Z~"


def test_decklist_param_is_capped():
    cards = [
        f"Extremely Verbose Card Name Number {i:03d} With Quite A Lot Of Padding Text Appended To It"
        for i in range(150)
    ]
    param = epc.build_decklist_param("Kinnan, Bonder Prodigy", cards)
    assert len(param) <= epc.MAX_PARAM_LENGTH
    assert param.endswith(epc.SENTINEL)
    assert param.count("x+") <= epc.MAX_ITEMS + 1


@pytest.mark.parametrize(
    "html, expected",
    [
        ("<div>Power Level: 7.5</div>", 7.5),
        ("<span>Power level: 7,5</span>", 7.5),
        ("<span>Rating 8/10</span>", 8.0),
        ('<html><script>window.__STATE__ = {"powerLevel": 6.25}</script></html>', 6.25),
        ("<html><script>var power = 9;</script></html>", 9.0),
        ("<div>Power Level: 42</div>", None),
        ("<p>nothing to see</p>", None),
    ],
)
def test_extract_power_level(html, expected):
    assert epc.extract_power_level(html) == expected


def test_check_power_level_success(monkeypatch):
    seen = {}

    def _get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return _FakeResponse(text="<h2>Power Level: 8.2</h2>")

    monkeypatch.setattr(epc.requests, "get", _get)
    result = epc.check_power_level("Kinnan, Bonder Prodigy", ["Sol Ring"])

    assert result == {
        "success": True,
        "power_level": 8.2,
        "url": "https://edhpowerlevel.com/?d=1x+Kinnan%2C+Bonder+Prodigy~~1x+Sol+Ring~Z~",
        "source": "edhpowerlevel.com",
    }
    assert seen["timeout"] == epc.DEFAULT_TIMEOUT
    assert "Mozilla" in seen["headers"]["User-Agent"]


@pytest.mark.parametrize(
    "behaviour, error",
    [
        (requests.ConnectionError("boom"), "Could not reach edhpowerlevel.com."),
        (_FakeResponse(status_code=503), "edhpowerlevel.com returned HTTP 503."),
        (_FakeResponse(text="<p>loading...</p>"), "No power level found on the page; open the URL to view it."),
    ],
)
def test_check_power_level_failures_do_not_raise(monkeypatch, behaviour, error):
    def _get(url, headers=None, timeout=None):
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour

    monkeypatch.setattr(epc.requests, "get", _get)
    result = epc.check_power_level(None, ["Sol Ring"])

    assert result["success"] is False
    assert result["power_level"] is None
    assert result["error"] == error
