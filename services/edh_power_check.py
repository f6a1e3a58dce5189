"""Second-opinion power level from edhpowerlevel.com.

The site takes the whole decklist in a single ``d=`` query parameter and
renders a rating; we fetch the page and scrape the first plausible 0-10
number out of the markup or its inline scripts.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence
from urllib.parse import quote

import requests
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

SOURCE = "edhpowerlevel.com"
DEFAULT_URL = "https://edhpowerlevel.com/"
DEFAULT_TIMEOUT = 8.0

MAX_ITEMS = 100
MAX_PARAM_LENGTH = 7000
SENTINEL = "~Z~"

_COMMANDER_SUFFIX = re.compile(r"\s*\(commander\)\s*$", re.IGNORECASE)
_SCRIPT_BLOCK = re.compile(r"<script[^>]*>([\s\S]*?)</script>", re.IGNORECASE)
_NUMBER = r"(\d+(?:[.,]\d+)?)"

HTML_PATTERNS: Sequence[Pattern[str]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"power\s*level[^0-9]{0,10}" + _NUMBER,
        r"rating[^0-9]{0,10}" + _NUMBER + r"\s*/\s*10",
        _NUMBER + r"\s*/\s*10\s*\(?\s*power\s*level\s*\)?",
        r'"powerLevel"\s*:\s*(\d+(?:\.\d+)?)',
        r'"rating"\s*:\s*(\d+(?:\.\d+)?)',
        r'"score"\s*:\s*(\d+(?:\.\d+)?)',
    )
)

SCRIPT_PATTERNS: Sequence[Pattern[str]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"powerLevel\s*[=:\s]\s*(\d+(?:\.\d+)?)",
        r"power\s*[=:\s]\s*(\d+(?:\.\d+)?)",
        r'"powerLevel"\s*:\s*(\d+(?:\.\d+)?)',
        r'"power"\s*:\s*(\d+(?:\.\d+)?)',
        r'"rating"\s*:\s*(\d+(?:\.\d+)?)',
        r'"score"\s*:\s*(\d+(?:\.\d+)?)',
        _NUMBER + r"\s*/\s*10",
    )
)

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def _setting(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def clean_name(name: str) -> str:
    return _COMMANDER_SUFFIX.sub("", name or "").strip()


def encode_name(name: str) -> str:
    """Percent-encode like JS ``encodeURIComponent`` with spaces as ``+``."""
    return quote(clean_name(name), safe="!~*'()").replace("%20", "+")


def _entry_name(entry: Any) -> str:
    if isinstance(entry, dict):
        return str(entry.get("name") or "")
    return str(entry or "")


def build_decklist_param(commander: Any, cards: Iterable[Any]) -> str:
    """Build the ``d=`` value: ``1x+Commander~~4x+Card~1x+Other~Z~``."""
    commander_name = clean_name(_entry_name(commander)) if commander else ""
    commander_key = commander_name.lower()

    seen: Dict[str, Dict[str, Any]] = {}
    for entry in cards or []:
        cleaned = clean_name(_entry_name(entry))
        if not cleaned:
            continue
        key = cleaned.lower()
        if commander_key and key == commander_key:
            continue
        qty = 1
        if isinstance(entry, dict):
            try:
                qty = int(entry.get("quantity") or 1)
            except (TypeError, ValueError):
                qty = 1
        if key in seen:
            seen[key]["qty"] += qty
        else:
            seen[key] = {"name": cleaned, "qty": qty}

    prefix = f"1x+{encode_name(commander_name)}~~" if commander_name else ""
    parts: List[str] = [f"{item['qty']}x+{encode_name(item['name'])}" for item in seen.values()][:MAX_ITEMS]

    body = "~".join(parts)
    while len(prefix) + len(body) + len(SENTINEL) > MAX_PARAM_LENGTH and parts:
        parts.pop()
        body = "~".join(parts)
    return prefix + body + SENTINEL


def _first_power(text: str, patterns: Sequence[Pattern[str]]) -> Optional[float]:
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = float(match.group(1).replace(",", "."))
        except ValueError:
            continue
        if 0 <= value <= 10:
            return value
    return None


def extract_power_level(html: str) -> Optional[float]:
    """Scan the page, then each inline script, for a 0-10 rating."""
    value = _first_power(html, HTML_PATTERNS)
    if value is not None:
        return value
    for match in _SCRIPT_BLOCK.finditer(html):
        value = _first_power(match.group(1), SCRIPT_PATTERNS)
        if value is not None:
            return value
    return None


def check_power_level(commander: Any, cards: Iterable[Any]) -> Dict[str, Any]:
    """Fetch the rating page; network problems come back as ``success: False``."""
    base = str(_setting("EDH_POWER_CHECK_URL", DEFAULT_URL))
    url = f"{base}?d={build_decklist_param(commander, cards)}"
    timeout = float(_setting("EDH_POWER_CHECK_TIMEOUT", DEFAULT_TIMEOUT))
    result: Dict[str, Any] = {"success": False, "power_level": None, "url": url, "source": SOURCE}

    try:
        resp = requests.get(url, headers=_BROWSER_HEADERS, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("EDH power check request failed: %s", exc)
        result["error"] = "Could not reach edhpowerlevel.com."
        return result

    if resp.status_code >= 400:
        logger.warning("EDH power check returned HTTP %s", resp.status_code)
        result["error"] = f"edhpowerlevel.com returned HTTP {resp.status_code}."
        return result

    power = extract_power_level(resp.text or "")
    if power is None:
        logger.info("EDH power check: no rating found in %d bytes", len(resp.text or ""))
        result["error"] = "No power level found on the page; open the URL to view it."
        return result

    result.update(success=True, power_level=power)
    return result
