"""Heuristic Commander power level (1-10).

The scorer tallies a handful of deck metrics, turns them into nine 0-100
subscores, combines those with fixed weights and squashes the weighted sum
through a logistic curve onto the 1-10 scale. Decks missing tutors or game
changers for their band are then pulled down before the final band is set.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from services.card_catalogs import (
    ScoringCard,
    detect_game_changers,
    detect_tutors,
    is_card_advantage,
    is_fast_mana,
    is_interaction,
    is_land,
    is_stax_piece,
)

__all__ = [
    "EmptyDeckError",
    "SUBSCORE_WEIGHTS",
    "BANDS",
    "calculate_power_score",
    "power_band",
    "logistic_power",
    "round_half_up",
]


class EmptyDeckError(ValueError):
    """Raised when there is nothing to score."""


# Ordered: drivers/drags are reported in this order.
SUBSCORE_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("speed", 0.20),
    ("interaction", 0.15),
    ("tutors", 0.12),
    ("resilience", 0.12),
    ("card_advantage", 0.10),
    ("mana", 0.12),
    ("consistency", 0.12),
    ("stax_pressure", 0.04),
    ("synergy", 0.03),
)

# Upper bound (inclusive) of each band on the 1-10 scale
BANDS: Tuple[Tuple[float, str], ...] = (
    (3.4, "casual"),
    (6.6, "mid"),
    (8.5, "high"),
    (math.inf, "cedh"),
)

LOGISTIC_MIDPOINT = 55.0
LOGISTIC_SCALE = 12.0

MAX_HIGHLIGHTS = 3


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def power_band(power: float) -> str:
    for upper, band in BANDS:
        if power <= upper:
            return band
    return BANDS[-1][1]


def logistic_power(raw_score: float) -> float:
    """Map a 0-100 weighted score onto 1-10."""
    normalized = (raw_score - LOGISTIC_MIDPOINT) / LOGISTIC_SCALE
    sigmoid = 1.0 / (1.0 + math.exp(-normalized))
    return 1.0 + sigmoid * 9.0


def _deck_metrics(cards: Sequence[ScoringCard]) -> Dict[str, Any]:
    total = len(cards)
    avg_cmc = sum(card.cmc or 0 for card in cards) / total
    return {
        "total_cards": total,
        "avg_cmc": avg_cmc,
        "low_curve_count": sum(1 for c in cards if c.cmc <= 2 and not is_land(c)),
        "fast_mana_count": sum(1 for c in cards if is_fast_mana(c)),
        "interaction_count": sum(1 for c in cards if is_interaction(c)),
        "card_advantage_count": sum(1 for c in cards if is_card_advantage(c)),
        "stax_count": sum(1 for c in cards if is_stax_piece(c)),
    }


def _subscores(metrics: Dict[str, Any], tutor_quality: float, game_changers: int) -> Dict[str, float]:
    fast = metrics["fast_mana_count"]
    low = metrics["low_curve_count"]
    interaction = metrics["interaction_count"]
    return {
        "speed": _clamp(fast * 8 + low * 1.5 + (10 - metrics["avg_cmc"]) * 5),
        "interaction": _clamp(interaction * 4),
        "tutors": _clamp(tutor_quality * 10),
        "resilience": _clamp(interaction * 2 + fast * 3),
        "card_advantage": _clamp(metrics["card_advantage_count"] * 5),
        "mana": _clamp(fast * 6 + low * 0.8),
        "consistency": _clamp(tutor_quality * 8 + low * 1.2),
        "stax_pressure": _clamp(metrics["stax_count"] * 12),
        "synergy": _clamp(game_changers * 8),
    }


def _weighted_score(subscores: Dict[str, float]) -> float:
    return sum(subscores[key] * weight for key, weight in SUBSCORE_WEIGHTS)


def _highlights(subscores: Dict[str, float], power: float) -> Tuple[List[str], List[str]]:
    if power >= 7:
        driver_threshold, drag_threshold = 70, 50
    elif power >= 4:
        driver_threshold, drag_threshold = 60, 40
    else:
        driver_threshold, drag_threshold = 50, 30

    drivers: List[str] = []
    drags: List[str] = []
    for key, _weight in SUBSCORE_WEIGHTS:
        score = subscores[key]
        shown = int(round_half_up(score))
        if score >= driver_threshold and len(drivers) < MAX_HIGHLIGHTS:
            drivers.append(f"Strong {key} ({shown}/100)")
        elif score <= drag_threshold and len(drags) < MAX_HIGHLIGHTS:
            drags.append(f"Weak {key} ({shown}/100)")
    return drivers, drags


def calculate_power_score(
    cards: Iterable[ScoringCard],
    commander: Optional[ScoringCard] = None,
) -> Dict[str, Any]:
    """Score a deck given one entry per card copy (commander excluded)."""
    all_cards: List[ScoringCard] = ([commander] if commander else []) + list(cards)
    if not all_cards:
        raise EmptyDeckError("Cannot score a deck with no cards.")

    tutors = detect_tutors(all_cards)
    game_changers = detect_game_changers(all_cards)
    metrics = _deck_metrics(all_cards)

    subscores = _subscores(metrics, tutors.quality, game_changers.count)
    raw_score = _weighted_score(subscores)
    power = logistic_power(raw_score)
    band = power_band(power)

    # Flag thresholds depend on the band before any adjustment
    tutor_threshold = 6.0 if band == "cedh" else 3.0 if band == "high" else 1.5
    gc_threshold = 2 if band in ("cedh", "high") else 1
    no_tutors = tutors.quality < tutor_threshold
    no_game_changers = game_changers.count < gc_threshold

    adjustment = 0.0
    if no_tutors:
        subscores["tutors"] = min(subscores["tutors"], 35.0)
        adjustment -= 1.0 if band == "cedh" else 0.6
    if no_game_changers:
        subscores["speed"] = max(0.0, subscores["speed"] - 8)
        subscores["resilience"] = max(0.0, subscores["resilience"] - 6)
        adjustment -= 1.4 if band == "cedh" else 0.8

    power = _clamp(power + adjustment, 1.0, 10.0)
    band = power_band(power)
    drivers, drags = _highlights(subscores, power)

    return {
        "power": round_half_up(power, 1),
        "band": band,
        "raw_score": round_half_up(raw_score, 2),
        "subscores": subscores,
        "flags": {
            "no_tutors": no_tutors,
            "no_game_changers": no_game_changers,
        },
        "diagnostics": {
            "tutors": {
                "count_raw": tutors.count,
                "count_quality": tutors.quality,
                "list": tutors.entries,
            },
            "game_changers": {
                "count": game_changers.count,
                "classes": game_changers.classes(),
                "list": game_changers.entries,
            },
        },
        "drivers": drivers,
        "drags": drags,
        "metrics": metrics,
    }
