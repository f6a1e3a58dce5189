"""Static card catalogs and the matchers the power scorer runs over a deck.

Catalog membership is case-insensitive and checked against the full card
name as well as each face of split / double-faced names ("Bust // Boom").
Cards without a catalog hit fall back to oracle-text heuristics.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

__all__ = [
    "ScoringCard",
    "TUTOR_CATALOG",
    "GAME_CHANGER_CATALOG",
    "GAME_CHANGER_CLASSES",
    "FAST_MANA",
    "STAX_PIECES",
    "TutorAnalysis",
    "GameChangerAnalysis",
    "detect_tutors",
    "detect_game_changers",
    "is_fast_mana",
    "is_interaction",
    "is_card_advantage",
    "is_stax_piece",
    "is_land",
    "face_names",
]


@dataclass
class ScoringCard:
    """Minimal rules view of one card copy as seen by the scorer."""

    name: str
    cmc: float = 0.0
    type_line: str = ""
    oracle_text: str = ""
    mana_cost: str = ""
    colors: Sequence[str] = ()
    color_identity: Sequence[str] = ()
    keywords: Sequence[str] = ()

    @property
    def text(self) -> str:
        return (self.oracle_text or "").lower()

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "ScoringCard":
        """Build from a Scryfall-shaped dict; tolerates missing fields and ``mana_value``."""
        cmc = data.get("cmc")
        if cmc is None:
            cmc = data.get("mana_value")
        try:
            cmc_value = float(cmc or 0)
        except (TypeError, ValueError):
            cmc_value = 0.0
        return cls(
            name=str(data.get("name") or "").strip(),
            cmc=cmc_value,
            type_line=data.get("type_line") or "",
            oracle_text=data.get("oracle_text") or "",
            mana_cost=data.get("mana_cost") or "",
            colors=tuple(data.get("colors") or ()),
            color_identity=tuple(data.get("color_identity") or ()),
            keywords=tuple(data.get("keywords") or ()),
        )


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

TUTOR_CATALOG: Dict[str, Dict[str, Any]] = {
    "broad": {
        "weight": 1.0,
        "cards": (
            "Demonic Tutor", "Vampiric Tutor", "Imperial Seal", "Diabolic Intent",
            "Grim Tutor", "Cruel Tutor", "Profane Tutor",
        ),
    },
    "category_high": {
        "weight": 0.85,
        "cards": (
            "Enlightened Tutor", "Mystical Tutor", "Worldly Tutor", "Gamble",
            "Burning Wish", "Living Wish",
        ),
    },
    "category_mid": {
        "weight": 0.7,
        "cards": (
            "Idyllic Tutor", "Fabricate", "Steelshaper's Gift", "Chord of Calling",
            "Green Sun's Zenith", "Finale of Devastation", "Eladamri's Call",
            "Congregation at Dawn",
        ),
    },
    "narrow": {
        "weight": 0.5,
        "cards": (
            "Expedition Map", "Muddle the Mixture", "Dimir Infiltrator", "Drift of Phantasms",
            "Perplex", "Dizzy Spell", "Merchant Scroll", "Mystical Teachings", "Shred Memory",
        ),
    },
    "pseudo": {
        "weight": 0.35,
        "cards": (
            "Dig Through Time", "Treasure Cruise", "Intuition", "Impulse",
            "Fact or Fiction", "Brainstorm",
        ),
    },
}

# (combo piece, partners that complete it); an empty partner tuple means the card wins alone
COMPACT_COMBOS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Thassa's Oracle", ("Demonic Consultation", "Tainted Pact")),
    ("Isochron Scepter", ("Dramatic Reversal",)),
    ("Dockside Extortionist", ("Temur Sabertooth", "Cloudstone Curio", "Deadeye Navigator")),
    ("Kiki-Jiki, Mirror Breaker", ("Deceiver Exarch", "Pestermite", "Felidar Guardian", "Zealous Conscripts")),
    ("Splinter Twin", ("Deceiver Exarch", "Pestermite")),
    ("Underworld Breach", ("Brain Freeze", "Lion's Eye Diamond")),
    ("Food Chain", ("Eternal Scourge", "Misthollow Griffin", "Squee, the Immortal")),
    ("Protean Hulk", ()),
)

GAME_CHANGER_CATALOG: Dict[str, Any] = {
    "compact_combo": COMPACT_COMBOS,
    "finisher_bomb": (
        "Craterhoof Behemoth", "Torment of Hailfire", "Exsanguinate", "Aetherflux Reservoir",
        "Approach of the Second Sun", "Finale of Devastation", "Crackle with Power", "Expropriate",
        "Insurrection", "Triumph of the Hordes",
    ),
    "inevitability_engine": (
        "Rhystic Study", "Mystic Remora", "Bolas's Citadel", "The Gitrog Monster",
        "Dark Confidant", "Necropotence", "Phyrexian Arena", "Ad Nauseam",
        "Thrasios, Triton Hero", "Kinnan, Bonder Prodigy",
    ),
    "massive_swing": (
        "Cyclonic Rift", "Time Warp", "Nexus of Fate", "Temporal Manipulation",
        "Capture of Jingzhou", "Time Stretch", "Aggravated Assault", "Savage Beating",
        "Waves of Aggression", "Insurrection", "Expropriate",
    ),
}

# catalog class -> (result counter key, reason text)
GAME_CHANGER_CLASSES: Tuple[Tuple[str, str, str], ...] = (
    ("finisher_bomb", "finisher_bombs", "game-ending threat"),
    ("inevitability_engine", "inevitability_engines", "card advantage engine"),
    ("massive_swing", "massive_swing", "tempo swing"),
)

FAST_MANA: Tuple[str, ...] = (
    "Mana Crypt", "Sol Ring", "Mana Vault", "Chrome Mox", "Mox Diamond", "Mox Opal",
    "Jeweled Lotus", "Lotus Petal", "Lion's Eye Diamond", "Grim Monolith",
)

# Resource denial and lock pieces that rarely match the text patterns below
STAX_PIECES: Tuple[str, ...] = (
    "Winter Orb", "Static Orb", "Armageddon", "Ravages of War", "Sunder", "Rule of Law",
    "Deafening Silence", "Drannith Magistrate", "Opposition Agent", "Cursed Totem",
    "Null Rod", "Collector Ouphe", "Stony Silence", "Blood Moon", "Back to Basics",
    "Trinisphere", "Sphere of Resistance", "Thalia, Guardian of Thraben", "Grand Abolisher",
    "Aven Mindcensor", "Hokori, Dust Drinker", "Rising Waters", "Tangle Wire", "Smokestack",
)

STAX_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"destroy all lands", re.IGNORECASE),
    re.compile(r"each player sacrifices [^.!?]*land", re.IGNORECASE),
    re.compile(r"(?:lands?|permanents?|artifacts?|creatures?) [^.!?]*(?:don'?t|doesn'?t) untap", re.IGNORECASE),
    re.compile(r"players? can'?t play lands", re.IGNORECASE),
    re.compile(r"can'?t cast more than one spell", re.IGNORECASE),
    re.compile(r"spells? [^.!?]*cost \{\d\} more", re.IGNORECASE),
    re.compile(r"activated abilities of [^.!?]*can'?t be activated", re.IGNORECASE),
)

_TUTOR_WEIGHTS: Dict[str, Tuple[str, float]] = {}
for _tier, _data in TUTOR_CATALOG.items():
    for _name in _data["cards"]:
        _TUTOR_WEIGHTS.setdefault(_name.lower(), (_tier, float(_data["weight"])))

_FAST_MANA_KEYS: Set[str] = {name.lower() for name in FAST_MANA}
_STAX_KEYS: Set[str] = {name.lower() for name in STAX_PIECES}


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------

def face_names(name: str) -> Set[str]:
    """Lowercased full name plus each face of a split/adventure/DFC name."""
    lowered = (name or "").strip().lower()
    out: Set[str] = {lowered} if lowered else set()
    for part in re.split(r"\s+//\s+", lowered):
        clean = part.strip()
        if clean:
            out.add(clean)
    return out


def _matches_any(card: ScoringCard, keys: Set[str]) -> bool:
    return any(face in keys for face in face_names(card.name))


def is_land(card: ScoringCard) -> bool:
    return "land" in (card.type_line or "").lower()


# ---------------------------------------------------------------------------
# Tutors
# ---------------------------------------------------------------------------

@dataclass
class TutorAnalysis:
    quality: float = 0.0
    entries: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entries)


def _catalog_tutor(card: ScoringCard) -> Optional[Tuple[str, float]]:
    for face in face_names(card.name):
        hit = _TUTOR_WEIGHTS.get(face)
        if hit:
            return hit
    return None


def _heuristic_tutor_weight(card: ScoringCard) -> float:
    text = card.text
    if "search" not in text or "library" not in text or "basic land" in text:
        return 0.0
    if "any card" in text:
        return 1.0
    if "creature" in text or "artifact" in text or "enchantment" in text:
        return 0.7
    return 0.5


def detect_tutors(cards: Iterable[ScoringCard]) -> TutorAnalysis:
    """Sum tutor quality over every card copy, catalog first, oracle text second."""
    analysis = TutorAnalysis()
    for card in cards:
        hit = _catalog_tutor(card)
        if hit:
            tier, weight = hit
            analysis.quality += weight
            analysis.entries.append({"name": card.name, "quality": tier, "mv": card.cmc})
            continue
        weight = _heuristic_tutor_weight(card)
        if weight > 0:
            analysis.quality += weight
            analysis.entries.append({"name": card.name, "quality": "detected", "mv": card.cmc})
    return analysis


# ---------------------------------------------------------------------------
# Game changers
# ---------------------------------------------------------------------------

@dataclass
class GameChangerAnalysis:
    count: int = 0
    compact_combo: int = 0
    finisher_bombs: int = 0
    inevitability_engines: int = 0
    massive_swing: int = 0
    entries: List[Dict[str, str]] = field(default_factory=list)

    def classes(self) -> Dict[str, int]:
        return {
            "compact_combo": self.compact_combo,
            "finisher_bombs": self.finisher_bombs,
            "inevitability_engines": self.inevitability_engines,
            "massive_swing": self.massive_swing,
        }


def detect_game_changers(cards: Iterable[ScoringCard]) -> GameChangerAnalysis:
    """Count catalog entries present in the deck.

    Each catalog entry counts at most once no matter how many copies are in
    the deck, but a card listed under two classes counts in both.
    """
    names: Set[str] = set()
    for card in cards:
        names.update(face_names(card.name))

    result = GameChangerAnalysis()

    for combo_name, partners in COMPACT_COMBOS:
        if combo_name.lower() not in names:
            continue
        if partners and not any(partner.lower() in names for partner in partners):
            continue
        result.compact_combo += 1
        result.count += 1
        reason = f"with {' or '.join(partners)}" if partners else "standalone"
        result.entries.append({"name": combo_name, "class": "compact_combo", "reason": reason})

    for catalog_key, counter, reason in GAME_CHANGER_CLASSES:
        for entry in GAME_CHANGER_CATALOG[catalog_key]:
            if entry.lower() not in names:
                continue
            setattr(result, counter, getattr(result, counter) + 1)
            result.count += 1
            result.entries.append({"name": entry, "class": catalog_key, "reason": reason})

    return result


# ---------------------------------------------------------------------------
# Per-card classifiers
# ---------------------------------------------------------------------------

def is_fast_mana(card: ScoringCard) -> bool:
    if _matches_any(card, _FAST_MANA_KEYS):
        return True
    text = card.text
    return card.cmc <= 2 and "add" in text and "mana" in text and not is_land(card)


def is_interaction(card: ScoringCard) -> bool:
    text = card.text
    return (
        "counter target" in text
        or "destroy" in text
        or "exile" in text
        or "remove" in text
        or ("return" in text and "hand" in text)
    )


def is_card_advantage(card: ScoringCard) -> bool:
    text = card.text
    return ("draw" in text and "card" in text) or ("whenever" in text and "draw" in text)


def is_stax_piece(card: ScoringCard) -> bool:
    if _matches_any(card, _STAX_KEYS):
        return True
    text = card.oracle_text or ""
    return any(pattern.search(text) for pattern in STAX_PATTERNS)
