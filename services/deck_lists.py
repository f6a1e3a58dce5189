"""Plain-text deck list parsing and rendering.

Accepted line shapes::

    4 Lightning Bolt
    4x Lightning Bolt
    1 Lightning Bolt (M21) 163
    Lightning Bolt x4
    Lightning Bolt

Lines starting with ``//`` or ``#`` are comments. A bare "Sideboard"
header switches to the sideboard; "Commander" / "Command Zone" headers
switch to the commander section, which ends at the next blank line or a
"Deck" / "Main" header.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

__all__ = ["ParsedLine", "ParseResult", "parse_deck_list", "format_deck_list"]

SECTION_MAIN = "main"
SECTION_SIDEBOARD = "sideboard"
SECTION_COMMANDER = "commander"

_QTY_FIRST = re.compile(r"^(\d+)x?\s+(.+?)(?:\s+\([^)]+\))?(?:\s+\d+)?$", re.IGNORECASE)
_QTY_LAST = re.compile(r"^(.+?)\s+x?(\d+)$", re.IGNORECASE)
_SET_SUFFIX = re.compile(r"\s*\([^)]+\)\s*\d*$")
_HEADER = re.compile(r"^(side\s?board|commanders?|command zone|deck|main(?:\s?(?:deck|board))?)\b[^a-z]*$", re.IGNORECASE)

MIN_RECOMMENDED = 40
MAX_RECOMMENDED = 100


@dataclass
class ParsedLine:
    name: str
    quantity: int
    section: str = SECTION_MAIN


@dataclass
class ParseResult:
    cards: List[ParsedLine] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(line.quantity for line in self.cards)

    def to_dict(self) -> Dict[str, object]:
        return {
            "cards": [{"name": c.name, "quantity": c.quantity, "section": c.section} for c in self.cards],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "total": self.total,
        }


def _section_header(line: str) -> str | None:
    # "Commander's Sphere" is a card, "Commander (1)" and "Sideboard:" are headers
    match = _HEADER.match(line)
    if not match:
        return None
    label = match.group(1).lower()
    if "side" in label:
        return SECTION_SIDEBOARD
    if label.startswith("command"):
        return SECTION_COMMANDER
    return SECTION_MAIN


def _split_line(line: str) -> Tuple[str, str]:
    """Return (quantity text, name) for a card line."""
    match = _QTY_FIRST.match(line)
    if match:
        return match.group(1), match.group(2)
    match = _QTY_LAST.match(line)
    if match:
        return match.group(2), match.group(1)
    return "1", line


def parse_deck_list(text: str) -> ParseResult:
    result = ParseResult()
    section = SECTION_MAIN

    for index, raw in enumerate((text or "").splitlines(), start=1):
        line = raw.strip()
        if not line:
            if section == SECTION_COMMANDER:
                section = SECTION_MAIN
            continue
        if line.startswith("//") or line.startswith("#"):
            continue

        header = _section_header(line)
        if header:
            section = header
            continue

        qty_text, name = _split_line(line)
        try:
            quantity = int(qty_text)
        except ValueError:
            quantity = 0
        if quantity < 1:
            result.errors.append(f'Line {index}: Invalid quantity "{qty_text}"')
            continue

        name = _SET_SUFFIX.sub("", name.strip()).strip()
        if not name:
            result.errors.append(f"Line {index}: Missing card name")
            continue

        result.cards.append(ParsedLine(name=name, quantity=quantity, section=section))

    total = result.total
    if total < MIN_RECOMMENDED:
        result.warnings.append(f"Deck only has {total} cards (minimum {MIN_RECOMMENDED} recommended)")
    if total > MAX_RECOMMENDED:
        result.warnings.append(f"Deck has {total} cards (maximum {MAX_RECOMMENDED} for most formats)")
    return result


def format_deck_list(entries: Iterable[Tuple[str, int, str]]) -> str:
    """Render ``(name, quantity, section)`` tuples as a sectioned text list."""
    grouped: Dict[str, List[Tuple[str, int]]] = {
        SECTION_COMMANDER: [],
        SECTION_MAIN: [],
        SECTION_SIDEBOARD: [],
    }
    for name, quantity, section in entries:
        grouped.setdefault(section, []).append((name, quantity))

    blocks: List[str] = []
    if grouped[SECTION_COMMANDER]:
        blocks.append("Commander\n" + "\n".join(f"{qty} {name}" for name, qty in grouped[SECTION_COMMANDER]))
    if grouped[SECTION_MAIN]:
        main = sorted(grouped[SECTION_MAIN], key=lambda item: item[0].lower())
        blocks.append("\n".join(f"{qty} {name}" for name, qty in main))
    if grouped[SECTION_SIDEBOARD]:
        blocks.append("Sideboard\n" + "\n".join(f"{qty} {name}" for name, qty in grouped[SECTION_SIDEBOARD]))
    return "\n\n".join(blocks) + ("\n" if blocks else "")
