"""Category labels and deterministic chart colours."""

from __future__ import annotations

import hashlib
from typing import Mapping, Sequence

UNKNOWN_CATEGORY = "Unbekannt"

RED = "#FF3B30"
ORANGE = "#FF9500"
YELLOW = "#FFCC00"
GREEN = "#34C759"
MINT = "#00C7BE"
CYAN = "#32ADE6"
BLUE = "#007AFF"
INDIGO = "#5856D6"
PURPLE = "#AF52DE"
PINK = "#FF2D55"
BROWN = "#A2845E"
GRAY = "#8E8E93"

EXPENSE_PALETTE: tuple[str, ...] = (RED, ORANGE, PINK, PURPLE, BLUE, INDIGO, BROWN, GRAY)

INCOME_PALETTE: tuple[str, ...] = (
    BLUE,
    GREEN,
    PURPLE,
    ORANGE,
    PINK,
    YELLOW,
    MINT,
    CYAN,
    INDIGO,
    RED,
    BROWN,
)

# Checked in order; the first fragment found in the lowercased name wins.
INCOME_COLOR_PATTERNS: dict[str, str] = {
    "gehalt": BLUE,
    "honorar": GREEN,
    "provision": PURPLE,
    "zinsen": ORANGE,
    "erstattung": PINK,
    "sonstiges": GRAY,
}


def normalize_category(name: str | None, unknown_label: str = UNKNOWN_CATEGORY) -> str:
    text = str(name).strip() if name is not None else ""
    return text or unknown_label


def stable_hash(name: str) -> int:
    """Process-independent hash; ``hash()`` is salted per interpreter."""
    digest = hashlib.md5(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def category_color(
    name: str,
    palette: Sequence[str] = EXPENSE_PALETTE,
    patterns: Mapping[str, str] | None = None,
) -> str:
    """Pick a display colour for a category name.

    Identical names always get the identical colour. Distinct names may share
    one once there are more categories than palette entries.
    """
    lowered = name.lower()
    for fragment, color in (patterns or {}).items():
        if fragment.lower() in lowered:
            return color
    if not palette:
        return GRAY
    return palette[stable_hash(name) % len(palette)]
