"""Header text canonicalisation and the cheap similarity heuristic used by the column mapper."""

from __future__ import annotations

import re
import unicodedata
from typing import Any

SEPARATOR_RE = re.compile(r"[-_.\s]+")
NON_WORD_RE = re.compile(r"[^a-z0-9]+")

# Below this shorter/longer length ratio two strings never score.
MIN_LENGTH_RATIO = 0.5


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(value: Any) -> str:
    """
    Canonical comparison form of a header or alias.

    "Teléfono_Móvil" -> "telefonomovil", "Nº  Cel." -> "nocel"
    """
    if value is None:
        return ""
    text = strip_accents(str(value).lower())
    text = SEPARATOR_RE.sub("", text)
    return NON_WORD_RE.sub("", text)


def similarity(left: Any, right: Any) -> float:
    """
    Score two raw strings in [0, 1].

    1.0 on an exact normalised match, 0.9 when one contains the other,
    otherwise the share of equal characters at equal positions over the
    longer length. Strings whose lengths differ by more than half score 0.
    """
    a = normalize_text(left)
    b = normalize_text(right)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.9

    shorter, longer = sorted((a, b), key=len)
    if len(shorter) / len(longer) < MIN_LENGTH_RATIO:
        return 0.0

    matches = sum(1 for x, y in zip(shorter, longer) if x == y)
    return matches / len(longer)


def best_alias_score(header: Any, aliases: tuple[str, ...] | list[str]) -> float:
    return max((similarity(header, alias) for alias in aliases), default=0.0)
