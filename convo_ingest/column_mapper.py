"""
Header row -> ColumnMapping.

Five passes run in a fixed order, each only touching fields that are still
unmapped and columns that are still unassigned:

  1. lexicon     best alias similarity >= threshold, fields in priority order
  2. pattern     header keywords for name / phone / start date
  3. positional  first text-like / digit-heavy / date-ish header
  4. sweep       status / message / agent keywords over the leftovers
  5. emergency   name and phone take the next free column, whatever it is

A column index is claimed at most once.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Sequence

from convo_ingest.coercion import cell_text, looks_like_date
from convo_ingest.config import DEFAULT_SETTINGS, IngestSettings
from convo_ingest.lexicon import (
    COLUMN_ALIASES,
    CUSTOMER_NAME,
    CUSTOMER_PHONE,
    DATE_HEADER_TOKENS,
    FIELD_PRIORITY,
    HEADER_PATTERNS,
    START_DATE,
    SUPPLEMENTARY_FIELDS,
    SWEEP_KEYWORDS,
)
from convo_ingest.models import ColumnMapping
from convo_ingest.text import best_alias_score, normalize_text

logger = logging.getLogger(__name__)

TEXT_LIKE_MAX_LENGTH = 15
REQUIRED_FIELDS = (CUSTOMER_NAME, CUSTOMER_PHONE)


class _MappingState:
    """Per-call scratch state; never shared between files."""

    def __init__(self, labels: list[str]) -> None:
        self.labels = labels
        self.normalized = [normalize_text(label) for label in labels]
        self.mapping: dict[str, int] = {}
        self.assigned: set[int] = set()

    def free_indices(self) -> list[int]:
        return [idx for idx in range(len(self.labels)) if idx not in self.assigned]

    def assign(self, field_name: str, idx: int, reason: str) -> None:
        if idx in self.assigned:
            raise ValueError(f"Column {idx} is already assigned")
        self.mapping[field_name] = idx
        self.assigned.add(idx)
        logger.debug("Mapped %s -> column %d (%r) via %s", field_name, idx, self.labels[idx], reason)

    def first_free(self, predicate: Callable[[int], bool]) -> int | None:
        return next((idx for idx in self.free_indices() if predicate(idx)), None)


def is_text_like(label: str) -> bool:
    text = label.strip()
    return (
        bool(text)
        and len(text) <= TEXT_LIKE_MAX_LENGTH
        and re.search(r"[^\W\d_]", text) is not None
        and re.search(r"\d", text) is None
        and not looks_like_date(text)
    )


def is_digit_heavy(label: str) -> bool:
    compact = "".join(label.split())
    if not compact or looks_like_date(compact):
        return False
    digits = sum(ch.isdigit() for ch in compact)
    return digits > 0 and digits * 2 >= len(compact)


def has_date_token(label: str) -> bool:
    normalized = normalize_text(label)
    return any(token in normalized for token in DATE_HEADER_TOKENS) or looks_like_date(label)


def _lexicon_pass(state: _MappingState, threshold: float) -> None:
    for field_name in FIELD_PRIORITY + SUPPLEMENTARY_FIELDS:
        aliases = COLUMN_ALIASES[field_name]
        best_idx: int | None = None
        best_score = 0.0
        for idx in state.free_indices():
            if not state.normalized[idx]:
                continue
            score = best_alias_score(state.labels[idx], aliases)
            if score > best_score:
                best_idx, best_score = idx, score
        if best_idx is not None and best_score >= threshold:
            state.assign(field_name, best_idx, f"lexicon (score {best_score:.2f})")


def _pattern_pass(state: _MappingState) -> None:
    for field_name in (CUSTOMER_NAME, CUSTOMER_PHONE, START_DATE):
        if field_name in state.mapping:
            continue
        pattern = HEADER_PATTERNS[field_name]
        idx = state.first_free(lambda i: bool(pattern.search(state.normalized[i])))
        if idx is None and field_name == CUSTOMER_NAME:
            other_patterns = (HEADER_PATTERNS[CUSTOMER_PHONE], HEADER_PATTERNS[START_DATE])
            idx = state.first_free(
                lambda i: is_text_like(state.labels[i])
                and not any(p.search(state.normalized[i]) for p in other_patterns)
            )
        if idx is not None:
            state.assign(field_name, idx, "header pattern")


def _positional_pass(state: _MappingState) -> None:
    checks: list[tuple[str, Callable[[str], bool]]] = [
        (CUSTOMER_NAME, is_text_like),
        (CUSTOMER_PHONE, is_digit_heavy),
        (START_DATE, has_date_token),
    ]
    for field_name, predicate in checks:
        if field_name in state.mapping:
            continue
        idx = state.first_free(lambda i: predicate(state.labels[i]))
        if idx is not None:
            state.assign(field_name, idx, "position")


def _keyword_sweep(state: _MappingState) -> None:
    for idx in state.free_indices():
        normalized = state.normalized[idx]
        if not normalized:
            continue
        for field_name, keywords in SWEEP_KEYWORDS.items():
            if field_name in state.mapping:
                continue
            if any(keyword in normalized for keyword in keywords):
                state.assign(field_name, idx, "keyword sweep")
                break


def _emergency_pass(state: _MappingState) -> None:
    for field_name in REQUIRED_FIELDS:
        if field_name in state.mapping:
            continue
        free = state.free_indices()
        if not free:
            logger.debug("No free column left for %s", field_name)
            continue
        state.assign(field_name, free[0], "emergency")


def detect_column_mapping(
    headers: Sequence[Any],
    settings: IngestSettings = DEFAULT_SETTINGS,
) -> ColumnMapping:
    """
    Assign header indices to canonical fields.

    Never raises for an incomplete result; customer_name and customer_phone
    are filled whenever enough columns exist. Identical headers always give
    an identical mapping.
    """
    state = _MappingState([cell_text(header) for header in headers])

    _lexicon_pass(state, settings.match_threshold)
    _pattern_pass(state)
    _positional_pass(state)
    _keyword_sweep(state)
    _emergency_pass(state)

    mapping = ColumnMapping(state.mapping, state.labels)
    logger.debug(
        "Column mapping: %s (%d of %d columns used)",
        mapping.to_dict(), len(mapping), len(state.labels),
    )
    return mapping
