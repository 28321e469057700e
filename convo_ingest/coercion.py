"""
Cell-level coercion: dates, numbers, phones and status strings.

Every helper accepts whatever the decoder produced (str, int, float,
datetime, pandas scalars, None) and never mutates its input.
"""

from __future__ import annotations

import math
import random
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

import pandas as pd

from convo_ingest.config import DEFAULT_SETTINGS, IngestSettings
from convo_ingest.errors import DateParseError
from convo_ingest.lexicon import MONTH_NAMES, STATUS_MAP
from convo_ingest.models import ConversationStatus
from convo_ingest.text import strip_accents

EXCEL_EPOCH = datetime(1899, 12, 30)
# Serial day counts accepted when scanning a row for something date-like.
SERIAL_SCAN_RANGE = (40_000, 60_000)
# Numeric strings in this range are read as serials by parse_date.
SERIAL_TEXT_RANGE = (25_000, 60_000)

_TIME_SUFFIX = r"(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?"
_MONTH_ALT = "|".join(sorted(MONTH_NAMES, key=len, reverse=True))

# Ordered; first success wins. Groups are (day, month, year) after reordering.
DATE_PATTERNS = [
    ("DD/MM/YYYY", re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})" + _TIME_SUFFIX), (0, 1, 2)),
    ("YYYY-MM-DD", re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})" + _TIME_SUFFIX), (2, 1, 0)),
    ("DD-MM-YYYY", re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})" + _TIME_SUFFIX), (0, 1, 2)),
]
MONTH_NAME_PATTERNS = [
    re.compile(rf"^(\d{{1,2}})(?:\s+de)?[\s-]+({_MONTH_ALT})\.?(?:\s+de)?[\s,-]+(\d{{4}})\b"),
    re.compile(rf"^({_MONTH_ALT})\.?\s+(\d{{1,2}}),?\s+(\d{{4}})\b"),
]

LOOKS_LIKE_DATE_RE = [
    re.compile(r"^\d{1,2}[-/]\d{1,2}[-/]\d{2,4}(?:[ T]\d{1,2}:\d{2}(?::\d{2})?)?$"),
    re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}(?:[ T]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"),
    re.compile(rf"^\d{{1,2}}(?:\s+de)?[\s-]+({_MONTH_ALT})\b"),
    re.compile(rf"^({_MONTH_ALT})\.?\s+\d{{1,2}}\b"),
]

PHONE_RE = re.compile(r"^\+?[\d\s().-]{8,}$")
MIN_PHONE_DIGITS = 8
PURE_DIGITS_RE = re.compile(r"^\d+$")
SENTINEL_NULLS = {"", "na", "n/a", "none", "null", "nil", "nan", "-"}


def normalize_scalar(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        if value.tzinfo is not None:
            value = value.tz_convert(None)
        return value.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if hasattr(value, "item"):
        # numpy scalar
        return normalize_scalar(value.item())
    return str(value).replace("\x00", "")


def is_empty(value: Any) -> bool:
    normalized = normalize_scalar(value)
    if normalized is None:
        return True
    if isinstance(normalized, str):
        return not normalized.strip()
    return False


def is_number(value: Any) -> bool:
    """True for numeric cells and for text that parses as one ("150.50", "-4.5", "$1,200")."""
    return parse_number(value) is not None


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; integral floats lose their '.0'."""
    normalized = normalize_scalar(value)
    if normalized is None:
        return ""
    if isinstance(normalized, datetime):
        return normalized.isoformat(sep=" ")
    if isinstance(normalized, bool):
        return str(normalized)
    if isinstance(normalized, float) and normalized.is_integer():
        return str(int(normalized))
    return str(normalized).strip()


def parse_number(value: Any) -> float | None:
    normalized = normalize_scalar(value)
    if normalized is None or isinstance(normalized, (bool, datetime)):
        return None
    if isinstance(normalized, (int, float)):
        return float(normalized)

    text = normalized.strip()
    if text.lower() in SENTINEL_NULLS:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()

    text = text.replace(" ", "")
    text = re.sub(r"^(MXN|USD|EUR|BRL|ARS|COP|CLP|PEN)", "", text, flags=re.I)
    text = re.sub(r"(MXN|USD|EUR|BRL|ARS|COP|CLP|PEN)$", "", text, flags=re.I)
    text = re.sub(r"^R?\$|[€£]", "", text)

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") == 1:
        left, right = text.split(",", 1)
        text = f"{left}.{right}" if len(right) != 3 else left + right
    else:
        text = text.replace(",", "")

    if not re.fullmatch(r"[+-]?\d+(?:\.\d+)?", text):
        return None

    number = float(text)
    return -number if negative else number


# ── Dates ────────────────────────────────────────────────────────────────────


def from_excel_serial(serial: float) -> datetime:
    try:
        return EXCEL_EPOCH + timedelta(days=float(serial))
    except (OverflowError, ValueError) as exc:
        raise DateParseError(serial) from exc


def looks_like_date(value: Any) -> bool:
    normalized = normalize_scalar(value)
    if normalized is None:
        return False
    if isinstance(normalized, datetime):
        return True
    if isinstance(normalized, bool):
        return False
    if isinstance(normalized, (int, float)):
        low, high = SERIAL_SCAN_RANGE
        return low < normalized < high
    text = strip_accents(normalized.strip().lower())
    return any(pattern.search(text) for pattern in LOOKS_LIKE_DATE_RE)


def _build_datetime(day: int, month: int, year: int, time_groups: tuple) -> datetime:
    hour, minute, second = (int(part) if part else 0 for part in time_groups)
    return datetime(year, month, day, hour, minute, second)


def parse_date(value: Any) -> datetime:
    """
    Coerce a cell to a naive datetime.

    datetimes pass through, numbers are spreadsheet serials (days since
    1899-12-30), strings try ISO 8601 first and then DD/MM/YYYY,
    YYYY-MM-DD, DD-MM-YYYY and written-out month names, in that order.
    Raises DateParseError when nothing fits.
    """
    normalized = normalize_scalar(value)
    if normalized is None:
        raise DateParseError(value)
    if isinstance(normalized, datetime):
        return normalized
    if isinstance(normalized, bool):
        raise DateParseError(value)
    if isinstance(normalized, (int, float)):
        return from_excel_serial(normalized)

    text = normalized.strip()
    if not text:
        raise DateParseError(value)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    else:
        return normalize_scalar(parsed)

    for _label, pattern, order in DATE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        parts = [int(group) for group in match.groups()[:3]]
        day, month, year = (parts[i] for i in order)
        try:
            return _build_datetime(day, month, year, match.groups()[3:])
        except ValueError:
            continue

    lowered = strip_accents(text.lower())
    for pattern in MONTH_NAME_PATTERNS:
        match = pattern.match(lowered)
        if not match:
            continue
        first, second, year = match.groups()
        if first.isdigit():
            day, month_name = int(first), second
        else:
            day, month_name = int(second), first
        try:
            return datetime(int(year), MONTH_NAMES[month_name], day)
        except ValueError:
            continue

    if re.fullmatch(r"\d{5}(?:\.\d+)?", text):
        serial = float(text)
        low, high = SERIAL_TEXT_RANGE
        if low <= serial <= high:
            return from_excel_serial(serial)

    raise DateParseError(value)


# ── Status ───────────────────────────────────────────────────────────────────


def parse_status(value: Any) -> ConversationStatus:
    """Map a status cell in any supported language; unknown text is PENDING."""
    if isinstance(value, ConversationStatus):
        return value
    text = cell_text(value)
    if not text:
        return ConversationStatus.PENDING
    key = " ".join(strip_accents(text.lower()).replace("_", " ").replace("-", " ").split())
    if key in STATUS_MAP:
        return STATUS_MAP[key]
    for status in ConversationStatus:
        if key == status.value:
            return status
    return ConversationStatus.PENDING


# ── Phones ───────────────────────────────────────────────────────────────────


def looks_like_phone(value: Any) -> bool:
    normalized = normalize_scalar(value)
    if normalized is None or isinstance(normalized, (bool, datetime)):
        return False
    text = cell_text(normalized)
    if isinstance(normalized, (int, float)):
        return bool(PURE_DIGITS_RE.match(text)) and len(text) >= MIN_PHONE_DIGITS
    if not PHONE_RE.match(text):
        return False
    if sum(ch.isdigit() for ch in text) < MIN_PHONE_DIGITS:
        return False
    return not looks_like_date(text)


def format_phone_number(value: Any, settings: IngestSettings = DEFAULT_SETTINGS) -> str:
    """
    Normalise to '+<digits>'.

    Everything but digits and '+' is dropped; a number without '+' and
    without a recognised country-code prefix gets the default code.
    """
    cleaned = re.sub(r"[^0-9+]", "", cell_text(value))
    digits = cleaned.replace("+", "")
    if not digits:
        return settings.fallback_phone

    if not cleaned.startswith("+") and not digits.startswith(settings.recognized_country_codes):
        return f"+{settings.default_country_code}{digits}"
    return f"+{digits}"


def synthesize_phone(rng: random.Random, settings: IngestSettings = DEFAULT_SETTINGS) -> str:
    # No duplicate detection: two rows may draw the same placeholder.
    return f"+{settings.default_country_code}{rng.randint(1_000_000_000, 9_999_999_999)}"
