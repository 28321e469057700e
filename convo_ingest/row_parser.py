"""
One spreadsheet row -> one Conversation.

Each field is resolved by an ordered list of strategies (mapped cell, then a
scan of the row for something of the right shape, then a default). The first
strategy that yields a value wins. A row never disappears: if anything in
here raises, the row is rebuilt from placeholders and tagged ERROR_TAG.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterator, Optional, Sequence, Tuple

from convo_ingest.coercion import (
    PURE_DIGITS_RE,
    cell_text,
    format_phone_number,
    is_empty,
    is_number,
    looks_like_date,
    looks_like_phone,
    parse_date,
    parse_number,
    parse_status,
    synthesize_phone,
)
from convo_ingest.config import DEFAULT_SETTINGS, IngestSettings
from convo_ingest.errors import DateParseError
from convo_ingest.lexicon import (
    ASSIGNED_AGENT,
    CUSTOMER_NAME,
    CUSTOMER_PHONE,
    END_DATE,
    LAST_MESSAGE,
    PURCHASE_VALUE,
    RESPONSE_TIME,
    SATISFACTION,
    START_DATE,
    STATUS,
    TOTAL_MESSAGES,
)
from convo_ingest.models import (
    ColumnMapping,
    Conversation,
    ConversationMetadata,
    ConversationStatus,
    DataQuality,
)

logger = logging.getLogger(__name__)

ERROR_TAG = "error_import"
NAME_PLACEHOLDER = "Cliente Sin Nombre #{row}"
NO_MESSAGE_PLACEHOLDER = "Sin conversación iniciada"
RECOVERED_MESSAGE_PLACEHOLDER = "Error al procesar mensaje original"

NAME_SCAN_WIDTH = 4
MIN_NAME_LENGTH = 1
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_COUNT = 1000
MIN_DATE_YEAR = 2000
SATISFACTION_RANGE = (1.0, 5.0)
PURCHASE_VALUE_FLOOR = 100.0

# (value, came_from_file)
Resolved = Tuple[Any, bool]
Strategy = Callable[["RowContext"], Optional[Resolved]]


@dataclass
class RowContext:
    row: Sequence[Any]
    mapping: ColumnMapping
    row_number: int
    settings: IngestSettings
    rng: random.Random

    def mapped(self, field_name: str) -> Any:
        idx = self.mapping.get(field_name)
        if idx is None or idx >= len(self.row):
            return None
        value = self.row[idx]
        return None if is_empty(value) else value

    def cells(self, limit: int | None = None) -> Iterator[tuple[int, Any]]:
        cells = self.row if limit is None else self.row[:limit]
        for idx, value in enumerate(cells):
            if not is_empty(value):
                yield idx, value


def resolve(ctx: RowContext, strategies: Sequence[Strategy]) -> Resolved:
    for strategy in strategies:
        result = strategy(ctx)
        if result is not None:
            return result
    raise LookupError("no strategy produced a value")


# ── customer_name ────────────────────────────────────────────────────────────


def _name_from_mapping(ctx: RowContext) -> Resolved | None:
    value = ctx.mapped(CUSTOMER_NAME)
    text = cell_text(value)
    return (text, True) if text else None


def _name_from_scan(ctx: RowContext) -> Resolved | None:
    for idx, value in ctx.cells(NAME_SCAN_WIDTH):
        if is_number(value) or looks_like_date(value) or looks_like_phone(value):
            continue
        text = cell_text(value)
        if len(text) > MIN_NAME_LENGTH and not PURE_DIGITS_RE.match(text):
            logger.debug("Row %d: using column %d as customer name", ctx.row_number, idx)
            return text, True
    return None


def _name_default(ctx: RowContext) -> Resolved:
    return NAME_PLACEHOLDER.format(row=ctx.row_number), False


NAME_STRATEGIES: list[Strategy] = [_name_from_mapping, _name_from_scan, _name_default]


# ── customer_phone ───────────────────────────────────────────────────────────


def _phone_from_mapping(ctx: RowContext) -> Resolved | None:
    value = ctx.mapped(CUSTOMER_PHONE)
    if not any(ch.isdigit() for ch in cell_text(value)):
        return None
    return format_phone_number(value, ctx.settings), True


def _phone_from_scan(ctx: RowContext) -> Resolved | None:
    for idx, value in ctx.cells():
        if looks_like_phone(value):
            logger.debug("Row %d: using column %d as phone", ctx.row_number, idx)
            return format_phone_number(value, ctx.settings), True
    return None


def _phone_default(ctx: RowContext) -> Resolved:
    return synthesize_phone(ctx.rng, ctx.settings), False


PHONE_STRATEGIES: list[Strategy] = [_phone_from_mapping, _phone_from_scan, _phone_default]


# ── start_date ───────────────────────────────────────────────────────────────


def _date_from_mapping(ctx: RowContext) -> Resolved | None:
    value = ctx.mapped(START_DATE)
    if value is None:
        return None
    try:
        return parse_date(value), True
    except DateParseError as exc:
        logger.debug("Row %d: mapped start date unusable: %s", ctx.row_number, exc)
        return None


def _date_from_scan(ctx: RowContext) -> Resolved | None:
    for idx, value in ctx.cells():
        if not looks_like_date(value):
            continue
        try:
            parsed = parse_date(value)
        except DateParseError:
            continue
        if parsed.year > MIN_DATE_YEAR:
            logger.debug("Row %d: using column %d as start date", ctx.row_number, idx)
            return parsed, True
    return None


def _date_default(ctx: RowContext) -> Resolved:
    return datetime.now(), False


DATE_STRATEGIES: list[Strategy] = [_date_from_mapping, _date_from_scan, _date_default]


# ── status ───────────────────────────────────────────────────────────────────


def _status_from_mapping(ctx: RowContext) -> Resolved | None:
    value = ctx.mapped(STATUS)
    if value is None:
        return None
    return parse_status(value), True


def _status_from_scan(ctx: RowContext) -> Resolved | None:
    for _idx, value in ctx.cells():
        if not isinstance(value, str):
            continue
        candidate = parse_status(value)
        if candidate is not ConversationStatus.PENDING:
            return candidate, True
    return None


def _status_default(ctx: RowContext) -> Resolved:
    return ConversationStatus.PENDING, False


STATUS_STRATEGIES: list[Strategy] = [_status_from_mapping, _status_from_scan, _status_default]


# ── total_messages ───────────────────────────────────────────────────────────


def _count_from_mapping(ctx: RowContext) -> Resolved | None:
    number = parse_number(ctx.mapped(TOTAL_MESSAGES))
    if number is None or int(number) < 1:
        return None
    return int(number), True


def _count_from_scan(ctx: RowContext) -> Resolved | None:
    for _idx, value in ctx.cells():
        number = parse_number(value)
        if number is not None and 0 < number < MAX_MESSAGE_COUNT and int(number) >= 1:
            return int(number), True
    return None


def _count_default(ctx: RowContext) -> Resolved:
    return 1, False


COUNT_STRATEGIES: list[Strategy] = [_count_from_mapping, _count_from_scan, _count_default]


# ── last_message ─────────────────────────────────────────────────────────────


def _message_from_mapping(ctx: RowContext) -> Resolved | None:
    text = cell_text(ctx.mapped(LAST_MESSAGE))
    return (text, True) if text else None


def _message_scan(customer_name: str) -> Strategy:
    def scan(ctx: RowContext) -> Resolved | None:
        for _idx, value in ctx.cells():
            if not isinstance(value, str):
                continue
            text = value.strip()
            if (
                len(text) > MIN_MESSAGE_LENGTH
                and text != customer_name
                and not looks_like_date(text)
                and not PURE_DIGITS_RE.match(text)
                and not looks_like_phone(text)
            ):
                return text, True
        return None

    return scan


def _message_default(ctx: RowContext) -> Resolved:
    return NO_MESSAGE_PLACEHOLDER, False


# ── metadata ─────────────────────────────────────────────────────────────────


def _optional_date(ctx: RowContext, field_name: str) -> datetime | None:
    value = ctx.mapped(field_name)
    if value is None:
        return None
    try:
        return parse_date(value)
    except DateParseError:
        return None


def _numeric_candidates(ctx: RowContext) -> tuple[float | None, float | None]:
    """
    One pass over the numeric cells: the first value in [1, 5] is a
    satisfaction candidate, the first above 100 a purchase value.

    Every column is scanned, mapped or not, so a message count of 3 is also
    a satisfaction candidate. Phone-shaped and date-shaped cells are not
    numeric and are skipped.
    """
    satisfaction: float | None = None
    purchase: float | None = None
    low, high = SATISFACTION_RANGE
    for _idx, value in ctx.cells():
        if looks_like_phone(value) or looks_like_date(value):
            continue
        number = parse_number(value)
        if number is None or number <= 0:
            continue
        if low <= number <= high:
            if satisfaction is None:
                satisfaction = number
        elif number > PURCHASE_VALUE_FLOOR:
            if purchase is None:
                purchase = number
    return satisfaction, purchase


def _build_metadata(ctx: RowContext, quality: DataQuality) -> ConversationMetadata:
    scanned_satisfaction, scanned_purchase = _numeric_candidates(ctx)

    satisfaction = parse_number(ctx.mapped(SATISFACTION))
    low, high = SATISFACTION_RANGE
    if satisfaction is None or not low <= satisfaction <= high:
        satisfaction = scanned_satisfaction

    purchase = parse_number(ctx.mapped(PURCHASE_VALUE))
    if purchase is None or purchase <= 0:
        purchase = scanned_purchase

    response_time = parse_number(ctx.mapped(RESPONSE_TIME))
    if response_time is None or response_time < 0:
        response_time = 0.0

    return ConversationMetadata(
        source=ctx.settings.source_tag,
        response_time=response_time,
        satisfaction=satisfaction,
        total_purchase_value=purchase,
        original_row_number=ctx.row_number,
        data_quality=quality,
    )


# ── entry points ─────────────────────────────────────────────────────────────


def _parse_row(ctx: RowContext) -> Conversation:
    customer_name, real_name = resolve(ctx, NAME_STRATEGIES)
    customer_phone, real_phone = resolve(ctx, PHONE_STRATEGIES)
    start_date, real_date = resolve(ctx, DATE_STRATEGIES)
    status, real_status = resolve(ctx, STATUS_STRATEGIES)
    total_messages, real_count = resolve(ctx, COUNT_STRATEGIES)
    last_message, real_message = resolve(
        ctx, [_message_from_mapping, _message_scan(customer_name), _message_default]
    )
    assigned_agent = cell_text(ctx.mapped(ASSIGNED_AGENT)) or None

    quality = DataQuality(
        has_real_name=real_name,
        has_real_phone=real_phone,
        has_real_date=real_date,
        has_real_status=real_status,
        has_real_message_count=real_count,
        has_real_message=real_message,
        has_real_agent=assigned_agent is not None,
    )

    return Conversation(
        customer_name=customer_name,
        customer_phone=customer_phone,
        start_date=start_date,
        end_date=_optional_date(ctx, END_DATE),
        status=status,
        total_messages=total_messages,
        last_message=last_message,
        assigned_agent=assigned_agent,
        tags=[],
        metadata=_build_metadata(ctx, quality),
    )


def build_fallback_conversation(
    row_number: int,
    settings: IngestSettings = DEFAULT_SETTINGS,
    rng: random.Random | None = None,
    reason: str | None = None,
) -> Conversation:
    """Placeholder record for a row whose parsing blew up."""
    rng = rng or random.Random(settings.phone_seed)
    return Conversation(
        customer_name=NAME_PLACEHOLDER.format(row=row_number),
        customer_phone=synthesize_phone(rng, settings),
        start_date=datetime.now(),
        status=ConversationStatus.PENDING,
        total_messages=1,
        last_message=RECOVERED_MESSAGE_PLACEHOLDER,
        tags=[ERROR_TAG],
        metadata=ConversationMetadata(
            source=settings.recovery_source_tag,
            response_time=0.0,
            original_row_number=row_number,
            data_quality=DataQuality(),
            import_error=reason,
        ),
    )


def parse_conversation_row(
    row: Sequence[Any],
    mapping: ColumnMapping,
    row_number: int,
    settings: IngestSettings = DEFAULT_SETTINGS,
    rng: random.Random | None = None,
) -> Conversation:
    """
    Build the Conversation for one data row (row_number is 1-based, header = 1).

    Always returns a Conversation; parsing failures produce the placeholder
    record from build_fallback_conversation.
    """
    rng = rng or random.Random(settings.phone_seed)
    ctx = RowContext(row=list(row), mapping=mapping, row_number=row_number, settings=settings, rng=rng)
    try:
        return _parse_row(ctx)
    except Exception as exc:
        logger.warning("Row %d could not be parsed, storing placeholder record: %s", row_number, exc)
        return build_fallback_conversation(row_number, settings, rng, reason=f"{type(exc).__name__}: {exc}")

