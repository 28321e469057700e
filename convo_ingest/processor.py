"""
Per-file driver: validate, decode, map the header once, parse every data row.

A row that fails is recorded and skipped; it never stops the file. The
accounting identity len(conversations) + summary.error_rows == total_rows
holds for every result.

total_rows counts data rows as decoded. Fully blank rows are dropped by the
loader (and reported in result.warnings), so they never become placeholder
conversations and are not part of total_rows.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Sequence

from convo_ingest.column_mapper import detect_column_mapping
from convo_ingest.config import DEFAULT_SETTINGS, IngestSettings
from convo_ingest.errors import FileValidationError
from convo_ingest.loader import Source, load_matrix, read_source
from convo_ingest.models import (
    Conversation,
    ProcessError,
    ProcessResult,
    ProcessSummary,
    ValidationResult,
)
from convo_ingest.row_parser import ERROR_TAG, parse_conversation_row
from convo_ingest.validation import validate_file

logger = logging.getLogger(__name__)

GENERAL_COLUMN = "general"
FIRST_DATA_ROW = 2


def process_matrix(
    headers: Sequence[Any],
    rows: Sequence[Sequence[Any]],
    settings: IngestSettings = DEFAULT_SETTINGS,
    row_numbers: Sequence[int] | None = None,
) -> ProcessResult:
    """
    Turn an in-memory matrix into a ProcessResult.

    row_numbers gives the 1-based sheet row of each data row; by default the
    header is row 1 and data rows follow without gaps.
    """
    started = time.perf_counter()
    if row_numbers is None:
        row_numbers = range(FIRST_DATA_ROW, FIRST_DATA_ROW + len(rows))
    elif len(row_numbers) != len(rows):
        raise ValueError("row_numbers must have one entry per data row")

    mapping = detect_column_mapping(headers, settings)
    rng = random.Random(settings.phone_seed)

    conversations: list[Conversation] = []
    errors: list[ProcessError] = []

    for row_number, row in zip(row_numbers, rows):
        try:
            conversation = parse_conversation_row(row, mapping, row_number, settings, rng)
        except Exception as exc:
            logger.exception("Row %d failed and was skipped", row_number)
            errors.append(
                ProcessError(
                    row=row_number,
                    column=GENERAL_COLUMN,
                    message=str(exc) or type(exc).__name__,
                    severity="error",
                )
            )
            continue

        if ERROR_TAG in conversation.tags:
            errors.append(
                ProcessError(
                    row=row_number,
                    column=GENERAL_COLUMN,
                    message=f"Row imported with placeholder data ({conversation.metadata.import_error})",
                    severity="warning",
                )
            )
        conversations.append(conversation)

    elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
    summary = ProcessSummary(
        total_rows=len(rows),
        successful_rows=len(conversations),
        error_rows=sum(1 for error in errors if error.severity == "error"),
        processing_time=elapsed_ms,
    )
    logger.info(
        "Processed %d rows: %d conversations, %d errors in %.1f ms",
        summary.total_rows, summary.successful_rows, summary.error_rows, elapsed_ms,
    )
    return ProcessResult(
        conversations=conversations,
        total_processed=len(rows),
        errors=errors,
        summary=summary,
        mapping=mapping,
    )


def process_file(
    source: Source,
    filename: str | None = None,
    settings: IngestSettings = DEFAULT_SETTINGS,
) -> ProcessResult:
    """
    Validate and process one spreadsheet.

    Raises FileValidationError when the file is rejected before row parsing.
    """
    name, raw = read_source(source, filename)
    logger.info("Processing %s", name)

    validation = validate_file(raw, name, settings)
    if not validation.is_valid:
        raise FileValidationError(validation.errors, validation.warnings)

    loaded = load_matrix(raw, name)
    if not loaded["rows"]:
        raise FileValidationError(
            ["The file does not contain any data rows"], validation.warnings
        )

    result = process_matrix(
        loaded["headers"],
        loaded["rows"],
        settings,
        row_numbers=loaded["row_numbers"],
    )
    result.warnings = list(validation.warnings) + list(loaded["warnings"])
    return result


class SpreadsheetProcessor:
    """Settings-bound facade used by application use cases."""

    def __init__(self, settings: IngestSettings = DEFAULT_SETTINGS) -> None:
        self.settings = settings

    def get_supported_formats(self) -> list[str]:
        return list(self.settings.supported_formats)

    def get_max_file_size(self) -> int:
        return self.settings.max_file_size_bytes

    def validate_file(self, source: Source, filename: str | None = None) -> ValidationResult:
        return validate_file(source, filename, self.settings)

    def process_file(self, source: Source, filename: str | None = None) -> ProcessResult:
        return process_file(source, filename, self.settings)
