"""Pre-flight file checks run before any row is parsed."""

from __future__ import annotations

import logging
from pathlib import Path

from convo_ingest.config import DEFAULT_SETTINGS, IngestSettings
from convo_ingest.errors import UnreadableFileError
from convo_ingest.loader import Source, file_extension, preview_shape, read_source
from convo_ingest.models import ValidationResult

logger = logging.getLogger(__name__)


def _format_megabytes(size: int) -> str:
    megabytes = size / (1024 * 1024)
    return f"{megabytes:g}MB"


def validate_file(
    source: Source,
    filename: str | None = None,
    settings: IngestSettings = DEFAULT_SETTINGS,
) -> ValidationResult:
    """
    Check extension, size and rough shape, in that order.

    Problems come back as messages in the result; an unreadable or corrupt
    payload becomes a single error entry instead of an exception.
    """
    result = ValidationResult()

    if isinstance(source, (str, Path)) and Path(source).exists():
        name = filename or Path(source).name
        size = Path(source).stat().st_size
        payload: Source = source
    else:
        try:
            name, raw = read_source(source, filename)
        except (OSError, ValueError) as exc:
            result.errors.append(f"Could not read the uploaded file: {exc}")
            return result
        size = len(raw)
        payload = raw

    suffix = file_extension(name)
    logger.info("Validating %s (%d bytes)", name, size)

    if suffix not in settings.supported_formats:
        result.errors.append(
            f"Unsupported format '{suffix}'. Supported formats: {', '.join(settings.supported_formats)}"
        )

    if size > settings.max_file_size_bytes:
        result.errors.append(
            f"File exceeds the maximum size of {_format_megabytes(settings.max_file_size_bytes)}"
        )
    elif size == 0:
        result.errors.append("File is empty")

    if result.errors:
        logger.info("Validation failed for %s: %s", name, result.errors)
        return result

    try:
        rows, columns = preview_shape(payload, name)
    except (UnreadableFileError, ImportError, ValueError, OSError) as exc:
        logger.warning("Could not preview %s: %s", name, exc)
        result.errors.append(f"Could not read the file contents; check that it is not corrupt ({exc})")
        return result

    if rows < settings.min_rows:
        result.errors.append("The file must contain at least one data row besides the header row")
    if columns < settings.min_columns_warning:
        result.warnings.append(
            "The file has very few columns; include at least customer, phone and date"
        )

    for warning in result.warnings:
        logger.warning("%s: %s", name, warning)
    return result
