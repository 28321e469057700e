"""Exception types raised by convo-ingest."""

from __future__ import annotations


class IngestError(Exception):
    """Base class for every error this package raises on purpose."""


class FileValidationError(IngestError):
    """The file was rejected before any row was parsed."""

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        super().__init__("Invalid file: " + "; ".join(errors))
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class UnreadableFileError(IngestError, ValueError):
    """The bytes could not be decoded as the declared spreadsheet format."""


class DateParseError(IngestError, ValueError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Could not parse date: {value!r}")
        self.value = value
