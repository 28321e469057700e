"""
Spreadsheet bytes -> cell matrix (header row + data rows).

Supports: .csv .xlsx .xls (first sheet only)

Public API:
    loaded = load_matrix("path/to/file.xlsx")
    headers, rows = loaded["headers"], loaded["rows"]

Result dict keys:
    headers           : first non-blank row, as decoded cells
    rows              : every later non-blank row, in file order
    row_numbers       : 1-based sheet row number of each entry in rows
    file_name         : base name the format was detected from
    detected_format   : "csv", "xlsx" or "xls"
    detected_encoding : encoding name for text files; None for workbooks
    delimiter         : delimiter char for text files; None otherwise
    sheet_name        : sheet read for workbooks; None otherwise
    sheet_names       : all sheet names for workbooks; None otherwise
    original_rows     : row count including header row
    original_columns  : widest row
    warnings          : list of warning strings
"""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from pathlib import Path
from typing import Any, BinaryIO, Union

import chardet
import openpyxl
import pandas as pd

from convo_ingest.coercion import is_empty, normalize_scalar
from convo_ingest.errors import UnreadableFileError

logger = logging.getLogger(__name__)

TEXT_FORMATS = {".csv"}
EXCEL_FORMATS = {".xlsx", ".xls"}
ALL_FORMATS = TEXT_FORMATS | EXCEL_FORMATS

Source = Union[str, Path, bytes, bytearray, BinaryIO]


# ══════════════════════════════════════════════════════════════════════════════
# SOURCE HANDLING
# ══════════════════════════════════════════════════════════════════════════════

def read_source(source: Source, filename: str | None = None) -> tuple[str, bytes]:
    """
    Return (file name, raw bytes) for a path, a bytes payload or a binary file object.

    Raw payloads carry no name, so filename is required for them.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return filename or path.name, path.read_bytes()

    if isinstance(source, (bytes, bytearray)):
        raw = bytes(source)
    else:
        raw = source.read()
        filename = filename or getattr(source, "name", None)

    if not filename:
        raise ValueError("filename is required when loading from bytes or a file object")
    return Path(str(filename)).name, raw


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


# ══════════════════════════════════════════════════════════════════════════════
# TEXT DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw[:200_000])
    return result.get("encoding") or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. Try latin-1
      4. CP1252 with replace (never crashes)

    Also strips embedded null bytes and a leading BOM.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("\ufeff")


def _detect_delimiter(text: str) -> str:
    """
    Infer CSV delimiter from sample lines.

    Uses csv.Sniffer first; falls back to scoring each candidate delimiter by
    column-count consistency and column width.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    for delim in (",", ";", "\t", "|"):
        rows = [
            row
            for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if not rows:
            continue
        widths = Counter(len(row) for row in rows)
        mode_width, mode_count = widths.most_common(1)[0]
        score = (mode_width * 2.0) + (mode_count / len(rows)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_delim, best_score = delim, score

    return best_delim


def _load_text(raw: bytes) -> dict:
    encoding = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)
    delimiter = _detect_delimiter(text)
    try:
        matrix = [list(row) for row in csv.reader(io.StringIO(text), delimiter=delimiter)]
    except csv.Error as exc:
        raise UnreadableFileError(f"Could not parse .csv file: {exc}") from exc
    return {
        "matrix": matrix,
        "detected_encoding": encoding,
        "delimiter": delimiter,
        "sheet_name": None,
        "sheet_names": None,
        "warnings": [],
    }


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOK DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _excel_engine(suffix: str) -> str:
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd; run: pip install xlrd")
        return "xlrd"
    return "openpyxl"


def _load_excel(raw: bytes, suffix: str) -> dict:
    engine = _excel_engine(suffix)
    warnings: list[str] = []

    try:
        with pd.ExcelFile(io.BytesIO(raw), engine=engine) as workbook:
            sheet_names = list(workbook.sheet_names)
            if not sheet_names:
                raise UnreadableFileError("Workbook contains no sheets")
            chosen = sheet_names[0]
            df = workbook.parse(chosen, header=None, dtype=object)
    except UnreadableFileError:
        raise
    except Exception as exc:
        raise UnreadableFileError(f"Could not open workbook: {exc}") from exc

    if len(sheet_names) > 1:
        warnings.append(
            f"Multiple sheets found ({len(sheet_names)} total); "
            f"used '{chosen}'. Ignored: {sheet_names[1:]}"
        )

    matrix = [[normalize_scalar(cell) for cell in row] for row in df.itertuples(index=False, name=None)]
    return {
        "matrix": matrix,
        "detected_encoding": None,
        "delimiter": None,
        "sheet_name": chosen,
        "sheet_names": sheet_names,
        "warnings": warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def _trim_row(row: list[Any]) -> list[Any]:
    end = len(row)
    while end and is_empty(row[end - 1]):
        end -= 1
    return row[:end]


def load_matrix(source: Source, filename: str | None = None) -> dict:
    """
    Decode a spreadsheet into its header row and data rows.

    Fully blank rows are dropped (and counted in a warning); trailing empty
    cells are trimmed from each row.

    Raises:
        FileNotFoundError    if a path does not exist.
        ValueError           if the format is unsupported.
        UnreadableFileError  if the content cannot be decoded.
        ImportError          if a required optional dependency is missing.
    """
    name, raw = read_source(source, filename)
    suffix = file_extension(name)

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        loaded = _load_text(raw)
    else:
        loaded = _load_excel(raw, suffix)

    matrix = [_trim_row(list(row)) for row in loaded.pop("matrix")]
    numbered = [(number, row) for number, row in enumerate(matrix, start=1) if row]
    non_blank = [row for _number, row in numbered]
    blank_count = len(matrix) - len(non_blank)
    warnings = list(loaded.pop("warnings"))
    if blank_count:
        warnings.append(f"Skipped {blank_count} blank row(s)")

    headers = non_blank[0] if non_blank else []
    rows = non_blank[1:]
    logger.debug("Decoded %s: %d data rows, %d header cells", name, len(rows), len(headers))

    return {
        "file_name": name,
        "headers": headers,
        "rows": rows,
        "row_numbers": [number for number, _row in numbered[1:]],
        "detected_format": suffix.lstrip("."),
        **loaded,
        "original_rows": len(non_blank),
        "original_columns": max((len(row) for row in non_blank), default=0),
        "warnings": warnings,
    }


def preview_shape(source: Source, filename: str | None = None) -> tuple[int, int]:
    """
    Cheap (rows, columns) estimate used by the validation gate.

    .xlsx reads the worksheet dimensions only; other formats are decoded.
    """
    name, raw = read_source(source, filename)
    suffix = file_extension(name)

    if suffix == ".xlsx":
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
        except Exception as exc:
            raise UnreadableFileError(f"Could not open workbook: {exc}") from exc
        try:
            if not workbook.worksheets:
                return 0, 0
            sheet = workbook.worksheets[0]
            rows, columns = sheet.max_row, sheet.max_column
            if rows is None or columns is None:
                cells = [row for row in sheet.iter_rows(values_only=True)]
                rows = len(cells)
                columns = max((len(row) for row in cells), default=0)
            return rows or 0, columns or 0
        finally:
            workbook.close()

    loaded = load_matrix(raw, name)
    return loaded["original_rows"], loaded["original_columns"]
