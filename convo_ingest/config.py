"""
Runtime settings for convo-ingest.

Defaults live in module constants; callers override them by building an
IngestSettings (or IngestSettings.from_env()) and passing it explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

SUPPORTED_FORMATS = (".xlsx", ".xls", ".csv")
MAX_FILE_SIZE_BYTES = 25 * 1024 * 1024
MIN_ROWS = 2
MIN_COLUMNS_WARNING = 3
MATCH_THRESHOLD = 0.7

DEFAULT_COUNTRY_CODE = "52"
RECOGNIZED_COUNTRY_CODES = ("52",)

SOURCE_TAG = "Excel Import"
RECOVERY_SOURCE_TAG = "Excel Import (Error Recovery)"

ENV_MAX_FILE_MB = "CONVO_INGEST_MAX_FILE_MB"
ENV_COUNTRY_CODE = "CONVO_INGEST_COUNTRY_CODE"
ENV_PHONE_SEED = "CONVO_INGEST_PHONE_SEED"


@dataclass(frozen=True)
class IngestSettings:
    supported_formats: tuple[str, ...] = SUPPORTED_FORMATS
    max_file_size_bytes: int = MAX_FILE_SIZE_BYTES
    min_rows: int = MIN_ROWS
    min_columns_warning: int = MIN_COLUMNS_WARNING
    match_threshold: float = MATCH_THRESHOLD
    default_country_code: str = DEFAULT_COUNTRY_CODE
    recognized_country_codes: tuple[str, ...] = field(default=RECOGNIZED_COUNTRY_CODES)
    source_tag: str = SOURCE_TAG
    recovery_source_tag: str = RECOVERY_SOURCE_TAG
    # None keeps placeholder phones unseeded.
    phone_seed: int | None = None

    @property
    def fallback_phone(self) -> str:
        return f"+{self.default_country_code}000000000"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "IngestSettings":
        env = os.environ if environ is None else environ
        settings = cls()

        raw_mb = env.get(ENV_MAX_FILE_MB)
        if raw_mb:
            try:
                megabytes = float(raw_mb)
            except ValueError:
                raise ValueError(f"{ENV_MAX_FILE_MB} must be a number, got {raw_mb!r}")
            if megabytes <= 0:
                raise ValueError(f"{ENV_MAX_FILE_MB} must be positive, got {raw_mb!r}")
            settings = replace(settings, max_file_size_bytes=int(megabytes * 1024 * 1024))

        raw_code = env.get(ENV_COUNTRY_CODE)
        if raw_code:
            code = raw_code.strip().lstrip("+")
            if not code.isdigit() or len(code) > 3:
                raise ValueError(f"{ENV_COUNTRY_CODE} must be 1-3 digits, got {raw_code!r}")
            settings = replace(
                settings,
                default_country_code=code,
                recognized_country_codes=(code,),
            )

        raw_seed = env.get(ENV_PHONE_SEED)
        if raw_seed:
            try:
                settings = replace(settings, phone_seed=int(raw_seed))
            except ValueError:
                raise ValueError(f"{ENV_PHONE_SEED} must be an integer, got {raw_seed!r}")

        return settings


DEFAULT_SETTINGS = IngestSettings()
