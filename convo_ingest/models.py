"""Data model handed out of the ingestion engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    PENDING = "pending"


@dataclass
class DataQuality:
    """Which fields came from the file rather than from a default."""

    has_real_name: bool = False
    has_real_phone: bool = False
    has_real_date: bool = False
    has_real_status: bool = False
    has_real_message_count: bool = False
    has_real_message: bool = False
    has_real_agent: bool = False

    @property
    def completeness_score(self) -> float:
        flags = (
            self.has_real_name,
            self.has_real_phone,
            self.has_real_date,
            self.has_real_status,
            self.has_real_message_count,
            self.has_real_message,
            self.has_real_agent,
        )
        return round(sum(flags) / len(flags), 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_real_name": self.has_real_name,
            "has_real_phone": self.has_real_phone,
            "has_real_date": self.has_real_date,
            "has_real_status": self.has_real_status,
            "has_real_message_count": self.has_real_message_count,
            "has_real_message": self.has_real_message,
            "has_real_agent": self.has_real_agent,
            "completeness_score": self.completeness_score,
        }


@dataclass
class ConversationMetadata:
    source: str
    response_time: float = 0.0  # minutes
    satisfaction: float | None = None  # 1-5
    total_purchase_value: float | None = None
    conversion_rate: float | None = None
    original_row_number: int | None = None
    data_quality: DataQuality | None = None
    # Set only on rows rebuilt from placeholders after a parse failure.
    import_error: str | None = None

    @property
    def incomplete_data(self) -> bool:
        if self.data_quality is None:
            return True
        return self.data_quality.completeness_score < 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "response_time": self.response_time,
            "satisfaction": self.satisfaction,
            "total_purchase_value": self.total_purchase_value,
            "conversion_rate": self.conversion_rate,
            "original_row_number": self.original_row_number,
            "incomplete_data": self.incomplete_data,
            "data_quality": self.data_quality.to_dict() if self.data_quality else None,
            "import_error": self.import_error,
        }


@dataclass
class Conversation:
    customer_name: str
    customer_phone: str
    start_date: datetime
    status: ConversationStatus = ConversationStatus.PENDING
    total_messages: int = 1
    last_message: str = ""
    metadata: ConversationMetadata = field(default_factory=lambda: ConversationMetadata(source=""))
    end_date: datetime | None = None
    assigned_agent: str | None = None
    tags: list[str] = field(default_factory=list)
    # Assigned by the persistence collaborator.
    id: str | None = None
    # Filled in later by the analysis collaborator, never by this engine.
    ai_summary: str | None = None
    ai_suggestion: str | None = None
    interest: str | None = None
    sales_potential: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ConversationStatus):
            raise TypeError(f"status must be a ConversationStatus, got {self.status!r}")
        # ordered set
        self.tags = list(dict.fromkeys(self.tags))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status.value,
            "total_messages": self.total_messages,
            "last_message": self.last_message,
            "assigned_agent": self.assigned_agent,
            "tags": list(self.tags),
            "metadata": self.metadata.to_dict(),
            "ai_summary": self.ai_summary,
            "ai_suggestion": self.ai_suggestion,
            "interest": self.interest,
            "sales_potential": self.sales_potential,
        }


class ColumnMapping(Mapping[str, int]):
    """
    Canonical field -> column index, computed once per file.

    Read-only; no two fields may share an index.
    """

    def __init__(self, indices: Mapping[str, int], headers: list[str] | tuple[str, ...] = ()) -> None:
        seen: dict[int, str] = {}
        for name, idx in indices.items():
            if idx in seen:
                raise ValueError(
                    f"Column {idx} assigned to both '{seen[idx]}' and '{name}'"
                )
            seen[idx] = name
        self._indices = MappingProxyType(dict(indices))
        self._headers = tuple(headers)

    def __getitem__(self, key: str) -> int:
        return self._indices[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._indices)

    def __len__(self) -> int:
        return len(self._indices)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ColumnMapping):
            return dict(self._indices) == dict(other._indices)
        if isinstance(other, Mapping):
            return dict(self._indices) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._indices.items()))

    def __repr__(self) -> str:
        return f"ColumnMapping({dict(self._indices)!r})"

    @property
    def headers(self) -> tuple[str, ...]:
        return self._headers

    def label(self, field_name: str) -> str:
        idx = self._indices.get(field_name)
        if idx is None:
            return field_name
        if idx < len(self._headers) and self._headers[idx]:
            return self._headers[idx]
        return f"[col {idx + 1}]"

    def to_dict(self) -> dict[str, int]:
        return dict(self._indices)


@dataclass
class ProcessError:
    row: int
    column: str
    message: str
    severity: str = "error"  # "error" | "warning"

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "column": self.column,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class ProcessSummary:
    total_rows: int
    successful_rows: int
    error_rows: int
    processing_time: float  # milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "successful_rows": self.successful_rows,
            "error_rows": self.error_rows,
            "processing_time": self.processing_time,
        }


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        from convo_ingest.contracts import build_contract

        contract = build_contract("convo_ingest.validation")
        return {
            "contract": contract,
            "schema_version": contract["version"],
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass
class ProcessResult:
    conversations: list[Conversation]
    total_processed: int
    errors: list[ProcessError]
    summary: ProcessSummary
    mapping: ColumnMapping | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self, source_name: str | None = None) -> dict[str, Any]:
        from convo_ingest.contracts import build_contract, build_run_summary

        contract = build_contract("convo_ingest.process_result")
        return {
            "contract": contract,
            "schema_version": contract["version"],
            "conversations": [conversation.to_dict() for conversation in self.conversations],
            "total_processed": self.total_processed,
            "errors": [error.to_dict() for error in self.errors],
            "summary": self.summary.to_dict(),
            "mapping": self.mapping.to_dict() if self.mapping is not None else {},
            "run_summary": build_run_summary(
                step="process_file",
                input_name=source_name,
                status="ok" if not self.summary.error_rows else "partial",
                metrics={
                    "total_rows": self.summary.total_rows,
                    "successful_rows": self.summary.successful_rows,
                    "error_rows": self.summary.error_rows,
                    "recovered_rows": sum(1 for error in self.errors if error.severity == "warning"),
                    "mapped_fields": len(self.mapping) if self.mapping is not None else 0,
                },
                warnings=self.warnings,
            ),
        }
