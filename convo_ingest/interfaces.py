"""
Boundaries to the collaborators that consume parsed conversations.

Storage and analysis engines live elsewhere; only their contracts and the
use case that wires them to the processor are defined here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from convo_ingest.errors import FileValidationError, IngestError
from convo_ingest.loader import Source, read_source
from convo_ingest.models import Conversation, ProcessError, ProcessSummary
from convo_ingest.processor import SpreadsheetProcessor

logger = logging.getLogger(__name__)


class ConversationRepository(ABC):
    @abstractmethod
    def create(self, conversation: Conversation) -> Conversation:
        """Persist and return the stored record (with its id set)."""

    @abstractmethod
    def update(self, conversation_id: str, updates: dict[str, Any]) -> Conversation:
        ...

    @abstractmethod
    def get_by_id(self, conversation_id: str) -> Conversation | None:
        ...

    @abstractmethod
    def get_all(self) -> list[Conversation]:
        ...


class AnalysisService(ABC):
    @abstractmethod
    def analyze_conversation(self, conversation: Conversation) -> dict[str, Any]:
        """
        Return analysis fields for a conversation.

        Recognised keys (ai_summary, ai_suggestion, interest, sales_potential)
        are written back through the repository.
        """


ANALYSIS_FIELDS = ("ai_summary", "ai_suggestion", "interest", "sales_potential")


@dataclass
class ProcessFileOutcome:
    success: bool
    total_processed: int = 0
    conversations_created: int = 0
    errors: list[ProcessError] = field(default_factory=list)
    summary: ProcessSummary = field(
        default_factory=lambda: ProcessSummary(total_rows=0, successful_rows=0, error_rows=0, processing_time=0)
    )
    error: str | None = None


class ProcessFileUseCase:
    """validate -> process -> store every conversation -> hand each one to analysis."""

    def __init__(
        self,
        processor: SpreadsheetProcessor,
        repository: ConversationRepository,
        analysis_service: AnalysisService | None = None,
    ) -> None:
        self.processor = processor
        self.repository = repository
        self.analysis_service = analysis_service

    def execute(self, source: Source, filename: str | None = None) -> ProcessFileOutcome:
        try:
            name, raw = read_source(source, filename)
            result = self.processor.process_file(raw, name)
        except FileValidationError as exc:
            return ProcessFileOutcome(success=False, error=str(exc))
        except (IngestError, ValueError, ImportError, OSError) as exc:
            logger.error("Could not process file: %s", exc)
            return ProcessFileOutcome(success=False, error=str(exc))

        saved = [self.repository.create(conversation) for conversation in result.conversations]
        self._analyze(saved)

        return ProcessFileOutcome(
            success=True,
            total_processed=result.total_processed,
            conversations_created=len(saved),
            errors=result.errors,
            summary=result.summary,
        )

    def _analyze(self, conversations: list[Conversation]) -> None:
        if self.analysis_service is None:
            return
        for conversation in conversations:
            try:
                analysis = self.analysis_service.analyze_conversation(conversation)
                updates = {key: analysis[key] for key in ANALYSIS_FIELDS if analysis.get(key) is not None}
                if updates and conversation.id is not None:
                    self.repository.update(conversation.id, updates)
            except Exception:
                logger.exception("Analysis failed for conversation %s", conversation.id)
