"""Data models for documents, chunks and query results.

Documents and chunks are plain dataclasses owned by the storage layer.
Query results are pydantic models because they cross the HTTP boundary.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentStatus(str, Enum):
    """Lifecycle of an uploaded document."""

    UPLOADED = "UPLOADED"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


@dataclass
class Document:
    """An uploaded source document."""

    id: int
    file_name: str
    file_type: str
    file_path: str
    uploaded_at: datetime
    status: DocumentStatus = DocumentStatus.UPLOADED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "filePath": self.file_path,
            "uploadDate": self.uploaded_at.isoformat(),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document's text with its embedding.

    Chunks are written once at ingestion and only read afterwards.
    """

    document_id: int
    chunk_index: int
    text: str
    vector: Optional[List[float]]
    start_page: int = 0
    end_page: int = 0
    file_name: str = ""
    id: Optional[int] = None

    @property
    def page_range(self) -> str:
        return f"{self.start_page}-{self.end_page}"


Decision = Literal["approved", "rejected", "needs_review", "error"]


class ClauseReference(BaseModel):
    """A policy clause cited by the model.

    ``document_id`` and ``page_range`` are only filled in by reconciliation.
    """

    model_config = ConfigDict(populate_by_name=True)

    section: str
    text: str
    relevance_score: float = Field(alias="relevanceScore")
    document_id: Optional[int] = Field(default=None, alias="documentId")
    page_range: Optional[str] = Field(default=None, alias="pageRange")


class QueryResult(BaseModel):
    """Structured decision returned for a single query."""

    decision: Decision
    amount: float = 0.0
    justification: str = ""
    clauses: List[ClauseReference] = Field(default_factory=list)

    @classmethod
    def error(cls, message: str) -> "QueryResult":
        """Build the error-shaped fallback result."""
        return cls(decision="error", amount=0.0, justification=message, clauses=[])

    def to_response(self) -> dict:
        """Serialize with the camelCase field names clients expect."""
        return self.model_dump(by_alias=True)
