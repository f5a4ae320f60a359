from __future__ import annotations

"""Core data types for documents, chunks and retrieval."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Document:
    """Uploaded document as seen by the retrieval core."""
    doc_id: int
    content: str
    is_active: bool = True
    original_name: str = ""
    category_id: int | None = None
    subtopic_ids: tuple[int, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Chunk:
    """Order-indexed slice of a document's text."""
    chunk_id: int
    document_id: int
    chunk_index: int
    content: str
    content_lower: str


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk with its keyword match count."""
    chunk: Chunk
    score: int


@dataclass(frozen=True)
class ContextBundle:
    """Token-budgeted context text plus contributing document IDs."""
    text: str
    document_ids: list[int]
