from __future__ import annotations

"""Protocols for the document source and chunk store collaborators."""

from typing import Iterable, Protocol

from scroll_rag.rag.types import Chunk, Document, ScoredChunk


class ChunkStoreError(RuntimeError):
    """Raised when the document or chunk store is unavailable or misused."""
    pass


class DocumentNotFoundError(ChunkStoreError):
    """Raised when a document ID does not exist."""
    pass


class ChunkStore(Protocol):
    """Document source and chunk persistence used by retrieval."""

    def add_document(
        self,
        content: str,
        original_name: str = "",
        category_id: int | None = None,
        subtopic_ids: Iterable[int] = (),
        is_active: bool = True,
    ) -> Document:
        """Persist a document and return it with its assigned ID."""
        raise NotImplementedError

    def get_document(self, document_id: int) -> Document:
        """Return a document or raise DocumentNotFoundError."""
        raise NotImplementedError

    def list_documents(self) -> list[Document]:
        """Return all documents, newest first."""
        raise NotImplementedError

    def set_active(self, document_id: int, is_active: bool) -> Document:
        """Toggle document visibility for retrieval."""
        raise NotImplementedError

    def delete_document(self, document_id: int) -> None:
        """Delete a document together with its chunks."""
        raise NotImplementedError

    def list_active_documents(self) -> list[Document]:
        """Return active documents ordered by ID."""
        raise NotImplementedError

    def count_active_documents(self) -> int:
        """Return the number of active documents."""
        raise NotImplementedError

    def count_chunks(self, document_id: int) -> int:
        """Return the number of chunks stored for a document."""
        raise NotImplementedError

    def documents_without_chunks(self) -> list[Document]:
        """Return active documents that have no chunks yet."""
        raise NotImplementedError

    def insert_chunks(self, document_id: int, contents: list[str]) -> int:
        """Append chunks for a document starting at index 0."""
        raise NotImplementedError

    def insert_chunks_if_absent(self, document_id: int, contents: list[str]) -> bool:
        """Insert chunks only when the document still has none."""
        raise NotImplementedError

    def get_chunks(self, document_id: int) -> list[Chunk]:
        """Return a document's chunks ordered by index."""
        raise NotImplementedError

    def query_chunks_by_keywords(self, keywords: Iterable[str], limit: int) -> list[ScoredChunk]:
        """Return active chunks matching at least one keyword, best first."""
        raise NotImplementedError

    def first_chunks(self, limit: int) -> list[Chunk]:
        """Return the earliest active chunks by (document_id, chunk_index)."""
        raise NotImplementedError

    def stats(self) -> dict[str, int | str]:
        """Return basic store statistics."""
        raise NotImplementedError
