from __future__ import annotations

"""In-memory chunk store for local runs and tests."""

import threading
from dataclasses import dataclass, field, replace
from typing import Iterable

from scroll_rag.chunkstore.base import ChunkStoreError, DocumentNotFoundError
from scroll_rag.rag.types import Chunk, Document, ScoredChunk


@dataclass
class InMemoryChunkStore:
    """Dict-backed store with a linear substring scorer."""
    documents: dict[int, Document] = field(default_factory=dict)
    chunks: dict[int, list[Chunk]] = field(default_factory=dict)
    _next_document_id: int = 1
    _next_chunk_id: int = 1
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def add_document(
        self,
        content: str,
        original_name: str = "",
        category_id: int | None = None,
        subtopic_ids: Iterable[int] = (),
        is_active: bool = True,
    ) -> Document:
        """Store a document and assign the next ID."""
        with self._lock:
            document = Document(
                doc_id=self._next_document_id,
                content=content,
                is_active=is_active,
                original_name=original_name,
                category_id=category_id,
                subtopic_ids=tuple(subtopic_ids),
            )
            self.documents[document.doc_id] = document
            self._next_document_id += 1
            return document

    def get_document(self, document_id: int) -> Document:
        with self._lock:
            document = self.documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def list_documents(self) -> list[Document]:
        with self._lock:
            return sorted(self.documents.values(), key=lambda doc: doc.doc_id, reverse=True)

    def set_active(self, document_id: int, is_active: bool) -> Document:
        with self._lock:
            document = replace(self.get_document(document_id), is_active=is_active)
            self.documents[document_id] = document
            return document

    def delete_document(self, document_id: int) -> None:
        with self._lock:
            if document_id not in self.documents:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            del self.documents[document_id]
            self.chunks.pop(document_id, None)

    def list_active_documents(self) -> list[Document]:
        with self._lock:
            return [
                doc
                for _, doc in sorted(self.documents.items())
                if doc.is_active
            ]

    def count_active_documents(self) -> int:
        return len(self.list_active_documents())

    def count_chunks(self, document_id: int) -> int:
        with self._lock:
            return len(self.chunks.get(document_id, []))

    def documents_without_chunks(self) -> list[Document]:
        with self._lock:
            return [doc for doc in self.list_active_documents() if not self.chunks.get(doc.doc_id)]

    def insert_chunks(self, document_id: int, contents: list[str]) -> int:
        """Append chunks after any already stored for the document."""
        with self._lock:
            if document_id not in self.documents:
                raise ChunkStoreError(f"Cannot chunk missing document {document_id}")
            stored = self.chunks.setdefault(document_id, [])
            start = len(stored)
            for offset, content in enumerate(contents):
                stored.append(
                    Chunk(
                        chunk_id=self._next_chunk_id,
                        document_id=document_id,
                        chunk_index=start + offset,
                        content=content,
                        content_lower=content.lower(),
                    )
                )
                self._next_chunk_id += 1
            return len(contents)

    def insert_chunks_if_absent(self, document_id: int, contents: list[str]) -> bool:
        with self._lock:
            if self.chunks.get(document_id):
                return False
            self.insert_chunks(document_id, contents)
            return True

    def get_chunks(self, document_id: int) -> list[Chunk]:
        with self._lock:
            return list(self.chunks.get(document_id, []))

    def _active_chunks(self) -> list[Chunk]:
        """Active chunks in (document_id, chunk_index) order."""
        with self._lock:
            ordered: list[Chunk] = []
            for document in self.list_active_documents():
                ordered.extend(self.chunks.get(document.doc_id, []))
            return ordered

    def query_chunks_by_keywords(self, keywords: Iterable[str], limit: int) -> list[ScoredChunk]:
        """Score chunks by how many keywords occur in their lowercased text."""
        terms = [keyword.lower() for keyword in keywords if keyword]
        if not terms or limit <= 0:
            return []
        scored = []
        for chunk in self._active_chunks():
            score = sum(1 for term in terms if term in chunk.content_lower)
            if score:
                scored.append(ScoredChunk(chunk=chunk, score=score))
        scored.sort(
            key=lambda item: (-item.score, item.chunk.document_id, item.chunk.chunk_index)
        )
        return scored[:limit]

    def first_chunks(self, limit: int) -> list[Chunk]:
        if limit <= 0:
            return []
        return self._active_chunks()[:limit]

    def stats(self) -> dict[str, int | str]:
        with self._lock:
            return {
                "backend": "memory",
                "document_count": len(self.documents),
                "active_document_count": sum(1 for doc in self.documents.values() if doc.is_active),
                "chunk_count": sum(len(items) for items in self.chunks.values()),
            }
