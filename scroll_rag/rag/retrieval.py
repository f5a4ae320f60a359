from __future__ import annotations

"""Lazy chunk backfill and keyword-ranked chunk retrieval."""

import logging
import threading
from dataclasses import dataclass, field

from scroll_rag.chunkstore.base import ChunkStore
from scroll_rag.loaders.chunking import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, split_into_chunks
from scroll_rag.rag.context import assemble_context
from scroll_rag.rag.keywords import extract_keywords
from scroll_rag.rag.types import Chunk, ContextBundle

logger = logging.getLogger(__name__)

NO_MATCH_FALLBACK_LIMIT = 3


@dataclass
class ChunkSynchronizer:
    """Make sure every active document has chunks before retrieval."""
    store: ChunkStore
    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_CHUNK_OVERLAP
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def ensure_chunks_exist(self) -> int:
        """Chunk active documents that have none; return how many were chunked."""
        with self._lock:
            backfilled = 0
            for document in self.store.documents_without_chunks():
                contents = split_into_chunks(document.content, self.chunk_size, self.overlap)
                if not contents:
                    continue
                if self.store.insert_chunks_if_absent(document.doc_id, contents):
                    backfilled += 1
        if backfilled:
            logger.info("chunks_backfilled", extra={"documents": backfilled})
        return backfilled

    def chunk_document(self, document_id: int, content: str) -> int:
        """Chunk a freshly uploaded document; return the number of chunks stored."""
        contents = split_into_chunks(content, self.chunk_size, self.overlap)
        with self._lock:
            if not self.store.insert_chunks_if_absent(document_id, contents):
                return self.store.count_chunks(document_id)
        return len(contents)


@dataclass
class RelevanceRanker:
    """Select chunks for a question by keyword match count."""
    store: ChunkStore
    synchronizer: ChunkSynchronizer

    def find_relevant_chunks(
        self,
        question: str,
        max_chunks: int = 8,
        max_context_tokens: int = 3000,
    ) -> ContextBundle:
        """Return the token-budgeted context and contributing document IDs."""
        selected = self.select_chunks(question, max_chunks)
        bundle = assemble_context(selected, max_context_tokens)
        logger.info(
            "context_assembled",
            extra={
                "chunks": len(selected),
                "documents": len(bundle.document_ids),
                "context_length": len(bundle.text),
            },
        )
        return bundle

    def select_chunks(self, question: str, max_chunks: int = 8) -> list[Chunk]:
        """Rank chunks for a question, falling back to the earliest chunks.

        No keywords at all returns the first ``max_chunks`` chunks. Keywords
        that match nothing return at most ``NO_MATCH_FALLBACK_LIMIT`` chunks.
        """
        self.synchronizer.ensure_chunks_exist()
        keywords = extract_keywords(question)
        if not keywords:
            strategy = "no_keywords"
            selected = self.store.first_chunks(max_chunks)
        else:
            strategy = "keywords"
            selected = [
                item.chunk for item in self.store.query_chunks_by_keywords(keywords, max_chunks)
            ]
            if not selected:
                strategy = "no_match"
                selected = self.store.first_chunks(min(max_chunks, NO_MATCH_FALLBACK_LIMIT))
        logger.info(
            "retrieval_complete",
            extra={"strategy": strategy, "keywords": len(keywords), "results": len(selected)},
        )
        return selected
