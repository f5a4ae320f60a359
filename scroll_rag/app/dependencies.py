from __future__ import annotations

import logging
from functools import lru_cache

from scroll_rag.app.settings import settings
from scroll_rag.chunkstore.base import ChunkStore, ChunkStoreError
from scroll_rag.chunkstore.inmemory import InMemoryChunkStore
from scroll_rag.chunkstore.sql import SQLChunkStore
from scroll_rag.metadata.conversations import ConversationStore
from scroll_rag.rag.cache import ResponseCache
from scroll_rag.rag.llm import CompletionClient, CompletionError, build_completion_client
from scroll_rag.rag.pipeline import AnswerService
from scroll_rag.rag.retrieval import ChunkSynchronizer, RelevanceRanker

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> ChunkStore:
    backend = settings.store_backend
    if backend == "sql":
        if not settings.database_uri:
            raise ChunkStoreError("RAG_DATABASE_URI is required for the SQL chunk store")
        return SQLChunkStore(settings.database_uri)
    if backend == "memory":
        return InMemoryChunkStore()
    raise ChunkStoreError(f"Unsupported chunk store backend: {backend}")


@lru_cache
def get_cache() -> ResponseCache:
    return ResponseCache(
        ttl_seconds=settings.cache_ttl_seconds,
        capacity=settings.cache_capacity,
        evict_batch=settings.cache_evict_batch,
    )


@lru_cache
def get_conversation_store() -> ConversationStore | None:
    if not settings.conversation_db_uri:
        return None
    return ConversationStore(settings.conversation_db_uri)


@lru_cache
def get_synchronizer() -> ChunkSynchronizer:
    return ChunkSynchronizer(
        store=get_store(),
        chunk_size=settings.chunk_size,
        overlap=settings.chunk_overlap,
    )


def build_completion() -> CompletionClient | None:
    try:
        return build_completion_client(
            settings.llm_provider,
            api_key_openai=settings.openai_api_key,
            openai_base_url=settings.openai_base_url,
            openai_model=settings.openai_chat_model,
            ollama_base_url=settings.ollama_base_url,
            ollama_model=settings.ollama_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout,
            presence_penalty=settings.llm_presence_penalty,
            frequency_penalty=settings.llm_frequency_penalty,
        )
    except CompletionError as exc:
        logger.warning("completion_client_unavailable", extra={"detail": str(exc)})
        return None


@lru_cache
def get_answer_service() -> AnswerService:
    store = get_store()
    return AnswerService(
        store=store,
        ranker=RelevanceRanker(store=store, synchronizer=get_synchronizer()),
        completion=build_completion(),
        cache=get_cache(),
        conversations=get_conversation_store(),
        max_chunks=settings.max_chunks,
        max_context_tokens=settings.max_context_tokens,
        capability_max_chunks=settings.capability_max_chunks,
        capability_max_context_tokens=settings.capability_max_context_tokens,
        completion_timeout=settings.llm_timeout,
        default_language=settings.default_language,
    )


def reset_service_cache() -> None:
    get_answer_service.cache_clear()
    get_synchronizer.cache_clear()
    get_conversation_store.cache_clear()
    get_cache.cache_clear()
    get_store.cache_clear()
