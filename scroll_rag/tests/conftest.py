from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["RAG_STORE"] = "memory"
os.environ["RAG_LLM_PROVIDER"] = "ollama"
os.environ.pop("RAG_DATABASE_URI", None)
os.environ.pop("RAG_CONVERSATION_DB_URI", None)
os.environ.pop("OPENAI_API_KEY", None)

from scroll_rag.chunkstore.inmemory import InMemoryChunkStore  # noqa: E402
from scroll_rag.rag.retrieval import ChunkSynchronizer, RelevanceRanker  # noqa: E402


@pytest.fixture
def store() -> InMemoryChunkStore:
    return InMemoryChunkStore()


@pytest.fixture
def ranker(store: InMemoryChunkStore) -> RelevanceRanker:
    return RelevanceRanker(store=store, synchronizer=ChunkSynchronizer(store=store))


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"
