from __future__ import annotations

"""End-to-end answer orchestration tests with a stubbed completion service."""

import asyncio

import pytest

from scroll_rag.chunkstore.inmemory import InMemoryChunkStore
from scroll_rag.metadata.conversations import ConversationStore
from scroll_rag.rag.cache import ResponseCache
from scroll_rag.rag.guardrails import NO_DOCUMENTS_MESSAGES, PROCESSING_ERROR_MESSAGES
from scroll_rag.rag.llm import CompletionError
from scroll_rag.rag.pipeline import AnswerService
from scroll_rag.rag.prompts import CAPABILITY_INSTRUCTIONS, GREETING_REPLIES, IDENTITY_REPLIES
from scroll_rag.rag.retrieval import ChunkSynchronizer, RelevanceRanker
from scroll_rag.tests.fakes import FakeCompletion

pytestmark = pytest.mark.anyio


class UntouchableStore:
    """Store stand-in that fails the test on any access."""

    def __getattr__(self, name: str):
        raise AssertionError(f"chunk store accessed: {name}")


class BrokenCache:
    def get(self, question: str, language: str) -> str | None:
        raise RuntimeError("cache offline")

    def put(self, question: str, language: str, answer: str) -> None:
        raise RuntimeError("cache offline")


class SlowCompletion:
    async def complete(self, system_prompt: str, user_message: str) -> str:
        await asyncio.sleep(5)
        return "too late"


def build_service(store, completion, cache=None, **kwargs) -> AnswerService:
    ranker = RelevanceRanker(store=store, synchronizer=ChunkSynchronizer(store=store))
    return AnswerService(
        store=store,
        ranker=ranker,
        completion=completion,
        cache=cache if cache is not None else ResponseCache(),
        **kwargs,
    )


async def test_greeting_never_touches_chunk_store() -> None:
    completion = FakeCompletion()
    service = build_service(UntouchableStore(), completion)

    result = await service.answer("Привет", language="ru")

    assert result.response == GREETING_REPLIES["ru"]
    assert result.source == "quick_reply"
    assert result.document_ids == []
    assert completion.calls == []


async def test_identity_question_answers_in_kazakh() -> None:
    service = build_service(UntouchableStore(), FakeCompletion())

    result = await service.answer("Сен кімсің?", language="kz")

    assert result.response == IDENTITY_REPLIES["kz"]


async def test_no_active_documents_skips_completion(store: InMemoryChunkStore) -> None:
    completion = FakeCompletion()
    store.add_document("Hidden rules.", is_active=False)
    service = build_service(store, completion)

    result = await service.answer("What are the rules?", language="kz")

    assert result.response == NO_DOCUMENTS_MESSAGES["kz"]
    assert result.source == "no_documents"
    assert completion.calls == []


async def test_retrieval_answer_uses_context_and_reports_documents(
    store: InMemoryChunkStore,
) -> None:
    store.add_document("Weather forecast archive.")
    store.add_document("Traffic stop procedure: the officer approaches the vehicle.")
    completion = FakeCompletion(reply="The officer approaches the vehicle.")
    service = build_service(store, completion)

    result = await service.answer("Describe the traffic stop procedure", language="ru")

    assert result.response == "The officer approaches the vehicle."
    assert result.source == "retrieval"
    assert result.document_ids == [2]
    system_prompt, user_message = completion.calls[0]
    assert "Traffic stop procedure" in system_prompt
    assert "Weather" not in system_prompt
    assert user_message == "Describe the traffic stop procedure"


async def test_capability_question_summarizes_topics(store: InMemoryChunkStore) -> None:
    for idx in range(15):
        store.add_document(f"Topic {idx}: rules for lane {idx}.")
    completion = FakeCompletion(reply="Lane rules.")
    service = build_service(store, completion)

    result = await service.answer("Что ты умеешь?", language="ru")

    assert result.source == "capabilities"
    assert result.document_ids == list(range(1, 13))
    system_prompt, user_message = completion.calls[0]
    assert user_message == CAPABILITY_INSTRUCTIONS["ru"]
    assert "Topic 11:" in system_prompt
    assert "Topic 12:" not in system_prompt


async def test_long_answer_is_served_from_cache(store: InMemoryChunkStore) -> None:
    store.add_document("Traffic stop procedure: the officer approaches the vehicle.")
    long_answer = "Ответ " * 2000
    completion = FakeCompletion(reply=long_answer)
    service = build_service(store, completion)

    first = await service.answer("Traffic stop procedure?", language="ru")
    second = await service.answer("  traffic STOP procedure?  ", language="ru")

    assert len(first.response) == 12000
    assert second.response == first.response
    assert second.cached is True
    assert second.source == "cache"
    assert len(completion.calls) == 1


async def test_completion_failure_returns_error_and_skips_cache(
    store: InMemoryChunkStore,
) -> None:
    store.add_document("Traffic stop procedure.")
    completion = FakeCompletion(error=CompletionError("boom"))
    service = build_service(store, completion)

    first = await service.answer("traffic stop", language="kz")
    second = await service.answer("traffic stop", language="kz")

    assert first.response == PROCESSING_ERROR_MESSAGES["kz"]
    assert first.failed
    assert second.failed
    assert len(completion.calls) == 2


async def test_completion_timeout_degrades_to_error(store: InMemoryChunkStore) -> None:
    store.add_document("Traffic stop procedure.")
    service = build_service(store, SlowCompletion(), completion_timeout=0.05)

    result = await service.answer("traffic stop", language="ru")

    assert result.response == PROCESSING_ERROR_MESSAGES["ru"]


async def test_missing_completion_client_degrades_to_error(store: InMemoryChunkStore) -> None:
    store.add_document("Traffic stop procedure.")
    service = build_service(store, None)

    result = await service.answer("traffic stop", language="ru")

    assert result.failed


async def test_broken_cache_does_not_block_answers(store: InMemoryChunkStore) -> None:
    store.add_document("Traffic stop procedure.")
    completion = FakeCompletion(reply="Answer.")
    service = build_service(store, completion, cache=BrokenCache())

    result = await service.answer("traffic stop", language="ru")

    assert result.response == "Answer."


async def test_empty_question_uses_unranked_fallback(store: InMemoryChunkStore) -> None:
    store.add_document("First topic.")
    store.add_document("Second topic.")
    completion = FakeCompletion(reply="Answer.")
    service = build_service(store, completion)

    result = await service.answer("", language="ru")

    assert result.document_ids == [1, 2]


async def test_questions_and_answers_are_logged(store: InMemoryChunkStore, tmp_path) -> None:
    conversations = ConversationStore(f"sqlite:///{tmp_path / 'chat.db'}")
    store.add_document("Traffic stop procedure.")
    service = build_service(
        store,
        FakeCompletion(error=CompletionError("down")),
        conversations=conversations,
    )

    await service.answer("Привет", language="ru", session_id="s-1", ip_address="1.2.3.4")
    await service.answer("traffic stop", language="ru", session_id="s-1")

    messages = conversations.list_messages("s-1")
    assert [(msg.role, msg.message) for msg in messages] == [
        ("user", "Привет"),
        ("bot", GREETING_REPLIES["ru"]),
        ("user", "traffic stop"),
    ]


async def test_missing_language_uses_configured_default() -> None:
    service = build_service(UntouchableStore(), FakeCompletion(), default_language="kz")

    result = await service.answer("Сәлем")

    assert result.response == GREETING_REPLIES["kz"]
