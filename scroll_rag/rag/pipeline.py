from __future__ import annotations

"""Answer orchestration: shortcuts, cache, retrieval and completion."""

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field

from scroll_rag.app.metrics import record_answer, record_cache_lookup
from scroll_rag.chunkstore.base import ChunkStore
from scroll_rag.metadata.conversations import ConversationStore
from scroll_rag.rag.cache import ResponseCache
from scroll_rag.rag.guardrails import (
    no_documents_message,
    processing_error_message,
    require_active_documents,
)
from scroll_rag.rag.intents import Intent, detect_intent, quick_reply
from scroll_rag.rag.llm import CompletionClient, CompletionError
from scroll_rag.rag.prompts import (
    CAPABILITY_INSTRUCTIONS,
    DEFAULT_LANGUAGE,
    build_system_prompt,
    localized,
    resolve_language,
)
from scroll_rag.rag.retrieval import RelevanceRanker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerResult:
    """Text returned to the caller plus the documents behind it."""
    response: str
    document_ids: list[int] = field(default_factory=list)
    source: str = "retrieval"
    cached: bool = False

    @property
    def failed(self) -> bool:
        return self.source == "error"


@dataclass
class AnswerService:
    store: ChunkStore
    ranker: RelevanceRanker
    completion: CompletionClient | None
    cache: ResponseCache | None = None
    conversations: ConversationStore | None = None
    max_chunks: int = 8
    max_context_tokens: int = 3000
    capability_max_chunks: int = 12
    capability_max_context_tokens: int = 4500
    completion_timeout: float = 60.0
    default_language: str = DEFAULT_LANGUAGE

    async def answer(
        self,
        question: str,
        language: str | None = None,
        session_id: str | None = None,
        ip_address: str | None = None,
    ) -> AnswerResult:
        """Answer a question; every path returns text and none raises."""
        question = question or ""
        language = resolve_language(language, self.default_language)
        query_hash = hashlib.sha256(question.encode("utf-8")).hexdigest()
        logger.info(
            "query_received",
            extra={
                "query_length": len(question),
                "query_hash": query_hash,
                "language": language,
                "session": bool(session_id),
            },
        )
        if session_id:
            await self._record_user(session_id, language, question, ip_address)

        intent = detect_intent(question)
        reply = quick_reply(intent, language)
        if reply is not None:
            logger.info("quick_reply", extra={"intent": intent.value})
            self._cache_put(question, language, reply)
            result = AnswerResult(response=reply, source="quick_reply")
            return await self._finish(result, session_id, language)

        cached = self._cache_get(question, language)
        if cached is not None:
            result = AnswerResult(response=cached, source="cache", cached=True)
            return await self._finish(result, session_id, language)

        try:
            result = await self._answer_from_documents(question, language, intent)
        except Exception:
            logger.exception("answer_failed", extra={"query_hash": query_hash})
            result = AnswerResult(response=processing_error_message(language), source="error")
        return await self._finish(result, session_id, language)

    async def _answer_from_documents(
        self, question: str, language: str, intent: Intent
    ) -> AnswerResult:
        active_count = await asyncio.to_thread(self.store.count_active_documents)
        guardrail = require_active_documents(active_count)
        if not guardrail.allowed:
            logger.info("answer_refused", extra={"reason": guardrail.reason})
            return AnswerResult(response=no_documents_message(language), source=guardrail.reason)

        if intent is Intent.CAPABILITIES:
            source = "capabilities"
            bundle = await asyncio.to_thread(
                self.ranker.find_relevant_chunks,
                "",
                self.capability_max_chunks,
                self.capability_max_context_tokens,
            )
            user_message = localized(CAPABILITY_INSTRUCTIONS, language)
        else:
            source = "retrieval"
            bundle = await asyncio.to_thread(
                self.ranker.find_relevant_chunks,
                question,
                self.max_chunks,
                self.max_context_tokens,
            )
            user_message = question

        system_prompt = build_system_prompt(bundle.text, language)
        try:
            response = await self._complete(system_prompt, user_message)
        except (CompletionError, asyncio.TimeoutError) as exc:
            logger.error(
                "completion_failed",
                extra={"detail": type(exc).__name__, "error": str(exc)},
            )
            return AnswerResult(response=processing_error_message(language), source="error")
        self._cache_put(question, language, response)
        return AnswerResult(response=response, document_ids=bundle.document_ids, source=source)

    async def _complete(self, system_prompt: str, user_message: str) -> str:
        if self.completion is None:
            raise CompletionError("No completion service configured")
        return await asyncio.wait_for(
            self.completion.complete(system_prompt, user_message),
            timeout=self.completion_timeout,
        )

    async def _finish(
        self, result: AnswerResult, session_id: str | None, language: str
    ) -> AnswerResult:
        """Record the bot reply and emit completion telemetry."""
        if session_id and not result.failed:
            await self._record_bot(session_id, language, result.response, result.document_ids)
        record_answer(result.source)
        logger.info(
            "query_completed",
            extra={
                "source": result.source,
                "cached": result.cached,
                "answer_length": len(result.response),
                "documents": result.document_ids,
            },
        )
        return result

    def _cache_get(self, question: str, language: str) -> str | None:
        if self.cache is None:
            return None
        try:
            answer = self.cache.get(question, language)
        except Exception:
            logger.exception("cache_lookup_failed")
            return None
        record_cache_lookup(answer is not None)
        if answer is not None:
            logger.info("cache_hit", extra={"language": language})
        return answer

    def _cache_put(self, question: str, language: str, answer: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.put(question, language, answer)
        except Exception:
            logger.exception("cache_store_failed")

    async def _record_user(
        self, session_id: str, language: str, question: str, ip_address: str | None
    ) -> None:
        if self.conversations is None:
            return
        try:
            await asyncio.to_thread(
                self.conversations.record_user_message, session_id, language, question, ip_address
            )
        except Exception:
            logger.exception("conversation_record_failed", extra={"role": "user"})

    async def _record_bot(
        self, session_id: str, language: str, response: str, document_ids: list[int]
    ) -> None:
        if self.conversations is None:
            return
        try:
            await asyncio.to_thread(
                self.conversations.record_bot_message, session_id, language, response, document_ids
            )
        except Exception:
            logger.exception("conversation_record_failed", extra={"role": "bot"})
