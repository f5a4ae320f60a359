from __future__ import annotations

"""FastAPI application entrypoint for the document-grounded assistant."""

import asyncio
import logging
import uuid

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from scroll_rag.app.dependencies import (
    get_answer_service,
    get_cache,
    get_conversation_store,
    get_store,
    get_synchronizer,
)
from scroll_rag.app.metrics import metrics_middleware, metrics_response
from scroll_rag.app.schemas import (
    ChatExchangeResponse,
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
    DeleteResponse,
    DocumentCreateRequest,
    DocumentResponse,
    DocumentUpdateRequest,
    StatsResponse,
)
from scroll_rag.app.settings import settings
from scroll_rag.chunkstore.base import DocumentNotFoundError
from scroll_rag.metadata.conversations import DEFAULT_HISTORY_LIMIT
from scroll_rag.rag.types import Document

logger = logging.getLogger(__name__)

app = FastAPI(title="Scroll RAG", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _client_ip(request: Request) -> str:
    """Resolve the caller IP, preferring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return "unknown"


def _document_response(document: Document, chunk_count: int) -> DocumentResponse:
    return DocumentResponse(
        id=document.doc_id,
        original_name=document.original_name,
        category_id=document.category_id,
        subtopic_ids=list(document.subtopic_ids),
        is_active=document.is_active,
        created_at=document.created_at,
        chunk_count=chunk_count,
    )


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def stats() -> StatsResponse:
    """Return chunk store and cache sizes."""
    store_stats = await asyncio.to_thread(get_store().stats)
    cache_stats = get_cache().snapshot()
    return StatsResponse(
        **store_stats,
        cache_entries=cache_stats["entries"],
        cache_hits=cache_stats["hits"],
        cache_misses=cache_stats["misses"],
        cache_expired=cache_stats["expired"],
        cache_evicted=cache_stats["evicted"],
    )


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Answer a question from the uploaded documents."""
    request_id = getattr(http_request.state, "request_id", str(uuid.uuid4()))
    service = get_answer_service()
    result = await service.answer(
        request.message or "",
        language=request.language,
        session_id=request.session_id,
        ip_address=_client_ip(http_request),
    )
    response = ChatResponse(
        response=result.response,
        document_ids=result.document_ids,
        source=result.source,
        cached=result.cached,
        request_id=request_id,
    )
    if result.failed:
        return JSONResponse(status_code=500, content=response.model_dump())
    return response


@app.get("/documents", response_model=list[DocumentResponse])
async def list_documents() -> list[DocumentResponse]:
    """List documents with their chunk counts."""
    store = get_store()

    def _collect() -> list[DocumentResponse]:
        return [
            _document_response(document, store.count_chunks(document.doc_id))
            for document in store.list_documents()
        ]

    return await asyncio.to_thread(_collect)


@app.post("/documents", response_model=DocumentResponse)
async def create_document(request: DocumentCreateRequest) -> DocumentResponse:
    """Store raw document text and chunk it right away."""
    store = get_store()
    synchronizer = get_synchronizer()
    document = await asyncio.to_thread(
        store.add_document,
        request.content,
        request.original_name,
        request.category_id,
        request.subtopic_ids,
        request.is_active,
    )
    chunk_count = await asyncio.to_thread(
        synchronizer.chunk_document, document.doc_id, document.content
    )
    logger.info(
        "document_ingested",
        extra={
            "document_id": document.doc_id,
            "content_length": len(document.content),
            "chunk_count": chunk_count,
        },
    )
    return _document_response(document, chunk_count)


@app.patch("/documents/{document_id}", response_model=DocumentResponse)
async def update_document(document_id: int, request: DocumentUpdateRequest) -> DocumentResponse:
    """Toggle whether a document is visible to retrieval."""
    store = get_store()
    try:
        document = await asyncio.to_thread(store.set_active, document_id, request.is_active)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    chunk_count = await asyncio.to_thread(store.count_chunks, document_id)
    return _document_response(document, chunk_count)


@app.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(document_id: int) -> DeleteResponse:
    """Delete a document and its chunks."""
    store = get_store()
    try:
        await asyncio.to_thread(store.delete_document, document_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    logger.info("document_deleted", extra={"document_id": document_id})
    return DeleteResponse(deleted=1)


@app.delete("/cache", response_model=DeleteResponse)
async def clear_cache() -> DeleteResponse:
    """Drop every cached answer."""
    return DeleteResponse(deleted=get_cache().clear())


@app.get("/messages", response_model=list[ChatExchangeResponse])
async def list_exchanges(
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=500),
) -> list[ChatExchangeResponse]:
    """Recent question and answer pairs, newest first."""
    conversations = get_conversation_store()
    if conversations is None:
        return []
    exchanges = await asyncio.to_thread(conversations.list_exchanges, limit)
    return [
        ChatExchangeResponse(
            id=exchange.exchange_id,
            session_id=exchange.session_id,
            language=exchange.language,
            question=exchange.question,
            answer=exchange.answer,
            created_at=exchange.created_at,
            document_ids=exchange.document_ids,
            ip_address=exchange.ip_address,
        )
        for exchange in exchanges
    ]


@app.get("/messages/{session_id}", response_model=list[ChatMessageResponse])
async def list_session_messages(session_id: str) -> list[ChatMessageResponse]:
    """Full transcript of one chat session."""
    conversations = get_conversation_store()
    if conversations is None:
        return []
    messages = await asyncio.to_thread(conversations.list_messages, session_id)
    return [
        ChatMessageResponse(
            id=message.message_id,
            role=message.role,
            language=message.language,
            message=message.message,
            created_at=message.created_at,
            document_ids=message.document_ids,
        )
        for message in messages
    ]


@app.delete("/messages", response_model=DeleteResponse)
async def clear_messages() -> DeleteResponse:
    """Delete the stored chat history."""
    conversations = get_conversation_store()
    if conversations is None:
        return DeleteResponse(deleted=0)
    deleted = await asyncio.to_thread(conversations.clear_messages)
    logger.info("messages_cleared", extra={"deleted": deleted})
    return DeleteResponse(deleted=deleted)
