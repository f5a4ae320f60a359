from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str | None = None
    language: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")

    model_config = {"populate_by_name": True}


class ChatResponse(BaseModel):
    response: str
    document_ids: list[int] = Field(default_factory=list)
    source: str
    cached: bool = False
    request_id: str


class DocumentCreateRequest(BaseModel):
    content: str = Field(min_length=1)
    original_name: str = ""
    category_id: int | None = None
    subtopic_ids: list[int] = Field(default_factory=list)
    is_active: bool = True


class DocumentUpdateRequest(BaseModel):
    is_active: bool


class DocumentResponse(BaseModel):
    id: int
    original_name: str
    category_id: int | None
    subtopic_ids: list[int]
    is_active: bool
    created_at: datetime
    chunk_count: int


class DeleteResponse(BaseModel):
    deleted: int


class StatsResponse(BaseModel):
    backend: str
    document_count: int
    active_document_count: int
    chunk_count: int
    cache_entries: int
    cache_hits: int = 0
    cache_misses: int = 0
    cache_expired: int = 0
    cache_evicted: int = 0


class ChatExchangeResponse(BaseModel):
    id: int
    session_id: str
    language: str
    question: str
    answer: str
    created_at: datetime
    document_ids: list[int] = Field(default_factory=list)
    ip_address: str | None = None


class ChatMessageResponse(BaseModel):
    id: int | None
    role: str
    language: str
    message: str
    created_at: datetime | None
    document_ids: list[int] = Field(default_factory=list)
