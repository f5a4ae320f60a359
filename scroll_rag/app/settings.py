from __future__ import annotations

import os
from dataclasses import dataclass

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional in minimal setups
    load_dotenv = None

if load_dotenv is not None:
    load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("RAG_LOG_LEVEL", "INFO")
    store_backend_raw: str = os.getenv("RAG_STORE", "memory")
    database_uri_raw: str = os.getenv("RAG_DATABASE_URI", "")
    conversation_db_uri_raw: str = os.getenv("RAG_CONVERSATION_DB_URI", "")
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "2000"))
    chunk_overlap: int = int(os.getenv("RAG_CHUNK_OVERLAP", "200"))
    max_chunks: int = int(os.getenv("RAG_MAX_CHUNKS", "8"))
    max_context_tokens: int = int(os.getenv("RAG_MAX_CONTEXT_TOKENS", "3000"))
    capability_max_chunks: int = int(os.getenv("RAG_CAPABILITY_MAX_CHUNKS", "12"))
    capability_max_context_tokens: int = int(os.getenv("RAG_CAPABILITY_MAX_CONTEXT_TOKENS", "4500"))
    cache_ttl_seconds: float = float(os.getenv("RAG_CACHE_TTL_SECONDS", "300"))
    cache_capacity: int = int(os.getenv("RAG_CACHE_CAPACITY", "100"))
    cache_evict_batch: int = int(os.getenv("RAG_CACHE_EVICT_BATCH", "20"))
    default_language: str = os.getenv("RAG_DEFAULT_LANGUAGE", "ru")
    llm_provider_raw: str = os.getenv("RAG_LLM_PROVIDER", "openai")
    openai_api_key_raw: str = os.getenv("OPENAI_API_KEY", "")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_chat_model: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1")
    llm_temperature: float = float(os.getenv("RAG_LLM_TEMPERATURE", "0.3"))
    llm_max_tokens: int = int(os.getenv("RAG_LLM_MAX_TOKENS", "700"))
    llm_presence_penalty: float = float(os.getenv("RAG_LLM_PRESENCE_PENALTY", "0.1"))
    llm_frequency_penalty: float = float(os.getenv("RAG_LLM_FREQUENCY_PENALTY", "0.1"))
    llm_timeout: float = float(os.getenv("RAG_LLM_TIMEOUT", "60"))
    metrics_enabled_raw: str = os.getenv("RAG_METRICS_ENABLED", "true")

    @property
    def store_backend(self) -> str:
        return os.getenv("RAG_STORE", self.store_backend_raw).strip().lower()

    @property
    def database_uri(self) -> str:
        return os.getenv("RAG_DATABASE_URI", self.database_uri_raw).strip()

    @property
    def conversation_db_uri(self) -> str:
        return os.getenv("RAG_CONVERSATION_DB_URI", self.conversation_db_uri_raw).strip()

    @property
    def llm_provider(self) -> str:
        return os.getenv("RAG_LLM_PROVIDER", self.llm_provider_raw).strip().lower()

    @property
    def openai_api_key(self) -> str | None:
        return os.getenv("OPENAI_API_KEY", self.openai_api_key_raw) or None

    @property
    def metrics_enabled(self) -> bool:
        return _env_flag("RAG_METRICS_ENABLED", self.metrics_enabled_raw)


settings = Settings()
