from __future__ import annotations

"""Chat completion clients for the external answer service."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class CompletionError(RuntimeError):
    """Raised when completion requests fail or responses are invalid."""
    pass


class CompletionClient(Protocol):
    """Protocol for completion services."""

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Return the model's reply to a system prompt and user message."""
        raise NotImplementedError


def _messages(system_prompt: str, user_message: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ]


def _require_text(content: object, provider: str) -> str:
    """Validate that a completion payload carried a non-empty string."""
    if not isinstance(content, str):
        raise CompletionError(f"Invalid {provider} response content")
    if not content.strip():
        raise CompletionError(f"Empty {provider} completion")
    return content.strip()


@dataclass(frozen=True)
class OpenAICompletion:
    """Completion client backed by OpenAI chat completions."""
    api_key: str
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    transport: httpx.AsyncBaseTransport | None = None

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Request a single chat completion."""
        payload = {
            "model": self.model,
            "messages": _messages(system_prompt, user_message),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise CompletionError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise CompletionError("OpenAI response is not valid JSON") from exc

        choices = data.get("choices") or []
        if not choices:
            raise CompletionError("Invalid OpenAI response")
        message = choices[0].get("message") or {}
        return _require_text(message.get("content"), "OpenAI")


@dataclass(frozen=True)
class OllamaCompletion:
    """Completion client backed by the Ollama chat API."""
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = None

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Request a non-streaming chat reply."""
        payload = {
            "model": self.model,
            "messages": _messages(system_prompt, user_message),
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise CompletionError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise CompletionError("Ollama response is not valid JSON") from exc
        message = data.get("message") or {}
        return _require_text(message.get("content"), "Ollama")


def build_completion_client(
    provider: str,
    *,
    api_key_openai: str | None,
    openai_base_url: str,
    openai_model: str | None,
    ollama_base_url: str,
    ollama_model: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
    presence_penalty: float = 0.0,
    frequency_penalty: float = 0.0,
) -> OpenAICompletion | OllamaCompletion:
    """Factory for completion clients based on provider."""
    normalized = provider.strip().lower()
    if normalized == "openai":
        if not api_key_openai:
            raise CompletionError("OPENAI_API_KEY is required for OpenAI provider")
        if not openai_model:
            raise CompletionError("OPENAI_CHAT_MODEL is required for OpenAI provider")
        return OpenAICompletion(
            api_key=api_key_openai,
            base_url=openai_base_url.rstrip("/"),
            model=openai_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            presence_penalty=presence_penalty,
            frequency_penalty=frequency_penalty,
        )
    if normalized == "ollama":
        return OllamaCompletion(
            base_url=ollama_base_url.rstrip("/"),
            model=ollama_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    raise CompletionError(f"Unsupported completion provider: {provider}")
