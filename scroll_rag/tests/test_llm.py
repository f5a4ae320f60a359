from __future__ import annotations

import json

import httpx
import pytest

from scroll_rag.rag.llm import (
    CompletionError,
    OllamaCompletion,
    OpenAICompletion,
    build_completion_client,
)

pytestmark = pytest.mark.anyio


def _openai(handler) -> OpenAICompletion:
    return OpenAICompletion(
        api_key="sk-test",
        base_url="http://llm.test/v1",
        model="gpt-4o-mini",
        temperature=0.3,
        max_tokens=700,
        timeout=5,
        presence_penalty=0.1,
        frequency_penalty=0.1,
        transport=httpx.MockTransport(handler),
    )


async def test_openai_completion_sends_prompt_and_returns_text() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": " Ответ. "}}]})

    text = await _openai(handler).complete("system prompt", "вопрос")

    assert text == "Ответ."
    assert seen["url"] == "http://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    body = seen["body"]
    assert body["messages"] == [
        {"role": "system", "content": "system prompt"},
        {"role": "user", "content": "вопрос"},
    ]
    assert body["max_tokens"] == 700
    assert body["presence_penalty"] == 0.1


async def test_openai_http_errors_become_completion_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "overloaded"})

    with pytest.raises(CompletionError):
        await _openai(handler).complete("s", "u")


async def test_openai_timeout_becomes_completion_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(CompletionError):
        await _openai(handler).complete("s", "u")


async def test_empty_completion_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "  "}}]})

    with pytest.raises(CompletionError):
        await _openai(handler).complete("s", "u")


async def test_ollama_completion_reads_message_content() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        assert payload["stream"] is False
        assert payload["options"]["num_predict"] == 128
        return httpx.Response(200, json={"message": {"content": "Жауап."}})

    client = OllamaCompletion(
        base_url="http://ollama.test",
        model="llama3.1",
        temperature=0.3,
        max_tokens=128,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )

    assert await client.complete("s", "u") == "Жауап."


def test_factory_requires_openai_key() -> None:
    with pytest.raises(CompletionError):
        build_completion_client(
            "openai",
            api_key_openai=None,
            openai_base_url="https://api.openai.com/v1",
            openai_model="gpt-4o-mini",
            ollama_base_url="http://localhost:11434",
            ollama_model="llama3.1",
            temperature=0.3,
            max_tokens=700,
            timeout=60,
        )
