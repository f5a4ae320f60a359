from __future__ import annotations

"""Context assembly and token budgeting."""

import math
from typing import Iterable

from scroll_rag.rag.types import Chunk, ContextBundle

CHARS_PER_TOKEN = 3.5
SAFETY_FACTOR = 0.9
CHUNK_SEPARATOR = "\n\n---\n\n"


def estimate_tokens(text: str) -> int:
    """Estimate token count from character length."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Cut text to roughly ``max_tokens`` tokens, keeping the prefix."""
    estimated = estimate_tokens(text)
    if estimated <= max_tokens:
        return text
    ratio = max(0, max_tokens) / estimated
    max_chars = math.floor(len(text) * ratio * SAFETY_FACTOR)
    return text[:max_chars]


def unique_document_ids(chunks: Iterable[Chunk]) -> list[int]:
    """Return document IDs in order of first appearance."""
    seen: dict[int, None] = {}
    for chunk in chunks:
        seen.setdefault(chunk.document_id, None)
    return list(seen)


def assemble_context(chunks: list[Chunk], max_tokens: int) -> ContextBundle:
    """Join chunk contents and fit them into the token budget."""
    text = CHUNK_SEPARATOR.join(chunk.content for chunk in chunks)
    return ContextBundle(
        text=truncate_to_tokens(text, max_tokens),
        document_ids=unique_document_ids(chunks),
    )
