from __future__ import annotations

"""Paragraph-aligned chunking with word overlap."""

import re

_PARAGRAPH_RE = re.compile(r"\n\n+")
_PARAGRAPH_JOINER = "\n\n"

DEFAULT_CHUNK_SIZE = 2000
DEFAULT_CHUNK_OVERLAP = 200


def overlap_word_count(overlap: int) -> int:
    """Approximate how many words fit in ``overlap`` characters."""
    # Five characters per word is a rough heuristic, not a measured ratio.
    return max(0, overlap // 5)


def split_into_chunks(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into chunks aligned on blank-line paragraph boundaries.

    Paragraphs are accumulated until the next one would push the buffer past
    ``chunk_size``. The buffer is then emitted and the next buffer starts with
    the trailing words of the emitted one. A paragraph longer than
    ``chunk_size`` is never split.
    """
    if not text:
        return []
    carry = overlap_word_count(overlap)
    chunks: list[str] = []
    current = ""
    for paragraph in _PARAGRAPH_RE.split(text):
        if current and len(current) + len(paragraph) > chunk_size:
            chunks.append(current.strip())
            tail = current.split(" ")[-carry:] if carry else []
            if tail:
                current = " ".join(tail) + _PARAGRAPH_JOINER + paragraph
            else:
                current = paragraph
        else:
            current += (_PARAGRAPH_JOINER if current else "") + paragraph
    if current.strip():
        chunks.append(current.strip())
    return chunks
