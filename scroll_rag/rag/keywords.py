from __future__ import annotations

"""Question normalization and keyword extraction."""

import re

_NON_WORD_RE = re.compile(r"[^\w\s]")
_MIN_TOKEN_LENGTH = 3

STOP_WORDS = frozenset(
    {
        # question words, pronouns and connectives
        "что", "как", "где", "когда", "какой", "какая", "какие", "это", "для", "при",
        "или", "если", "также", "может", "будет", "была", "было", "быть", "они",
        "его", "она", "оно", "мне", "вас", "вам", "нас", "нам", "них", "ним",
        # domain filler
        "покажи", "покажите", "выглядит", "картинка", "изображение", "фото",
        "знак", "знаки", "разметка", "разметки",
        # english counterparts
        "what", "how", "where", "when", "which", "who", "this", "that", "for",
        "the", "and", "are", "you", "can", "does", "show", "picture", "image",
        "photo", "sign", "signs", "marking", "markings", "look", "looks",
    }
)


def normalize_text(text: str) -> str:
    """Lowercase text and blank out everything except word characters."""
    return _NON_WORD_RE.sub(" ", text.lower())


def extract_keywords(text: str) -> set[str]:
    """Return the deduplicated, stop-word-filtered keyword set of a question.

    An empty set means the question carries no lexical signal and callers
    should fall back to unranked retrieval.
    """
    if not text:
        return set()
    return {
        token
        for token in normalize_text(text).split()
        if len(token) >= _MIN_TOKEN_LENGTH and token not in STOP_WORDS
    }
