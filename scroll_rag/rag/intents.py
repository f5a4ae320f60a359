from __future__ import annotations

"""Detection of conversational shortcuts that bypass or reshape retrieval."""

import enum
import re

from scroll_rag.rag.prompts import GREETING_REPLIES, IDENTITY_REPLIES, localized

_WHITESPACE_RE = re.compile(r"\s+")

GREETINGS = (
    "привет",
    "здравствуй",
    "здравствуйте",
    "добрый день",
    "добрый вечер",
    "доброе утро",
    "хай",
    "здарова",
    "приветствую",
    "салам",
    "сәлем",
    "сәлеметсіз бе",
    "салем",
    "hello",
    "hi",
)

# A greeting counts when it opens the message and is followed by a non-word character.
_GREETING_RE = re.compile(
    "(?:" + "|".join(re.escape(greeting) for greeting in GREETINGS) + r")(?:\W|$)"
)

IDENTITY_PATTERNS = (
    "кто ты",
    "ты кто",
    "кто вы",
    "вы кто",
    "что за бот",
    "кто такой",
    "представься",
    "сен кімсің",
    "кімсің",
    "сіз кімсіз",
    "бот кім",
    "таныстыр",
    "who are you",
)

CAPABILITY_PATTERNS = (
    "что умеешь",
    "что ты умеешь",
    "на что можешь ответить",
    "чем можешь помочь",
    "твои возможности",
    "что можешь",
    "какие вопросы",
    "на что отвечаешь",
    "не істей аласың",
    "неге жауап бере аласың",
    "мүмкіндіктерің",
    "қандай сұрақтар",
    "what can you",
)


class Intent(str, enum.Enum):
    GREETING = "greeting"
    IDENTITY = "identity"
    CAPABILITIES = "capabilities"
    NONE = "none"


def normalize_question(text: str) -> str:
    """Trim, lowercase and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", text.lower()).strip()


def is_greeting(text: str) -> bool:
    return _GREETING_RE.match(normalize_question(text)) is not None


def is_identity_question(text: str) -> bool:
    normalized = normalize_question(text)
    return any(
        pattern in normalized or normalized == pattern.replace(" ", "")
        for pattern in IDENTITY_PATTERNS
    )


def is_capability_question(text: str) -> bool:
    normalized = normalize_question(text)
    return any(pattern in normalized for pattern in CAPABILITY_PATTERNS)


def detect_intent(text: str) -> Intent:
    """Classify a raw question; greeting wins over identity over capabilities."""
    if not text or not text.strip():
        return Intent.NONE
    if is_greeting(text):
        return Intent.GREETING
    if is_identity_question(text):
        return Intent.IDENTITY
    if is_capability_question(text):
        return Intent.CAPABILITIES
    return Intent.NONE


def quick_reply(intent: Intent, language: str) -> str | None:
    """Return the canned answer for shortcut intents, else None."""
    if intent is Intent.GREETING:
        return localized(GREETING_REPLIES, language)
    if intent is Intent.IDENTITY:
        return localized(IDENTITY_REPLIES, language)
    return None
