from __future__ import annotations

from dataclasses import dataclass

from scroll_rag.rag.prompts import localized

NO_DOCUMENTS_MESSAGES = {
    "ru": "К сожалению, я не могу ответить на ваш вопрос в данный момент. Попробуйте позже.",
    "kz": "Кешіріңіз, мен қазір сұраққа жауап бере алмаймын. Кейінірек көріңіз.",
}

PROCESSING_ERROR_MESSAGES = {
    "ru": "Ошибка обработки запроса.",
    "kz": "Сұрау өңдеу қатесі.",
}


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    reason: str


def require_active_documents(active_count: int) -> GuardrailResult:
    if active_count <= 0:
        return GuardrailResult(allowed=False, reason="no_documents")
    return GuardrailResult(allowed=True, reason="ok")


def no_documents_message(language: str) -> str:
    return localized(NO_DOCUMENTS_MESSAGES, language)


def processing_error_message(language: str) -> str:
    return localized(PROCESSING_ERROR_MESSAGES, language)
