from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

from scroll_rag.metadata.conversations import ChatMessage, ConversationStore, pair_exchanges


class StepClock:
    """Clock that advances by a fixed step on every reading."""

    def __init__(self, step_seconds: float = 1.0) -> None:
        self.now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


def test_conversation_store_records_session_and_messages(tmp_path) -> None:
    db_path = tmp_path / "chat.db"
    store = ConversationStore(f"sqlite:///{db_path}")

    store.record_user_message("session-1", "ru", "Как оформить ДТП?", ip_address="10.0.0.7")
    store.record_bot_message("session-1", "ru", "Ответ.", document_ids=[3, 1])
    store.record_user_message("session-1", "ru", "Спасибо", ip_address="10.0.0.8")

    messages = store.list_messages("session-1")
    assert [(msg.role, msg.message) for msg in messages] == [
        ("user", "Как оформить ДТП?"),
        ("bot", "Ответ."),
        ("user", "Спасибо"),
    ]
    assert messages[1].document_ids == [3, 1]

    conn = sqlite3.connect(db_path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM chat_sessions").fetchone()[0]
    finally:
        conn.close()
    assert count == 1


def test_exchanges_pair_answers_with_questions_newest_first(tmp_path) -> None:
    store = ConversationStore(f"sqlite:///{tmp_path / 'chat.db'}", clock=StepClock())

    store.record_user_message("a", "ru", "Первый вопрос", ip_address="10.0.0.1")
    store.record_bot_message("a", "ru", "Первый ответ", document_ids=[2])
    store.record_user_message("b", "kz", "Екінші сұрақ", ip_address="10.0.0.2")
    store.record_bot_message("b", "kz", "Екінші жауап", document_ids=[5, 7])
    store.record_user_message("a", "ru", "Без ответа")

    exchanges = store.list_exchanges()

    assert [(item.question, item.answer) for item in exchanges] == [
        ("Екінші сұрақ", "Екінші жауап"),
        ("Первый вопрос", "Первый ответ"),
    ]
    assert exchanges[0].document_ids == [5, 7]
    assert exchanges[0].ip_address == "10.0.0.2"
    assert exchanges[1].language == "ru"


def test_answers_outside_pairing_window_are_dropped(tmp_path) -> None:
    store = ConversationStore(f"sqlite:///{tmp_path / 'chat.db'}", clock=StepClock(400))

    store.record_user_message("a", "ru", "Вопрос")
    store.record_bot_message("a", "ru", "Поздний ответ")

    assert store.list_exchanges() == []


def test_pairing_uses_each_question_once() -> None:
    base = datetime(2024, 3, 1, 12, 0)
    messages = [
        ChatMessage("s", "ru", "второй ответ", "bot", created_at=base, message_id=3),
        ChatMessage("s", "ru", "первый ответ", "bot", created_at=base, message_id=2),
        ChatMessage("s", "ru", "вопрос", "user", created_at=base, message_id=1),
    ]

    exchanges = pair_exchanges(messages)

    assert [(item.question, item.answer) for item in exchanges] == [("вопрос", "второй ответ")]


def test_clear_messages_removes_history(tmp_path) -> None:
    store = ConversationStore(f"sqlite:///{tmp_path / 'chat.db'}")
    store.record_user_message("a", "ru", "Вопрос")
    store.record_bot_message("a", "ru", "Ответ")

    assert store.clear_messages() == 2
    assert store.list_messages("a") == []
    assert store.list_exchanges() == []


def test_exchange_limit_keeps_newest_pairs(tmp_path) -> None:
    store = ConversationStore(f"sqlite:///{tmp_path / 'chat.db'}", clock=StepClock())
    for session in ("a", "b", "c"):
        store.record_user_message(session, "ru", f"вопрос {session}")
        store.record_bot_message(session, "ru", f"ответ {session}")

    exchanges = store.list_exchanges(limit=2)

    assert [item.session_id for item in exchanges] == ["c", "b"]
