from __future__ import annotations

"""Conversation log of chat sessions and messages."""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable

DEFAULT_HISTORY_LIMIT = 20
PAIRING_WINDOW_SECONDS = 300


class ConversationStoreError(RuntimeError):
    """Raised when conversation persistence fails."""
    pass


@dataclass(frozen=True)
class ChatMessage:
    """Stored chat message."""
    session_id: str
    language: str
    message: str
    role: str
    document_ids: list[int] = field(default_factory=list)
    created_at: datetime | None = None
    message_id: int | None = None


@dataclass(frozen=True)
class ChatExchange:
    """A bot answer paired with the question that prompted it."""
    exchange_id: int
    session_id: str
    language: str
    question: str
    answer: str
    created_at: datetime
    document_ids: list[int] = field(default_factory=list)
    ip_address: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pair_exchanges(
    messages: list[ChatMessage],
    window_seconds: float = PAIRING_WINDOW_SECONDS,
) -> list[ChatExchange]:
    """Pair each bot message with the latest earlier user message of its session.

    ``messages`` must be ordered newest first. A user message is used at most
    once and only when it precedes the answer by less than ``window_seconds``.
    """
    users = [msg for msg in messages if msg.role == "user"]
    used: set[int | None] = set()
    exchanges: list[ChatExchange] = []
    for bot in (msg for msg in messages if msg.role == "bot"):
        for user in users:
            if user.message_id in used or user.session_id != bot.session_id:
                continue
            if user.message_id is None or bot.message_id is None:
                continue
            if user.message_id >= bot.message_id:
                continue
            if user.created_at is None or bot.created_at is None:
                continue
            if (bot.created_at - user.created_at).total_seconds() >= window_seconds:
                continue
            used.add(user.message_id)
            exchanges.append(
                ChatExchange(
                    exchange_id=bot.message_id,
                    session_id=bot.session_id,
                    language=bot.language,
                    question=user.message,
                    answer=bot.message,
                    created_at=bot.created_at,
                    document_ids=list(bot.document_ids),
                )
            )
            break
    exchanges.sort(key=lambda item: (item.created_at, item.exchange_id), reverse=True)
    return exchanges


class ConversationStore:
    """Record chat sessions and messages in a SQL database."""
    def __init__(
        self,
        connection_uri: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the conversation store and ensure tables exist."""
        try:
            from sqlalchemy import (
                Column,
                DateTime,
                Index,
                Integer,
                MetaData,
                String,
                Table,
                Text,
                create_engine,
            )
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise ConversationStoreError(
                "sqlalchemy is required to use the conversation store"
            ) from exc

        self._clock = clock
        self._engine = create_engine(connection_uri)
        self._metadata = MetaData()
        self._sessions = Table(
            "chat_sessions",
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("session_id", String(255), nullable=False, unique=True),
            Column("ip_address", String(45), nullable=True),
            Column("first_message_at", DateTime(timezone=True), nullable=False),
            Column("last_message_at", DateTime(timezone=True), nullable=False),
        )
        self._messages = Table(
            "chat_messages",
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("session_id", String(255), nullable=False),
            Column("language", String(10), nullable=False),
            Column("message", Text, nullable=False),
            Column("role", String(10), nullable=False),
            Column("document_ids", Text, nullable=True),
            Column("created_at", DateTime(timezone=True), nullable=False),
            Index("idx_chat_messages_session", "session_id"),
        )
        self._metadata.create_all(self._engine)

    def record_user_message(
        self,
        session_id: str,
        language: str,
        message: str,
        ip_address: str | None = None,
    ) -> None:
        """Open or touch the session, then store the incoming question."""
        from sqlalchemy import select

        now = self._clock()
        payload = self._serialize(
            ChatMessage(session_id=session_id, language=language, message=message, role="user"),
            now,
        )
        with self._engine.begin() as conn:
            existing = conn.execute(
                select(self._sessions.c.id).where(self._sessions.c.session_id == session_id)
            ).first()
            if existing is None:
                conn.execute(
                    self._sessions.insert().values(
                        session_id=session_id,
                        ip_address=ip_address,
                        first_message_at=now,
                        last_message_at=now,
                    )
                )
            else:
                conn.execute(
                    self._sessions.update()
                    .where(self._sessions.c.session_id == session_id)
                    .values(last_message_at=now)
                )
            conn.execute(self._messages.insert().values(**payload))

    def record_bot_message(
        self,
        session_id: str,
        language: str,
        message: str,
        document_ids: list[int] | None = None,
    ) -> None:
        """Store an answer together with its contributing document IDs."""
        payload = self._serialize(
            ChatMessage(
                session_id=session_id,
                language=language,
                message=message,
                role="bot",
                document_ids=list(document_ids or []),
            ),
            self._clock(),
        )
        with self._engine.begin() as conn:
            conn.execute(self._messages.insert().values(**payload))

    def list_messages(self, session_id: str) -> list[ChatMessage]:
        """Return a session's messages in arrival order."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                self._messages.select()
                .where(self._messages.c.session_id == session_id)
                .order_by(self._messages.c.id)
            ).mappings().all()
        return [self._to_message(row) for row in rows]

    def list_exchanges(
        self,
        limit: int = DEFAULT_HISTORY_LIMIT,
        window_seconds: float = PAIRING_WINDOW_SECONDS,
    ) -> list[ChatExchange]:
        """Return recent question and answer pairs, newest first.

        Only the ``2 * limit`` newest non-empty messages are considered, so a
        question whose answer fell outside that window is not paired.
        """
        from sqlalchemy import select

        if limit <= 0:
            return []
        query = (
            select(self._messages, self._sessions.c.ip_address)
            .join(
                self._sessions,
                self._messages.c.session_id == self._sessions.c.session_id,
            )
            .where(self._messages.c.message != "")
            .order_by(self._messages.c.created_at.desc(), self._messages.c.id.desc())
            .limit(limit * 2)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
        ip_by_session = {row["session_id"]: row["ip_address"] for row in rows}
        messages = [
            self._to_message(row) for row in rows if row["message"] and row["message"].strip()
        ]
        return [
            replace(exchange, ip_address=ip_by_session.get(exchange.session_id))
            for exchange in pair_exchanges(messages, window_seconds)[:limit]
        ]

    def clear_messages(self) -> int:
        """Delete every stored message and return how many were removed."""
        with self._engine.begin() as conn:
            result = conn.execute(self._messages.delete())
        return result.rowcount or 0

    @staticmethod
    def _to_message(row) -> ChatMessage:
        return ChatMessage(
            session_id=row["session_id"],
            language=row["language"],
            message=row["message"],
            role=row["role"],
            document_ids=json.loads(row["document_ids"]) if row["document_ids"] else [],
            created_at=row["created_at"],
            message_id=row["id"],
        )

    @staticmethod
    def _serialize(message: ChatMessage, created_at: datetime) -> dict[str, object]:
        """Prepare a message row for insertion."""
        return {
            "session_id": message.session_id,
            "language": message.language,
            "message": message.message,
            "role": message.role,
            "document_ids": json.dumps(message.document_ids),
            "created_at": created_at,
        }
