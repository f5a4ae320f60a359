from __future__ import annotations

"""SQL-backed document and chunk store."""

import json
import operator
from datetime import datetime, timezone
from functools import reduce
from typing import Any, Iterable

from scroll_rag.chunkstore.base import ChunkStoreError, DocumentNotFoundError
from scroll_rag.rag.types import Chunk, Document, ScoredChunk


class SQLChunkStore:
    """Store documents and chunks in a SQL database via SQLAlchemy Core."""
    def __init__(self, connection_uri: str) -> None:
        """Connect and ensure the documents and chunks tables exist."""
        try:
            from sqlalchemy import (
                Boolean,
                Column,
                DateTime,
                ForeignKey,
                Index,
                Integer,
                MetaData,
                String,
                Table,
                Text,
                create_engine,
            )
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise ChunkStoreError("sqlalchemy is required to use the SQL chunk store") from exc

        self._engine = create_engine(connection_uri)
        self._metadata = MetaData()
        self._documents = Table(
            "documents",
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("original_name", String(255), nullable=False, default=""),
            Column("content", Text, nullable=False),
            Column("category_id", Integer, nullable=True),
            Column("subtopic_ids", Text, nullable=True),
            Column("is_active", Boolean, nullable=False, default=True),
            Column("created_at", DateTime(timezone=True), nullable=False),
        )
        self._chunks = Table(
            "chunks",
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column(
                "document_id",
                Integer,
                ForeignKey("documents.id", ondelete="CASCADE"),
                nullable=False,
            ),
            Column("chunk_index", Integer, nullable=False),
            Column("content", Text, nullable=False),
            Column("content_lower", Text, nullable=False),
            Index("idx_chunks_document_id", "document_id"),
        )
        self._metadata.create_all(self._engine)

    def add_document(
        self,
        content: str,
        original_name: str = "",
        category_id: int | None = None,
        subtopic_ids: Iterable[int] = (),
        is_active: bool = True,
    ) -> Document:
        """Insert a document row and return it with its new ID."""
        created_at = datetime.now(timezone.utc)
        subtopics = tuple(subtopic_ids)
        with self._engine.begin() as conn:
            result = conn.execute(
                self._documents.insert().values(
                    original_name=original_name,
                    content=content,
                    category_id=category_id,
                    subtopic_ids=json.dumps(list(subtopics)),
                    is_active=is_active,
                    created_at=created_at,
                )
            )
            document_id = result.inserted_primary_key[0]
        return Document(
            doc_id=document_id,
            content=content,
            is_active=is_active,
            original_name=original_name,
            category_id=category_id,
            subtopic_ids=subtopics,
            created_at=created_at,
        )

    def get_document(self, document_id: int) -> Document:
        with self._engine.connect() as conn:
            row = conn.execute(
                self._documents.select().where(self._documents.c.id == document_id)
            ).mappings().first()
        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._to_document(row)

    def list_documents(self) -> list[Document]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                self._documents.select().order_by(self._documents.c.id.desc())
            ).mappings().all()
        return [self._to_document(row) for row in rows]

    def set_active(self, document_id: int, is_active: bool) -> Document:
        with self._engine.begin() as conn:
            result = conn.execute(
                self._documents.update()
                .where(self._documents.c.id == document_id)
                .values(is_active=is_active)
            )
        if result.rowcount == 0:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self.get_document(document_id)

    def delete_document(self, document_id: int) -> None:
        """Delete a document and its chunks in one transaction."""
        with self._engine.begin() as conn:
            conn.execute(self._chunks.delete().where(self._chunks.c.document_id == document_id))
            result = conn.execute(
                self._documents.delete().where(self._documents.c.id == document_id)
            )
            if result.rowcount == 0:
                raise DocumentNotFoundError(f"Document {document_id} not found")

    def list_active_documents(self) -> list[Document]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                self._documents.select()
                .where(self._documents.c.is_active.is_(True))
                .order_by(self._documents.c.id)
            ).mappings().all()
        return [self._to_document(row) for row in rows]

    def count_active_documents(self) -> int:
        from sqlalchemy import func, select

        with self._engine.connect() as conn:
            return conn.execute(
                select(func.count())
                .select_from(self._documents)
                .where(self._documents.c.is_active.is_(True))
            ).scalar_one()

    def count_chunks(self, document_id: int) -> int:
        with self._engine.connect() as conn:
            return self._count_chunks(conn, document_id)

    def documents_without_chunks(self) -> list[Document]:
        """Return active documents with no chunk rows (left join on chunks)."""
        from sqlalchemy import select

        documents = self._documents
        chunks = self._chunks
        statement = (
            select(documents)
            .select_from(documents.outerjoin(chunks, documents.c.id == chunks.c.document_id))
            .where(chunks.c.id.is_(None), documents.c.is_active.is_(True))
            .order_by(documents.c.id)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(statement).mappings().all()
        return [self._to_document(row) for row in rows]

    def insert_chunks(self, document_id: int, contents: list[str]) -> int:
        with self._engine.begin() as conn:
            self._require_document(conn, document_id)
            start = self._count_chunks(conn, document_id)
            self._insert(conn, document_id, contents, start)
        return len(contents)

    def insert_chunks_if_absent(self, document_id: int, contents: list[str]) -> bool:
        """Insert chunks unless another writer already chunked the document."""
        with self._engine.begin() as conn:
            self._require_document(conn, document_id)
            if self._count_chunks(conn, document_id):
                return False
            self._insert(conn, document_id, contents, 0)
        return True

    def get_chunks(self, document_id: int) -> list[Chunk]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                self._chunks.select()
                .where(self._chunks.c.document_id == document_id)
                .order_by(self._chunks.c.chunk_index)
            ).mappings().all()
        return [self._to_chunk(row) for row in rows]

    def query_chunks_by_keywords(self, keywords: Iterable[str], limit: int) -> list[ScoredChunk]:
        """Score chunks with one LIKE test per keyword and rank them in SQL."""
        from sqlalchemy import case, or_, select

        terms = sorted({keyword.lower() for keyword in keywords if keyword})
        if not terms or limit <= 0:
            return []
        chunks = self._chunks
        documents = self._documents
        matches = [chunks.c.content_lower.contains(term, autoescape=True) for term in terms]
        relevance = reduce(
            operator.add, [case((match, 1), else_=0) for match in matches]
        ).label("relevance")
        statement = (
            select(chunks, relevance)
            .join(documents, documents.c.id == chunks.c.document_id)
            .where(documents.c.is_active.is_(True), or_(*matches))
            .order_by(relevance.desc(), chunks.c.document_id, chunks.c.chunk_index)
            .limit(limit)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(statement).mappings().all()
        return [ScoredChunk(chunk=self._to_chunk(row), score=int(row["relevance"])) for row in rows]

    def first_chunks(self, limit: int) -> list[Chunk]:
        from sqlalchemy import select

        if limit <= 0:
            return []
        chunks = self._chunks
        documents = self._documents
        statement = (
            select(chunks)
            .join(documents, documents.c.id == chunks.c.document_id)
            .where(documents.c.is_active.is_(True))
            .order_by(chunks.c.document_id, chunks.c.chunk_index)
            .limit(limit)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(statement).mappings().all()
        return [self._to_chunk(row) for row in rows]

    def stats(self) -> dict[str, int | str]:
        from sqlalchemy import func, select

        with self._engine.connect() as conn:
            document_count = conn.execute(
                select(func.count()).select_from(self._documents)
            ).scalar_one()
            chunk_count = conn.execute(select(func.count()).select_from(self._chunks)).scalar_one()
        return {
            "backend": "sql",
            "document_count": document_count,
            "active_document_count": self.count_active_documents(),
            "chunk_count": chunk_count,
        }

    def _require_document(self, conn: Any, document_id: int) -> None:
        from sqlalchemy import select

        exists = conn.execute(
            select(self._documents.c.id).where(self._documents.c.id == document_id)
        ).first()
        if exists is None:
            raise ChunkStoreError(f"Cannot chunk missing document {document_id}")

    def _count_chunks(self, conn: Any, document_id: int) -> int:
        from sqlalchemy import func, select

        return conn.execute(
            select(func.count())
            .select_from(self._chunks)
            .where(self._chunks.c.document_id == document_id)
        ).scalar_one()

    def _insert(self, conn: Any, document_id: int, contents: list[str], start: int) -> None:
        if not contents:
            return
        conn.execute(
            self._chunks.insert(),
            [
                {
                    "document_id": document_id,
                    "chunk_index": start + offset,
                    "content": content,
                    "content_lower": content.lower(),
                }
                for offset, content in enumerate(contents)
            ],
        )

    @staticmethod
    def _to_document(row: Any) -> Document:
        subtopics = json.loads(row["subtopic_ids"]) if row["subtopic_ids"] else []
        return Document(
            doc_id=row["id"],
            content=row["content"],
            is_active=bool(row["is_active"]),
            original_name=row["original_name"] or "",
            category_id=row["category_id"],
            subtopic_ids=tuple(subtopics),
            created_at=row["created_at"],
        )

    @staticmethod
    def _to_chunk(row: Any) -> Chunk:
        return Chunk(
            chunk_id=row["id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            content=row["content"],
            content_lower=row["content_lower"],
        )
