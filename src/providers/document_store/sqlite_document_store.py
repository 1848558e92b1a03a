"""SQLite-backed article document store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IDocumentStore).
# Pattern: Adapter pattern. Wraps SQLite behind the IDocumentStore ABC
#          so search, dedup and ingestion never see SQL.
#
# Database: ``data/articles.db``, one ``documents`` table.
#
#   - ``guid`` is UNIQUE; an empty guid is stored as NULL so that many
#     guid-less articles can coexist.
#   - ``vector_id`` is a weak reference into the vector index and is
#     indexed for the search join.
#   - ``categories`` is a JSON array.
#   - Timestamps are ISO-8601 UTC strings.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` for
# concurrent read safety.  A connection is opened per operation.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import sqlite3
from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.document_store import IDocumentStore
from src.models.article import CorpusStatistics, Document, LabelCount
from src.utils.errors import DocumentStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/articles.db")

# SQLite's default bound-parameter limit is 999; stay well below it.
_IN_CLAUSE_CHUNK = 500

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_DOCUMENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS documents (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id   TEXT NOT NULL UNIQUE,
    source_id     TEXT NOT NULL,
    title         TEXT NOT NULL,
    body_text     TEXT NOT NULL DEFAULT '',
    description   TEXT NOT NULL DEFAULT '',
    content       TEXT NOT NULL DEFAULT '',
    author        TEXT NOT NULL DEFAULT '',
    link          TEXT NOT NULL DEFAULT '',
    guid          TEXT UNIQUE,
    categories    TEXT NOT NULL DEFAULT '[]',
    vector_id     TEXT,
    published_at  TEXT NOT NULL,
    created_at    TEXT NOT NULL
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_link ON documents(link);",
    "CREATE INDEX IF NOT EXISTS idx_documents_vector ON documents(vector_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_published ON documents(published_at);",
    "CREATE INDEX IF NOT EXISTS idx_documents_source ON documents(source_id);",
]

# ── DML ───────────────────────────────────────────────────────────────

_COLUMNS = (
    "document_id, source_id, title, body_text, description, content, author, "
    "link, guid, categories, vector_id, published_at, created_at"
)

_INSERT_DOCUMENT = f"""\
INSERT INTO documents ({_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_BY_ID = f"SELECT {_COLUMNS} FROM documents WHERE document_id = ?;"

_SELECT_BY_VECTOR_ID = f"SELECT {_COLUMNS} FROM documents WHERE vector_id = ?;"

_SELECT_BY_GUID = f"SELECT {_COLUMNS} FROM documents WHERE guid = ? ORDER BY id LIMIT 1;"

_SELECT_BY_LINK = f"SELECT {_COLUMNS} FROM documents WHERE link = ? ORDER BY id LIMIT 1;"

_COUNT_DOCUMENTS = "SELECT COUNT(*) FROM documents;"

_COUNT_BY_SOURCE = """\
SELECT source_id, COUNT(*) AS n FROM documents
GROUP BY source_id ORDER BY n DESC, source_id;
"""

_SELECT_CATEGORIES = "SELECT categories FROM documents WHERE categories != '[]';"


class SQLiteDocumentStore(IDocumentStore):
    """SQLite persistence for ingested :class:`Document` records."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_DOCUMENTS_TABLE)
                for idx_sql in _CREATE_INDICES:
                    await db.execute(idx_sql)
                await db.commit()
        except sqlite3.Error as exc:
            raise DocumentStoreError(
                message=f"Failed to initialise document store at {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("document_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_documents"

    # ── Writes ─────────────────────────────────────────────────────────

    async def insert(self, document: Document) -> Document:
        """Persist a new document.

        Raises
        ------
        DocumentStoreError
            On a duplicate ``document_id``/``guid`` or any SQLite failure.
        """
        params = (
            document.document_id,
            document.source_id,
            document.title,
            document.body_text,
            document.description,
            document.content,
            document.author,
            document.link,
            document.guid or None,
            json.dumps(sorted(document.categories)),
            document.vector_id,
            document.published_at.isoformat(),
            document.created_at.isoformat(),
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_DOCUMENT, params)
                await db.commit()
        except sqlite3.IntegrityError as exc:
            raise DocumentStoreError(
                message=f"Document '{document.document_id}' conflicts with a stored record: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except sqlite3.Error as exc:
            raise DocumentStoreError(
                message=f"Failed to insert document '{document.document_id}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "document_inserted",
            document_id=document.document_id,
            source_id=document.source_id,
            has_vector=document.has_vector,
        )
        return document

    # ── Reads ──────────────────────────────────────────────────────────

    async def find_by_id(self, document_id: str) -> Document | None:
        rows = await self._fetch(_SELECT_BY_ID, (document_id,))
        return self._row_to_document(rows[0]) if rows else None

    async def find_by_vector_id(self, vector_id: str) -> Document | None:
        rows = await self._fetch(_SELECT_BY_VECTOR_ID, (vector_id,))
        return self._row_to_document(rows[0]) if rows else None

    async def find_by_vector_ids(self, vector_ids: Iterable[str]) -> list[Document]:
        """Batch join from index ids to documents; unknown ids are skipped."""
        unique_ids = list(dict.fromkeys(vid for vid in vector_ids if vid))
        if not unique_ids:
            return []

        documents: list[Document] = []
        for start in range(0, len(unique_ids), _IN_CLAUSE_CHUNK):
            chunk = unique_ids[start : start + _IN_CLAUSE_CHUNK]
            placeholders = ", ".join("?" for _ in chunk)
            query = f"SELECT {_COLUMNS} FROM documents WHERE vector_id IN ({placeholders});"
            rows = await self._fetch(query, chunk)
            documents.extend(self._row_to_document(row) for row in rows)
        return documents

    async def exact_match(self, guid: str | None, link: str | None) -> Document | None:
        """Return a document with the same guid, else the same link."""
        if guid:
            rows = await self._fetch(_SELECT_BY_GUID, (guid,))
            if rows:
                return self._row_to_document(rows[0])
        if link:
            rows = await self._fetch(_SELECT_BY_LINK, (link,))
            if rows:
                return self._row_to_document(rows[0])
        return None

    async def count(self) -> int:
        rows = await self._fetch(_COUNT_DOCUMENTS, ())
        return int(rows[0][0]) if rows else 0

    async def statistics(self) -> CorpusStatistics:
        """Per-source counts come from SQL; categories are tallied from the JSON arrays."""
        total = await self.count()
        source_rows = await self._fetch(_COUNT_BY_SOURCE, ())
        category_rows = await self._fetch(_SELECT_CATEGORIES, ())

        tally: Counter[str] = Counter()
        for row in category_rows:
            tally.update(json.loads(row["categories"]))

        return CorpusStatistics(
            total_documents=total,
            sources=[LabelCount(name=row["source_id"], count=row["n"]) for row in source_rows],
            categories=[
                LabelCount(name=name, count=n)
                for name, n in sorted(tally.items(), key=lambda item: (-item[1], item[0]))
            ],
        )

    # ── Helpers ────────────────────────────────────────────────────────

    async def _fetch(self, query: str, params: Iterable[Any]) -> list[Any]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(query, tuple(params))
                return list(await cursor.fetchall())
        except sqlite3.Error as exc:
            raise DocumentStoreError(
                message=f"Document store query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    @staticmethod
    def _row_to_document(row: Any) -> Document:
        data = dict(row)
        return Document(
            document_id=data["document_id"],
            source_id=data["source_id"],
            title=data["title"],
            body_text=data["body_text"] or "",
            description=data["description"] or "",
            content=data["content"] or "",
            author=data["author"] or "",
            link=data["link"] or "",
            guid=data["guid"] or "",
            categories=frozenset(json.loads(data["categories"] or "[]")),
            vector_id=data["vector_id"],
            published_at=datetime.fromisoformat(data["published_at"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
