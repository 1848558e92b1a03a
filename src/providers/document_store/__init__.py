"""Document store provider implementations.

SQLite (via aiosqlite) is the sole implementation.  Documents persist at
DOCUMENT_DB_PATH (default: data/articles.db).
"""

from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore"]
