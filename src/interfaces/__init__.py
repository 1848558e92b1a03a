"""Public interface definitions for the feedlens storage and embedding backends.

Search, deduplication and ingestion only ever talk to these abstract base
classes.  Concrete adapters live in ``src/providers/`` and are wired
together in ``src/main.py``; tests inject mocks built with
``MagicMock(spec=...)`` against the same ABCs.

CONCRETE PROVIDER MAP:
    Interface              ->  Concrete implementations (in src/providers/)
    ---------------------------------------------------------------------
    IEmbeddingProvider     ->  OpenAIEmbeddingProvider,
                               SentenceTransformerEmbeddingProvider,
                               FastEmbedEmbeddingProvider,
                               HashEmbeddingProvider
    IVectorStoreProvider   ->  ChromaDBProvider
    IDocumentStore         ->  SQLiteDocumentStore
"""

from src.interfaces.document_store import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "IVectorStoreProvider",
]
