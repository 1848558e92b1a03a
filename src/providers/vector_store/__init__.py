"""Vector index provider implementations.

ChromaDB is the sole vector index implementation.  It stores article
embeddings in a cosine-space collection, either on local disk
(CHROMADB_PERSIST_DIR), in memory, or on a remote Chroma server
(CHROMADB_HOST).

To swap ChromaDB for another vector database, create a new class
implementing IVectorStoreProvider and register it in main.py.
"""

from src.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
