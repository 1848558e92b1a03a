"""Embedding provider implementations.

Embeddings convert article text into fixed-length vectors (384 dims) that
are stored in ChromaDB and used for similarity search and near-duplicate
detection.

Implementations of IEmbeddingProvider, in fallback-chain order:
    1. OpenAIEmbeddingProvider: remote API (text-embedding-3-small at
       384 dims).  Only used when OPENAI_API_KEY is set.
    2. SentenceTransformerEmbeddingProvider / FastEmbedEmbeddingProvider:
       local MiniLM models, primary then secondary.
    3. HashEmbeddingProvider: deterministic, text-seeded; cannot fail.

The local providers import their heavy libraries lazily, so importing this
package does not require sentence-transformers or fastembed.
"""

from src.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from src.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)

__all__ = [
    "FastEmbedEmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
]
