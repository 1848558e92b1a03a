"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources (priority order):
#
#   1. **Environment variables**: e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file**: key=value lines in the project root .env file
#
# Field ``chromadb_host`` maps to env var ``CHROMADB_HOST``, etc.
# Defaults apply when neither source provides a value.  An empty string
# means "not configured": the embedding chain skips the remote backend
# when OPENAI_API_KEY is empty and the index runs embedded when
# CHROMADB_HOST is empty.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """feedlens application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding chain ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, etc.)
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_remote_timeout: float = 10.0  # seconds; timeout advances the chain
    local_embedding_enabled: bool = True
    local_embedding_backend: str = "sentence_transformers"  # or "fastembed"
    local_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    local_embedding_fallback_model: str = "sentence-transformers/paraphrase-MiniLM-L3-v2"
    local_model_cache_dir: str = "./models"
    embedding_dimension: int = 384
    embedding_max_chars: int = 512

    # === Vector index (ChromaDB) ===
    # chromadb_host set → HttpClient; else persist dir → PersistentClient;
    # persist dir empty → in-memory EphemeralClient.
    chromadb_host: str = ""
    chromadb_port: int = 8000
    chromadb_ssl: bool = False
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "articles"

    # === Document store ===
    document_db_path: str = "data/articles.db"

    # === Search & dedup ===
    search_default_min_similarity: float = 0.5
    search_default_max_results: int = 10
    search_max_results_cap: int = 20  # hard cap at the HTTP/CLI boundary
    search_fetch_ceiling: int = 50  # upper bound on index over-fetch
    dedup_threshold: float = 0.98
    ingest_concurrency: int = 4

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_embedding_chain(self) -> list[str]:
        """Return the configured embedding backend names in fallback order."""
        chain: list[str] = []
        if self.openai_api_key:
            chain.append("openai")
        if self.local_embedding_enabled:
            chain.append(f"{self.local_embedding_backend}:{self.local_embedding_model}")
            if self.local_embedding_fallback_model:
                chain.append(
                    f"{self.local_embedding_backend}:{self.local_embedding_fallback_model}"
                )
        chain.append("hash_fallback")
        return chain
