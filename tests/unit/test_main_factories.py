"""Unit tests for factory functions in src/main.py.

Covers embedding-chain assembly, full component wiring and the app
factory, all without network access or model downloads.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def _settings(tmp_path: Path | None = None, **overrides) -> Settings:
    defaults: dict = {
        "openai_api_key": "",
        "openai_base_url": "",
        "local_embedding_enabled": False,
        "app_env": "test",
    }
    if tmp_path is not None:
        defaults["chromadb_persist_dir"] = str(tmp_path / "chroma")
        defaults["document_db_path"] = str(tmp_path / "articles.db")
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# Embedding chain
# ======================================================================


class TestBuildEmbeddingService:
    def test_hash_only(self) -> None:
        from src.main import _build_embedding_service

        service = _build_embedding_service(_settings())
        assert service.get_chain() == ["hash_fallback"]

    def test_remote_added_with_api_key(self) -> None:
        from src.main import _build_embedding_service

        service = _build_embedding_service(_settings(openai_api_key="sk-test"))
        assert service.get_chain() == ["openai_embedding", "hash_fallback"]

    def test_local_primary_and_secondary(self) -> None:
        from src.main import _build_embedding_service

        service = _build_embedding_service(
            _settings(
                local_embedding_enabled=True,
                local_embedding_model="sentence-transformers/all-MiniLM-L6-v2",
                local_embedding_fallback_model="sentence-transformers/paraphrase-MiniLM-L3-v2",
            )
        )
        assert service.get_chain() == [
            "sentence_transformer_all-MiniLM-L6-v2",
            "sentence_transformer_paraphrase-MiniLM-L3-v2",
            "hash_fallback",
        ]

    def test_identical_fallback_model_not_repeated(self) -> None:
        from src.main import _build_local_providers

        providers = _build_local_providers(
            _settings(
                local_embedding_enabled=True,
                local_embedding_model="m/one",
                local_embedding_fallback_model="m/one",
            )
        )
        assert len(providers) == 1

    def test_fastembed_backend(self) -> None:
        from src.main import _build_local_providers
        from src.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        providers = _build_local_providers(
            _settings(local_embedding_enabled=True, local_embedding_backend="fastembed")
        )
        assert providers
        assert all(isinstance(p, FastEmbedEmbeddingProvider) for p in providers)

    def test_unknown_backend(self) -> None:
        from src.main import _build_local_providers

        with pytest.raises(ConfigurationError):
            _build_local_providers(
                _settings(local_embedding_enabled=True, local_embedding_backend="word2vec")
            )


# ======================================================================
# Component wiring
# ======================================================================


class TestBuildAll:
    def test_components(self, tmp_path: Path) -> None:
        from src.main import _build_all
        from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
        from src.providers.vector_store.chromadb_provider import ChromaDBProvider
        from src.services.deduplication import DeduplicationGate
        from src.services.ingestion import IngestionService
        from src.services.similarity_search import SimilaritySearchEngine

        components = _build_all(_settings(tmp_path, dedup_threshold=0.9))

        assert isinstance(components["vector_store"], ChromaDBProvider)
        assert isinstance(components["document_store"], SQLiteDocumentStore)
        assert isinstance(components["search_engine"], SimilaritySearchEngine)
        assert isinstance(components["dedup_gate"], DeduplicationGate)
        assert isinstance(components["ingestion_service"], IngestionService)
        assert components["dedup_gate"].threshold == 0.9

    @pytest.mark.asyncio
    async def test_build_services_initialises_store(self, tmp_path: Path) -> None:
        from src.main import build_services

        components = await build_services(_settings(tmp_path))

        assert (tmp_path / "articles.db").exists()
        assert await components["document_store"].count() == 0


class TestCreateApp:
    def test_returns_fastapi_with_routes(self) -> None:
        from src.main import create_app

        application = create_app()

        assert isinstance(application, FastAPI)
        paths = {route.path for route in application.routes}
        assert "/api/v1/health" in paths
        assert "/api/v1/search/query" in paths
        assert "/api/v1/articles/{document_id}/similar" in paths
