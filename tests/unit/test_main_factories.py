"""Unit tests for the component factories in folderlens/main.py.

ChromaDB is patched out so no index is created on disk; every other
provider is constructed for real but never makes a network call.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI

from folderlens.config.settings import Settings


def _settings(**overrides) -> Settings:
    """Settings with every credential empty unless overridden."""
    defaults = {
        "openai_api_key": "",
        "openai_base_url": "",
        "google_client_id": "",
        "google_client_secret": "",
        "google_refresh_token": "",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


_DRIVE = {
    "google_client_id": "client",
    "google_client_secret": "secret",
    "google_refresh_token": "refresh",
}


@pytest.fixture
def chroma():
    """Patch the ChromaDB provider class used by the factories."""
    with patch("folderlens.main.ChromaDBProvider") as provider_cls:
        provider_cls.return_value = MagicMock(is_available=MagicMock(return_value=True))
        yield provider_cls


class TestProviderFactories:
    def test_no_openai_key_means_no_llm_or_embeddings(self) -> None:
        from folderlens.main import _build_embedding_provider, _build_llm_provider

        assert _build_llm_provider(_settings()) is None
        assert _build_embedding_provider(_settings()) is None

    def test_openai_key_builds_providers(self) -> None:
        from folderlens.main import _build_embedding_provider, _build_llm_provider

        app_settings = _settings(openai_api_key="sk-test")

        assert _build_llm_provider(app_settings).get_provider_name() == "openai"
        assert _build_embedding_provider(app_settings).get_dimension() == 1536

    def test_file_store_needs_all_credentials(self) -> None:
        from folderlens.main import _build_file_store

        partial = _settings(google_client_id="client")

        assert _build_file_store(partial, MagicMock()) is None
        assert _build_file_store(_settings(**_DRIVE), MagicMock()) is not None


class TestBuildAll:
    def test_bare_settings(self, chroma: MagicMock) -> None:
        from folderlens.main import _build_all

        components = _build_all(_settings())

        assert components["file_store"] is None
        assert components["qa_service"] is None
        assert components["ingestion_pipeline"] is None
        assert components["review_service"] is None
        assert components["speech_provider"] is None
        assert components["preview_service"] is not None
        registry = components["provider_registry"]
        assert registry["vector_store"] is True
        assert registry["llm"] is False
        assert registry["file_store"] is False
        chroma.assert_called_once()
        assert chroma.call_args.kwargs["expected_dimension"] is None

    def test_fully_configured(self, chroma: MagicMock, mock_config: dict) -> None:
        from folderlens.main import _build_all

        components = _build_all(_settings(openai_api_key="sk-test", **_DRIVE), mock_config)

        for key in (
            "file_store",
            "ingestion_pipeline",
            "qa_service",
            "review_service",
            "transcript_service",
            "speech_provider",
        ):
            assert components[key] is not None, key
        assert all(components["provider_registry"].values())
        assert chroma.call_args.kwargs["expected_dimension"] == 1536


class TestCreateApp:
    def test_routes_registered(self) -> None:
        from folderlens.main import create_app

        application = create_app()

        assert isinstance(application, FastAPI)
        paths = {route.path for route in application.routes}
        assert "/api/v1/health" in paths
        assert "/api/v1/drive/sync" in paths
        assert "/api/v1/review/analyze" in paths
