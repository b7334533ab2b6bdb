"""Unit tests for the folderlens.cli.ingest command-line tool."""

from __future__ import annotations

from argparse import Namespace
from unittest.mock import patch

import pytest

from folderlens.cli import ingest
from folderlens.config.settings import Settings
from folderlens.models.documents import SourceFile
from folderlens.services.ingestion.chunker import TextChunker
from folderlens.services.ingestion.ingestion_service import IngestionPipeline
from folderlens.utils.errors import NotFoundError
from tests.conftest import MockEmbeddingProvider, MockFileStore, MockVectorStore


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _pipeline(store: MockFileStore) -> IngestionPipeline:
    return IngestionPipeline(
        file_store=store,
        embedding_provider=MockEmbeddingProvider(),
        vector_store=MockVectorStore(),
        chunker=TextChunker(max_size=200, overlap=20),
    )


class TestParser:
    def test_sync_arguments(self) -> None:
        args = ingest._build_parser().parse_args(["sync", "--folder-id", "abc", "--timeout", "60"])

        assert args.command == "sync"
        assert args.folder_id == "abc"
        assert args.timeout == 60.0

    def test_ask_argument(self) -> None:
        args = ingest._build_parser().parse_args(["ask", "What is due?"])
        assert args.question == "What is due?"

    def test_no_command_exits(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            ingest.main([])
        assert excinfo.value.code == 1


class TestSyncHandler:
    @pytest.mark.asyncio
    async def test_missing_folder(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = Namespace(folder_id=None, timeout=None)

        code = await ingest._handle_sync(args, _settings())

        assert code == 1
        assert "GOOGLE_DRIVE_FOLDER_ID" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_missing_credentials(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = Namespace(folder_id="folder-1", timeout=None)

        code = await ingest._handle_sync(args, _settings())

        assert code == 1
        assert "credentials are not configured" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_report_printed(self, capsys: pytest.CaptureFixture[str]) -> None:
        store = MockFileStore(
            files=[SourceFile(id="f1", name="guide.txt"), SourceFile(id="f2", name="blank.txt")],
            contents={"f1": b"A paragraph that is long enough to index.", "f2": b""},
        )
        args = Namespace(folder_id="folder-1", timeout=None)

        with patch.object(ingest, "_build_pipeline", return_value=(_pipeline(store), "mock")):
            code = await ingest._handle_sync(args, _settings())

        out = capsys.readouterr().out
        assert code == 0
        assert "[indexed  ] guide.txt (1/1 chunks)" in out
        assert "blank.txt" in out and "File is empty (0 bytes)" in out
        assert "Processed 2 file(s) and stored 1 chunk(s)" in out

    @pytest.mark.asyncio
    async def test_listing_failure(self, capsys: pytest.CaptureFixture[str]) -> None:
        store = MockFileStore()
        store.list_error = NotFoundError(message="Folder not found", provider_name="mock")
        args = Namespace(folder_id="folder-1", timeout=None)

        with patch.object(ingest, "_build_pipeline", return_value=(_pipeline(store), "mock")):
            code = await ingest._handle_sync(args, _settings())

        assert code == 1
        assert "could not list folder folder-1" in capsys.readouterr().err


class TestAskHandler:
    @pytest.mark.asyncio
    async def test_requires_api_key(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = await ingest._handle_ask(Namespace(question="Hi?"), _settings())

        assert code == 1
        assert "OPENAI_API_KEY" in capsys.readouterr().err
