# =============================================================================
# folderlens/cli/ingest.py - CLI for the document index
# =============================================================================
#
# Operator tool for the FolderLens index outside the web server.
#
# Supported subcommands:
#
#   sync     List the source folder and index every file in it
#   ask      Answer one question from the indexed documents
#   preview  Print the indexed chunks of one file, in order
#   stats    Print the number of vectors in the index
#
# Provider Selection:
#   - File store: Google Drive (OAuth refresh token from the environment)
#   - Embedding / LLM: OpenAI (OPENAI_API_KEY)
#   - Vector Store: ChromaDB (always)
#
# Usage examples:
#   python -m folderlens.cli sync --folder-id 1AbC... --timeout 600
#   python -m folderlens.cli ask "How do I submit an assignment?"
#   python -m folderlens.cli preview 1XyZ...
#   python -m folderlens.cli stats
# =============================================================================

"""Standalone CLI for syncing and querying the FolderLens index.

Usage::

    python -m folderlens.cli sync [--folder-id ID] [--timeout SECONDS]
    python -m folderlens.cli ask "QUESTION"
    python -m folderlens.cli preview FILE_ID
    python -m folderlens.cli stats

``sync`` exits non-zero only when the folder cannot be listed; per-file
failures are printed in the report and do not change the exit code.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from folderlens.config.settings import Settings
from folderlens.utils.errors import FolderLensError
from folderlens.utils.logging import configure_logging


def _build_vector_store(app_settings: Settings, expected_dimension: int | None = None):  # noqa: ANN202
    from folderlens.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        expected_dimension=expected_dimension,
    )


def _build_embedding_provider(app_settings: Settings):  # noqa: ANN202
    """Return the OpenAI embedding provider, or ``None`` without an API key."""
    if not app_settings.openai_api_key:
        return None
    from folderlens.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    return OpenAIEmbeddingProvider(settings=app_settings)


def _build_pipeline(app_settings: Settings):  # noqa: ANN202
    """Construct the ingestion pipeline.

    Returns
    -------
    tuple[IngestionPipeline, str] or tuple[None, str]
        The pipeline and a status message, or ``None`` with an error
        message when a required provider is not configured.
    """
    if not app_settings.has_drive_credentials():
        return None, (
            "Google Drive credentials are not configured.\n"
            "Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN.\n"
        )
    embedding_provider = _build_embedding_provider(app_settings)
    if embedding_provider is None:
        return None, "No embedding provider available.\nSet OPENAI_API_KEY.\n"

    from folderlens.providers.drive.google_drive_provider import GoogleDriveProvider
    from folderlens.services.ingestion.chunker import TextChunker
    from folderlens.services.ingestion.ingestion_service import IngestionPipeline

    pipeline = IngestionPipeline(
        file_store=GoogleDriveProvider(settings=app_settings),
        embedding_provider=embedding_provider,
        vector_store=_build_vector_store(app_settings, embedding_provider.get_dimension()),
        chunker=TextChunker(
            max_size=app_settings.chunk_max_size,
            overlap=app_settings.chunk_overlap,
            min_length=app_settings.chunk_min_length,
        ),
        max_concurrent_files=app_settings.sync_max_concurrent_files,
        max_concurrent_chunks=app_settings.embed_max_concurrent_chunks,
    )
    return pipeline, f"google_drive + {embedding_provider.get_provider_name()} + chromadb"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_sync(args: argparse.Namespace, app_settings: Settings) -> int:
    folder_id = args.folder_id or app_settings.google_drive_folder_id
    if not folder_id:
        print("Error: pass --folder-id or set GOOGLE_DRIVE_FOLDER_ID.", file=sys.stderr)
        return 1

    pipeline, status_msg = _build_pipeline(app_settings)
    if pipeline is None:
        print(f"Error: {status_msg}", file=sys.stderr)
        return 1
    print(f"Providers: {status_msg}")
    print()

    timeout = args.timeout if args.timeout is not None else app_settings.sync_deadline
    try:
        report = await pipeline.sync(folder_id, timeout=timeout)
    except FolderLensError as exc:
        print(f"Error: could not list folder {folder_id}: {exc}", file=sys.stderr)
        return 1

    for outcome in report.per_file:
        line = (
            f"  [{outcome.status.value:<9}] {outcome.name} "
            f"({outcome.chunks}/{outcome.attempted_chunks} chunks)"
        )
        note = outcome.error or outcome.detail
        if note:
            line += f" - {note}"
        print(line)
    print()
    print(report.summary_message())
    if report.deadline_exceeded:
        print("Sync deadline exceeded; unfinished files are marked abandoned.")
    return 0


async def _handle_ask(args: argparse.Namespace, app_settings: Settings) -> int:
    embedding_provider = _build_embedding_provider(app_settings)
    if embedding_provider is None:
        print("Error: OPENAI_API_KEY is required for ask.", file=sys.stderr)
        return 1

    from folderlens.providers.llm.openai_provider import OpenAILLMProvider
    from folderlens.services.qa_service import QAService
    from folderlens.services.retrieval_service import RetrievalEngine

    retrieval = RetrievalEngine(
        embedding_provider=embedding_provider,
        vector_store=_build_vector_store(app_settings, embedding_provider.get_dimension()),
        default_top_k=app_settings.retrieval_top_k,
    )
    service = QAService(
        retrieval=retrieval,
        llm=OpenAILLMProvider(settings=app_settings),
        top_k=app_settings.retrieval_top_k,
    )
    try:
        result = await service.ask(args.question)
    except FolderLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(result.answer)
    if result.sources:
        print()
        print(f"Sources (confidence {result.confidence:.2f}):")
        for source in result.sources:
            print(f"  - {source.title} [chunk {source.chunk_index}, score {source.score:.3f}]")
    return 0


async def _handle_preview(args: argparse.Namespace, app_settings: Settings) -> int:
    from folderlens.services.preview_service import PreviewService

    service = PreviewService(vector_store=_build_vector_store(app_settings))
    try:
        preview = await service.preview(args.file_id)
    except FolderLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"{preview.chunk_count} chunk(s) indexed for {preview.source_file_id}")
    for chunk in preview.chunks:
        print()
        print(f"--- chunk {chunk.chunk_index} ({chunk.title}) ---")
        print(chunk.text)
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    """Print the size of the vector index."""
    try:
        count = await _build_vector_store(app_settings).count()
    except FolderLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Collection:  {app_settings.chromadb_collection}")
    print(f"Directory:   {app_settings.chromadb_persist_dir}")
    print(f"Vectors:     {count}")
    return 0


# ---------------------------------------------------------------------------
# Parser / entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m folderlens.cli",
        description="Sync and query the FolderLens document index.",
    )
    sub = parser.add_subparsers(dest="command")

    sync = sub.add_parser("sync", help="Index every file in the source folder")
    sync.add_argument("--folder-id", default=None, help="Folder to sync (default: GOOGLE_DRIVE_FOLDER_ID)")
    sync.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline in seconds (default: SYNC_TIMEOUT_SECONDS)",
    )

    ask = sub.add_parser("ask", help="Answer a question from the indexed documents")
    ask.add_argument("question", help="The question to ask")

    preview = sub.add_parser("preview", help="Show the indexed chunks of one file")
    preview.add_argument("file_id", help="Source file id")

    sub.add_parser("stats", help="Show index statistics")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, builds Settings from the environment / .env
    file, and dispatches to the handler.  Exits with the handler's code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    if args.command == "sync":
        exit_code = asyncio.run(_handle_sync(args, app_settings))
    elif args.command == "ask":
        exit_code = asyncio.run(_handle_ask(args, app_settings))
    elif args.command == "preview":
        exit_code = asyncio.run(_handle_preview(args, app_settings))
    elif args.command == "stats":
        exit_code = asyncio.run(_handle_stats(app_settings))
    else:
        parser.print_help()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
