"""Collaborator interfaces (abstract base classes).

Every external service FolderLens talks to sits behind one of these
contracts so services depend on interfaces, and tests substitute fakes.
"""

from folderlens.interfaces.embedding_provider import IEmbeddingProvider
from folderlens.interfaces.file_store_provider import IFileStoreProvider, StoredFile
from folderlens.interfaces.llm_provider import ILLMProvider
from folderlens.interfaces.page_fetcher import IPageFetcher, PageContent
from folderlens.interfaces.transcription_provider import (
    ISpeechProvider,
    ITranscriptionProvider,
    TranscriptionResult,
)
from folderlens.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IFileStoreProvider",
    "ILLMProvider",
    "IPageFetcher",
    "ISpeechProvider",
    "ITranscriptionProvider",
    "IVectorStoreProvider",
    "PageContent",
    "StoredFile",
    "TranscriptionResult",
]
