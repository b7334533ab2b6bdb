"""FolderLens domain models -- re-exports all public model classes.

- **documents** -- SourceFile, ExtractedDocument, Chunk, ChunkMetadata, IndexedVector
- **ingestion** -- FileStatus, FileOutcome, SyncReport
- **retrieval** -- RetrievalMatch, RetrievalResult, SourceReference, AskResult, previews
- **review** -- AnalysisIssue, ModelAnalysis, AggregateResult, PageReview
- **transcript** -- TranscriptResult
"""

from folderlens.models.documents import (
    Chunk,
    ChunkMetadata,
    ExtractedDocument,
    IndexedVector,
    SourceFile,
    make_vector_id,
)
from folderlens.models.ingestion import FileOutcome, FileStatus, SyncReport
from folderlens.models.retrieval import (
    AskResult,
    ChatMessage,
    DocumentPreview,
    PreviewChunk,
    RetrievalMatch,
    RetrievalResult,
    SourceReference,
)
from folderlens.models.review import (
    AggregateResult,
    AnalysisIssue,
    ModelAnalysis,
    PageReview,
    Priority,
    Severity,
)
from folderlens.models.transcript import TranscriptResult

__all__ = [
    "AggregateResult",
    "AnalysisIssue",
    "AskResult",
    "ChatMessage",
    "Chunk",
    "ChunkMetadata",
    "DocumentPreview",
    "ExtractedDocument",
    "FileOutcome",
    "FileStatus",
    "IndexedVector",
    "ModelAnalysis",
    "PageReview",
    "PreviewChunk",
    "Priority",
    "RetrievalMatch",
    "RetrievalResult",
    "Severity",
    "SourceFile",
    "SourceReference",
    "SyncReport",
    "TranscriptResult",
    "make_vector_id",
]
