"""Folder ingestion for the FolderLens knowledge base.

Pipeline stages: **fetch -> extract -> chunk -> embed -> store**.

1. **Fetch** (via IFileStoreProvider) -- raw bytes of each listed file;
   store-native documents arrive already exported to text.

2. **Extract** (text_extractor.py / TextExtractor) -- PDF, DOCX, RTF, HTML
   and text formats to plain text.

3. **Chunk** (chunker.py / TextChunker) -- paragraph, then sentence, then
   fixed-size tiers with overlapping windows for long fragments.

4. **Embed** (via IEmbeddingProvider) -- one vector per chunk; a failed
   chunk is skipped, not fatal.

5. **Store** (via IVectorStoreProvider) -- one upsert per file with ids
   derived from (file id, chunk index), so re-syncs overwrite.

IngestionPipeline orchestrates all five stages and produces a SyncReport.
"""

from folderlens.services.ingestion.chunker import TextChunker
from folderlens.services.ingestion.ingestion_service import IngestionPipeline
from folderlens.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "IngestionPipeline",
    "TextChunker",
    "TextExtractor",
]
