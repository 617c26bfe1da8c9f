"""Data models for the document search service."""
from .document import Document, Page
from .chunk import Chunk, ChunkMetadata, ScoredChunk
from .embedding import EmbeddingOutcome, BatchEmbeddingReport
from .corpus import Corpus, CorpusChunk, CorpusDocument, CorpusMetadata
from .api import (
    SearchRequest,
    SearchResult,
    PageInput,
    IndexDocumentRequest,
    IndexDocumentResponse,
    IndexStatsResponse,
    CorpusStatsResponse,
    RemoveChunkResponse,
    SkippedItem,
)

__all__ = [
    "Document",
    "Page",
    "Chunk",
    "ChunkMetadata",
    "ScoredChunk",
    "EmbeddingOutcome",
    "BatchEmbeddingReport",
    "Corpus",
    "CorpusChunk",
    "CorpusDocument",
    "CorpusMetadata",
    "SearchRequest",
    "SearchResult",
    "PageInput",
    "IndexDocumentRequest",
    "IndexDocumentResponse",
    "IndexStatsResponse",
    "CorpusStatsResponse",
    "RemoveChunkResponse",
    "SkippedItem",
]
