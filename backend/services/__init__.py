"""Services for the document search core."""
from .errors import (
    SearchCoreError,
    ConfigurationError,
    DimensionMismatchError,
    CorpusError,
    EmbeddingError,
    SearchUnavailableError,
)
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine, ChunkingConfig
from .embedding_model import (
    BaseEmbeddingModel,
    HuggingFaceEmbeddingModel,
    LocalEmbeddingModel,
    create_embedding_model,
)
from .vector_store import VectorStore, IndexStats, InsertReport
from .corpus_loader import CorpusLoader, CorpusSource, CorpusLoadResult, LoadStatus
from .retrieval_engine import RetrievalEngine
from .indexing_service import IndexingService, IndexingReport
from .text_cleaner import clean_content

__all__ = [
    'SearchCoreError', 'ConfigurationError', 'DimensionMismatchError', 'CorpusError',
    'EmbeddingError', 'SearchUnavailableError',
    'DocumentLoader', 'ChunkingEngine', 'ChunkingConfig',
    'BaseEmbeddingModel', 'HuggingFaceEmbeddingModel', 'LocalEmbeddingModel', 'create_embedding_model',
    'VectorStore', 'IndexStats', 'InsertReport',
    'CorpusLoader', 'CorpusSource', 'CorpusLoadResult', 'LoadStatus',
    'RetrievalEngine', 'IndexingService', 'IndexingReport', 'clean_content',
]
