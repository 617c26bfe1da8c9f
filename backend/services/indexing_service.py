"""Indexing pipeline: chunk, embed and insert new documents."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models.chunk import Chunk
from models.document import Page
from services.chunking_engine import ChunkingEngine
from services.embedding_model import BaseEmbeddingModel
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IndexingReport:
    """Summary of indexing one document."""
    document_id: str
    chunks_created: int = 0
    indexed: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (chunk_id, reason)

    @property
    def chunks_indexed(self) -> int:
        return len(self.indexed)


class IndexingService:
    """
    Feed documents into the vector store at runtime.

    Embeddings are computed before the store is touched, so the store's
    lock is only held for the final batch insert.
    """

    def __init__(
        self,
        chunking_engine: ChunkingEngine,
        embedding_model: BaseEmbeddingModel,
        vector_store: VectorStore,
        merge_small_chunks: bool = False
    ):
        """
        Initialize the indexing service.

        Args:
            chunking_engine: Splits page text into chunks
            embedding_model: Embeds chunk content
            vector_store: Destination index
            merge_small_chunks: Collapse runs of undersized chunks before embedding
        """
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.merge_small_chunks = merge_small_chunks

    async def index_document(
        self,
        document_id: str,
        pages: List[Page],
        document_title: Optional[str] = None
    ) -> IndexingReport:
        """
        Chunk, embed and index one document.

        Args:
            document_id: Identifier of the document
            pages: Extracted pages in order
            document_title: Optional display title

        Returns:
            IndexingReport with indexed and skipped chunk ids
        """
        logger.info(f"Indexing document {document_id} ({len(pages)} pages)")

        chunks = self.chunking_engine.chunk_document(pages, document_id, document_title)
        if self.merge_small_chunks:
            chunks = self.chunking_engine.merge_small_chunks(chunks)

        report = await self.index_chunks(chunks, document_id)
        logger.info(
            f"Document {document_id}: {report.chunks_created} chunks, "
            f"{report.chunks_indexed} indexed, {len(report.skipped)} skipped"
        )
        return report

    async def index_chunks(self, chunks: List[Chunk], document_id: str = "") -> IndexingReport:
        """
        Embed and index prepared chunks.

        Args:
            chunks: Chunks to index
            document_id: Identifier used in the report

        Returns:
            IndexingReport with indexed and skipped chunk ids
        """
        report = IndexingReport(document_id=document_id, chunks_created=len(chunks))
        if not chunks:
            return report

        embedding_report = await self.embedding_model.embed_many(
            [(chunk.chunk_id, chunk.content) for chunk in chunks]
        )

        to_insert = []
        for chunk, outcome in zip(chunks, embedding_report.outcomes):
            if outcome.ok:
                to_insert.append((chunk, outcome.vector))
            else:
                report.skipped.append((chunk.chunk_id, outcome.reason))

        insert_report = self.vector_store.insert_batch(to_insert)
        report.indexed.extend(insert_report.inserted)
        report.skipped.extend(insert_report.skipped)

        return report

    def remove_document(self, document_id: str) -> int:
        """Drop every indexed chunk of a document."""
        removed = self.vector_store.remove_document(document_id)
        logger.info(f"Removed {removed} chunks of document {document_id}")
        return removed
