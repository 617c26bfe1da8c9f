"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from typing import List, Optional

from models.api import SearchResult
from models.chunk import ScoredChunk
from services.embedding_model import BaseEmbeddingModel
from services.errors import EmbeddingError, SearchUnavailableError
from services.text_cleaner import clean_content
from services.vector_store import VectorStore
from config import DEFAULT_TOP_K, RELEVANCE_THRESHOLD

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed queries and rank indexed chunks against them."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: BaseEmbeddingModel,
        relevance_threshold: Optional[float] = RELEVANCE_THRESHOLD,
        default_top_k: int = DEFAULT_TOP_K
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: Embedding model for query embedding
            relevance_threshold: Minimum score to keep a hit; None disables filtering
            default_top_k: Result count when the caller does not pass one
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.relevance_threshold = relevance_threshold
        self.default_top_k = default_top_k
        logger.info("Initialized RetrievalEngine")

    async def retrieve(self, query: str, top_k: Optional[int] = None) -> List[ScoredChunk]:
        """
        Retrieve relevant chunks for a query.

        1. Embed the user query
        2. Rank every indexed chunk by cosine similarity
        3. Apply the relevance threshold when one is configured

        There is no threshold by default: query-time and corpus-time
        embeddings may come from different sources, so absolute scores are
        not comparable to a fixed cutoff.

        Args:
            query: User question
            top_k: Maximum number of chunks to return

        Returns:
            Scored chunks sorted by relevance, empty for an empty query or index

        Raises:
            ValueError: If top_k is negative
            SearchUnavailableError: If the query cannot be embedded or searched
        """
        # Handle empty query strings gracefully
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        top_k = top_k or self.default_top_k
        if top_k < 0:
            raise ValueError("top_k must be positive")

        if len(self.vector_store) == 0:
            logger.info("Index is empty, returning empty results")
            return []

        try:
            logger.debug(f"Embedding query: {query[:100]}...")
            query_embedding = await self.embedding_model.embed_text(query)
        except (EmbeddingError, ValueError) as e:
            logger.error(f"Failed to embed query: {str(e)}")
            raise SearchUnavailableError("Search is temporarily unavailable") from e

        try:
            scored_chunks = self.vector_store.search(
                query_embedding,
                top_k=top_k,
                min_score=self.relevance_threshold
            )
        except ValueError as e:
            # Dimension mismatch or a non-finite query vector
            logger.error(f"Query embedding is unusable for this index: {str(e)}")
            raise SearchUnavailableError("Search is temporarily unavailable") from e

        if scored_chunks:
            logger.info(
                f"Retrieved {len(scored_chunks)} chunks "
                f"(top score: {scored_chunks[0].relevance_score:.3f})"
            )
            logger.debug(
                "Top scores: "
                + ", ".join(
                    f"{s.chunk.chunk_id[:30]}={s.relevance_score * 100:.1f}%" for s in scored_chunks
                )
            )
        else:
            logger.info("No chunks found for query")

        return scored_chunks

    async def search(self, query: str, top_k: Optional[int] = None) -> List[SearchResult]:
        """
        Query interface: ranked, display-ready results.

        Args:
            query: User question
            top_k: Maximum number of results

        Returns:
            SearchResult list sorted by descending score
        """
        scored_chunks = await self.retrieve(query, top_k=top_k)
        return [self.to_result(scored) for scored in scored_chunks]

    @staticmethod
    def to_result(scored: ScoredChunk) -> SearchResult:
        chunk = scored.chunk
        return SearchResult(
            chunk_id=chunk.chunk_id,
            content=clean_content(chunk.content),
            document_title=chunk.document_title or "Unknown Document",
            section_name=chunk.section_name or "Unknown Section",
            page_number=chunk.page_number,
            score=scored.relevance_score
        )
