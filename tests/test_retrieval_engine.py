"""Unit tests for RetrievalEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import AsyncMock, Mock
from models.chunk import Chunk, ScoredChunk
from services.errors import EmbeddingError, SearchUnavailableError
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore


def make_chunk(chunk_id: str, content: str, **kwargs) -> Chunk:
    return Chunk(
        chunk_id=chunk_id,
        content=content,
        document_id="doc1",
        page_number=kwargs.pop("page_number", 1),
        chunk_index=0,
        **kwargs
    )


class TestRetrievalEngine:
    """Test suite for RetrievalEngine class."""

    @pytest.fixture
    def vector_store(self):
        store = VectorStore(dimension=2)
        store.insert(make_chunk("doc1-chunk-0", "Pricing details", document_title="Guide",
                                section_name="Pricing"), [1.0, 0.0])
        store.insert(make_chunk("doc1-chunk-1", "Setup steps"), [0.0, 1.0])
        store.insert(make_chunk("doc1-chunk-2", "Mixed topic"), [1.0, 1.0])
        return store

    @pytest.fixture
    def mock_embedding_model(self):
        """Create a mock embedding model."""
        model = Mock()
        model.embed_text = AsyncMock(return_value=[1.0, 0.0])
        return model

    @pytest.fixture
    def retrieval_engine(self, vector_store, mock_embedding_model):
        return RetrievalEngine(vector_store, mock_embedding_model, relevance_threshold=None)

    def test_initialization(self, retrieval_engine, vector_store, mock_embedding_model):
        assert retrieval_engine.vector_store is vector_store
        assert retrieval_engine.embedding_model is mock_embedding_model
        assert retrieval_engine.default_top_k == 5

    @pytest.mark.asyncio
    async def test_retrieve_empty_query(self, retrieval_engine, mock_embedding_model):
        """Empty queries return no results without calling the embedder."""
        assert await retrieval_engine.retrieve("") == []
        assert await retrieval_engine.retrieve("   ") == []
        mock_embedding_model.embed_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_retrieve_empty_index(self, mock_embedding_model):
        engine = RetrievalEngine(VectorStore(dimension=2), mock_embedding_model)

        assert await engine.retrieve("anything") == []
        mock_embedding_model.embed_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_retrieve_sorted_by_score(self, retrieval_engine, mock_embedding_model):
        results = await retrieval_engine.retrieve("pricing", top_k=3)

        assert [r.chunk.chunk_id for r in results] == ["doc1-chunk-0", "doc1-chunk-2", "doc1-chunk-1"]
        assert results[0].relevance_score == pytest.approx(1.0)
        mock_embedding_model.embed_text.assert_awaited_once_with("pricing")

    @pytest.mark.asyncio
    async def test_retrieve_uses_default_top_k(self, vector_store, mock_embedding_model):
        engine = RetrievalEngine(vector_store, mock_embedding_model, default_top_k=2)

        assert len(await engine.retrieve("pricing")) == 2
        assert len(await engine.retrieve("pricing", top_k=1)) == 1

    @pytest.mark.asyncio
    async def test_relevance_threshold(self, vector_store, mock_embedding_model):
        engine = RetrievalEngine(vector_store, mock_embedding_model, relevance_threshold=0.5)

        results = await engine.retrieve("pricing", top_k=5)

        assert [r.chunk.chunk_id for r in results] == ["doc1-chunk-0", "doc1-chunk-2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [EmbeddingError("backend down"), ValueError("bad text")])
    async def test_embedding_failure_is_unavailable(self, retrieval_engine, mock_embedding_model, error):
        mock_embedding_model.embed_text.side_effect = error

        with pytest.raises(SearchUnavailableError):
            await retrieval_engine.retrieve("pricing")

    @pytest.mark.asyncio
    async def test_query_dimension_mismatch_is_unavailable(self, retrieval_engine, mock_embedding_model):
        mock_embedding_model.embed_text.return_value = [1.0, 0.0, 0.0]

        with pytest.raises(SearchUnavailableError):
            await retrieval_engine.retrieve("pricing")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("embedding", [[float("inf"), 0.0], [float("nan"), 1.0]])
    async def test_non_finite_query_is_unavailable(self, retrieval_engine, mock_embedding_model, embedding):
        mock_embedding_model.embed_text.return_value = embedding

        with pytest.raises(SearchUnavailableError):
            await retrieval_engine.retrieve("pricing")

    @pytest.mark.asyncio
    async def test_negative_top_k_is_rejected(self, retrieval_engine, mock_embedding_model):
        with pytest.raises(ValueError, match="top_k"):
            await retrieval_engine.retrieve("pricing", top_k=-1)

        mock_embedding_model.embed_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_returns_display_results(self, retrieval_engine):
        results = await retrieval_engine.search("pricing", top_k=2)

        first = results[0]
        assert first.chunk_id == "doc1-chunk-0"
        assert first.document_title == "Guide"
        assert first.section_name == "Pricing"
        assert first.page_number == 1
        assert first.score == pytest.approx(1.0)

        # Missing titles and sections fall back to placeholders
        assert results[1].document_title == "Unknown Document"
        assert results[1].section_name == "Unknown Section"

    def test_to_result_cleans_content(self):
        scored = ScoredChunk(
            chunk=make_chunk("c", "<p>Plans &amp; pricing</p>\n\n  start  here"),
            relevance_score=0.42
        )

        result = RetrievalEngine.to_result(scored)

        assert result.content == "Plans & pricing start here"
        assert result.score == 0.42
