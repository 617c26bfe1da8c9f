"""Integration tests for the Hugging Face embedding backend with the real API (optional)."""
import sys
from pathlib import Path
import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import numpy as np
from services.embedding_model import HuggingFaceEmbeddingModel
from services.vector_store import VectorStore
from models.chunk import Chunk
from config import HUGGINGFACE_API_KEY


@pytest.mark.skipif(
    not HUGGINGFACE_API_KEY,
    reason="HUGGINGFACE_API_KEY not set"
)
class TestEmbeddingIntegration:
    """Integration tests with real Hugging Face API."""

    @pytest.mark.asyncio
    async def test_real_embed_text(self):
        model = HuggingFaceEmbeddingModel()

        result = await model.embed_text("This is a test sentence.")

        # all-MiniLM-L6-v2 produces 384-dimensional embeddings
        assert len(result) == 384
        assert np.linalg.norm(result) == pytest.approx(1.0, abs=1e-6)

    @pytest.mark.asyncio
    async def test_real_embed_batch(self):
        model = HuggingFaceEmbeddingModel()

        results = await model.embed_batch([
            "First test sentence.",
            "Second test sentence.",
            "Third test sentence."
        ])

        assert len(results) == 3
        assert all(len(embedding) == 384 for embedding in results)

    @pytest.mark.asyncio
    async def test_real_semantic_ranking(self):
        model = HuggingFaceEmbeddingModel()
        texts = {
            "billing": "Invoices are emailed on the first day of each month.",
            "install": "Run the installer and follow the setup wizard.",
        }
        vectors = await model.embed_batch(list(texts.values()))

        store = VectorStore(dimension=384)
        for (chunk_id, content), vector in zip(texts.items(), vectors):
            store.insert(Chunk(chunk_id=chunk_id, content=content, document_id="d",
                               page_number=1, chunk_index=0), vector)

        query = await model.embed_text("When will I receive my invoice?")
        assert store.search(query, top_k=1)[0].chunk.chunk_id == "billing"
