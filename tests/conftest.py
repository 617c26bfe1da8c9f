"""Shared fixtures for the backend test suite."""
import hashlib
import sys
from pathlib import Path
from typing import List

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest

from services.embedding_model import BaseEmbeddingModel, normalize_vector
from services.errors import EmbeddingError


class FakeEmbeddingModel(BaseEmbeddingModel):
    """
    Deterministic embedder for tests.

    Vectors are derived from a hash of the text, so equal texts map to equal
    vectors. Texts containing "FAIL" raise EmbeddingError.
    """

    def __init__(self, dimension: int = 8):
        super().__init__(model_name="fake-model", dimension=dimension)
        self.size = dimension
        self.calls: List[List[str]] = []

    def vector_for(self, text: str) -> List[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return normalize_vector([b - 127.5 for b in digest[:self.size]])

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if any("FAIL" in t for t in texts):
            raise EmbeddingError("fake backend failure")
        return [self.vector_for(t) for t in texts]


@pytest.fixture
def fake_embedding_model():
    """Deterministic 8-dimension embedding model."""
    return FakeEmbeddingModel(dimension=8)
