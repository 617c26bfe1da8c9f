"""In-memory vector store with cosine-similarity search."""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from models.chunk import Chunk, ScoredChunk
from models.corpus import Corpus
from services.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    """Read-only summary of the index."""
    total_chunks: int
    average_chunk_length: float
    dimension: int

    def to_dict(self) -> dict:
        return {
            "total_chunks": self.total_chunks,
            "average_chunk_length": self.average_chunk_length,
            "dimension": self.dimension,
        }


@dataclass
class InsertReport:
    """Outcome of a batch insert."""
    inserted: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (chunk_id, reason)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


class VectorStore:
    """
    Store chunk embeddings in memory and serve top-K cosine-similarity queries.

    Search is a full linear scan over a cached (n x dimension) matrix. All
    mutations and the snapshot taken by `search` share one lock; the scan
    itself runs on the immutable snapshot, outside the lock.
    """

    def __init__(
        self,
        dimension: Optional[int] = None,
        relevance_threshold: Optional[float] = None
    ):
        """
        Initialize an empty vector store.

        Args:
            dimension: Required vector length; None lets the first insert fix it
            relevance_threshold: Minimum score for search hits, None for no threshold
        """
        if dimension is not None and dimension <= 0:
            raise ValueError("dimension must be positive")

        self._fixed_dimension = dimension
        self.relevance_threshold = relevance_threshold
        self._entries: Dict[str, Tuple[np.ndarray, Chunk]] = {}
        self._lock = threading.RLock()
        self._snapshot_cache: Optional[Tuple[np.ndarray, np.ndarray, List[Chunk]]] = None

        logger.info(
            f"Initialized VectorStore (dimension={dimension or 'auto'}, "
            f"threshold={relevance_threshold if relevance_threshold is not None else 'off'})"
        )

    @property
    def dimension(self) -> int:
        """Vector length enforced on inserts (0 while unknown)."""
        with self._lock:
            return self._expected_dimension() or 0

    def _expected_dimension(self) -> Optional[int]:
        if self._fixed_dimension is not None:
            return self._fixed_dimension
        for vector, _ in self._entries.values():
            return vector.shape[0]
        return None

    def _prepare_vector(self, vector, chunk_id: str) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float64)
        if array.ndim != 1 or array.size == 0:
            raise ValueError(f"Embedding for {chunk_id} must be a non-empty flat vector")
        if not np.all(np.isfinite(array)):
            raise ValueError(f"Embedding for {chunk_id} contains NaN or infinite values")

        expected = self._expected_dimension()
        if expected is not None and array.shape[0] != expected:
            # Overwriting the only entry may change an auto-detected dimension
            if not (
                self._fixed_dimension is None
                and len(self._entries) == 1
                and chunk_id in self._entries
            ):
                raise DimensionMismatchError(expected, array.shape[0], chunk_id)
        return array

    def _insert_locked(self, chunk: Chunk, vector) -> None:
        array = self._prepare_vector(vector, chunk.chunk_id)
        self._entries[chunk.chunk_id] = (array, chunk)
        self._snapshot_cache = None

    def insert(self, chunk: Chunk, vector) -> None:
        """
        Add a chunk, replacing any entry with the same chunk_id.

        Args:
            chunk: Chunk payload
            vector: Its embedding

        Raises:
            ValueError: If the vector is empty or not finite
            DimensionMismatchError: If the vector length differs from the index dimension
        """
        with self._lock:
            self._insert_locked(chunk, vector)

    def insert_batch(self, items: Iterable[Tuple[Chunk, List[float]]]) -> InsertReport:
        """
        Add many chunks in one critical section.

        Invalid items are skipped and reported; the rest are inserted.

        Args:
            items: (chunk, vector) pairs

        Returns:
            InsertReport listing inserted and skipped chunk ids
        """
        report = InsertReport()

        with self._lock:
            for chunk, vector in items:
                try:
                    self._insert_locked(chunk, vector)
                    report.inserted.append(chunk.chunk_id)
                except ValueError as e:
                    report.skipped.append((chunk.chunk_id, str(e)))

        for chunk_id, reason in report.skipped:
            logger.warning(f"Skipped {chunk_id}: {reason}")
        logger.debug(f"Inserted {report.inserted_count} chunks, skipped {report.skipped_count}")
        return report

    def load(self, corpus: Optional[Corpus]) -> int:
        """
        Bulk-populate from a validated corpus snapshot.

        A missing or empty corpus leaves the store empty; it is logged, not raised.

        Args:
            corpus: Validated corpus, or None

        Returns:
            Number of chunks inserted
        """
        if corpus is None or not corpus.chunks:
            logger.warning("No corpus chunks to load - starting with empty index")
            return 0

        report = self.insert_batch(
            (entry.to_chunk(), entry.embedding) for entry in corpus.chunks
        )
        logger.info(
            f"Loaded {report.inserted_count} chunks into index "
            f"({report.skipped_count} skipped, {len(self)} total)"
        )
        return report.inserted_count

    def remove(self, chunk_id: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if an entry existed
        """
        with self._lock:
            if chunk_id not in self._entries:
                return False
            del self._entries[chunk_id]
            self._snapshot_cache = None
            return True

    def remove_document(self, document_id: str) -> int:
        """Delete every chunk of a document; returns how many were removed."""
        with self._lock:
            doomed = [cid for cid, (_, chunk) in self._entries.items() if chunk.document_id == document_id]
            for chunk_id in doomed:
                del self._entries[chunk_id]
            if doomed:
                self._snapshot_cache = None
            return len(doomed)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()
            self._snapshot_cache = None
        logger.info("Cleared all chunks from vector store")

    def get(self, chunk_id: str) -> Optional[Chunk]:
        with self._lock:
            entry = self._entries.get(chunk_id)
            return entry[1] if entry else None

    def count(self) -> int:
        """Get the total number of chunks in the store."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, chunk_id: str) -> bool:
        with self._lock:
            return chunk_id in self._entries

    def _snapshot(self) -> Tuple[np.ndarray, np.ndarray, List[Chunk]]:
        """Matrix of vectors, their norms and the chunks, in insertion order."""
        with self._lock:
            if self._snapshot_cache is None:
                if self._entries:
                    vectors, chunks = zip(*self._entries.values())
                    matrix = np.vstack(vectors)
                    norms = np.linalg.norm(matrix, axis=1)
                    self._snapshot_cache = (matrix, norms, list(chunks))
                else:
                    self._snapshot_cache = (np.empty((0, 0)), np.empty(0), [])
            return self._snapshot_cache

    @staticmethod
    def _cosine_scores(query: np.ndarray, matrix: np.ndarray, norms: np.ndarray) -> np.ndarray:
        """Cosine similarity of query against every row, negatives and zero norms as 0."""
        query_norm = np.linalg.norm(query)
        denominators = norms * query_norm
        dots = matrix @ query

        scores = np.zeros(matrix.shape[0], dtype=np.float64)
        nonzero = denominators > 0
        scores[nonzero] = dots[nonzero] / denominators[nonzero]
        return np.clip(scores, 0.0, 1.0)

    def search(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        min_score: Optional[float] = None
    ) -> List[ScoredChunk]:
        """
        Find most similar chunks to query using cosine similarity.

        Negative similarities are treated as no relevance (score 0). Ties
        keep insertion order.

        Args:
            query_embedding: Embedding vector for user query
            top_k: Number of chunks to retrieve
            min_score: Per-call threshold overriding the store default

        Returns:
            Up to top_k ScoredChunk objects sorted by descending score in [0, 1]

        Raises:
            ValueError: If query_embedding is empty or non-finite, or top_k is invalid
            DimensionMismatchError: If the query length differs from the index dimension
        """
        if top_k <= 0:
            raise ValueError("top_k must be positive")

        query = np.asarray(query_embedding, dtype=np.float64)
        if query.ndim != 1 or query.size == 0:
            raise ValueError("Query embedding cannot be empty")
        if not np.all(np.isfinite(query)):
            raise ValueError("Query embedding contains NaN or infinite values")

        matrix, norms, chunks = self._snapshot()
        if not chunks:
            logger.debug("Search on empty index")
            return []

        if query.shape[0] != matrix.shape[1]:
            raise DimensionMismatchError(matrix.shape[1], query.shape[0], "query")

        scores = self._cosine_scores(query, matrix, norms)
        order = np.argsort(-scores, kind="stable")

        threshold = min_score if min_score is not None else self.relevance_threshold

        results: List[ScoredChunk] = []
        for i in order:
            score = float(scores[i])
            if threshold is not None and score < threshold:
                break
            results.append(ScoredChunk(chunk=chunks[i], relevance_score=score))
            if len(results) >= top_k:
                break

        if results:
            logger.debug(
                f"Found {len(results)} chunks for query "
                f"(top score: {results[0].relevance_score:.3f})"
            )
        return results

    def stats(self) -> IndexStats:
        """Total chunks, average content length and vector dimension (0 if empty)."""
        with self._lock:
            entries = list(self._entries.values())

        if not entries:
            return IndexStats(total_chunks=0, average_chunk_length=0.0, dimension=0)

        total_length = sum(len(chunk.content) for _, chunk in entries)
        return IndexStats(
            total_chunks=len(entries),
            average_chunk_length=total_length / len(entries),
            dimension=int(entries[0][0].shape[0])
        )
