"""Corpus snapshot loading, validation and writing."""
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from models.corpus import Corpus, CorpusChunk, CorpusDocument, CorpusMetadata
from services.errors import CorpusError
from config import CORPUS_PATHS, EMBEDDING_DIMENSION, parse_corpus_paths

logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    LOADED = "loaded"
    MISSING = "missing"
    INVALID = "invalid"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"  # No configured source could be loaded


@dataclass
class CorpusSource:
    """A named location a corpus snapshot may be read from."""
    name: str
    path: str


@dataclass
class QuarantinedEntry:
    """A chunk entry rejected during validation."""
    position: int
    chunk_id: Optional[str]
    reason: str


@dataclass
class CorpusLoadResult:
    """Typed outcome of trying one source (or, from `load`, the whole chain)."""
    source: Optional[str]
    status: LoadStatus
    corpus: Optional[Corpus] = None
    path: Optional[str] = None
    quarantined: List[QuarantinedEntry] = field(default_factory=list)
    error: Optional[str] = None
    attempts: List["CorpusLoadResult"] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == LoadStatus.LOADED

    @property
    def chunk_count(self) -> int:
        return len(self.corpus.chunks) if self.corpus else 0


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "entry"
    return f"{location}: {first.get('msg', 'invalid value')}"


def parse_corpus(
    payload: Any,
    expected_dimension: Optional[int] = None
) -> Tuple[Corpus, List[QuarantinedEntry]]:
    """
    Validate a decoded corpus payload entry by entry.

    Chunk entries that fail the schema, carry an embedding of the wrong
    length or repeat an earlier id are quarantined; the rest are kept.

    Args:
        payload: Decoded JSON document
        expected_dimension: Required embedding length; defaults to the
            dimension declared in the corpus metadata

    Returns:
        (validated corpus, quarantined entries)

    Raises:
        CorpusError: If the document as a whole is not a corpus
    """
    if not isinstance(payload, dict):
        raise CorpusError("Corpus root must be a JSON object")

    try:
        metadata = CorpusMetadata.model_validate(payload.get("metadata") or {})
    except ValidationError as e:
        raise CorpusError(f"Invalid corpus metadata: {_describe_validation_error(e)}") from e

    raw_chunks = payload.get("chunks", [])
    if not isinstance(raw_chunks, list):
        raise CorpusError("Corpus 'chunks' must be a list")

    raw_documents = payload.get("documents", [])
    if not isinstance(raw_documents, list):
        raise CorpusError("Corpus 'documents' must be a list")

    dimension = expected_dimension or metadata.embedding_dimension
    if expected_dimension and expected_dimension != metadata.embedding_dimension:
        logger.warning(
            f"Corpus declares dimension {metadata.embedding_dimension}, "
            f"index expects {expected_dimension}"
        )

    documents: List[CorpusDocument] = []
    for raw in raw_documents:
        try:
            documents.append(CorpusDocument.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Ignoring invalid document entry: {_describe_validation_error(e)}")

    chunks: List[CorpusChunk] = []
    quarantined: List[QuarantinedEntry] = []
    seen_ids = set()

    for position, raw in enumerate(raw_chunks):
        raw_id = raw.get("id") if isinstance(raw, dict) else None

        try:
            entry = CorpusChunk.model_validate(raw)
        except ValidationError as e:
            quarantined.append(QuarantinedEntry(position, raw_id, _describe_validation_error(e)))
            continue

        if len(entry.embedding) != dimension:
            quarantined.append(QuarantinedEntry(
                position, entry.id,
                f"embedding has {len(entry.embedding)} dimensions, expected {dimension}"
            ))
            continue

        if entry.id in seen_ids:
            quarantined.append(QuarantinedEntry(position, entry.id, "duplicate chunk id"))
            continue

        seen_ids.add(entry.id)
        chunks.append(entry)

    if metadata.total_chunks and metadata.total_chunks != len(raw_chunks):
        logger.warning(
            f"Corpus metadata reports {metadata.total_chunks} chunks, file holds {len(raw_chunks)}"
        )

    return Corpus(metadata=metadata, documents=documents, chunks=chunks), quarantined


class CorpusLoader:
    """Try an ordered list of corpus sources and keep the first that loads."""

    def __init__(self, sources: Sequence[CorpusSource], expected_dimension: Optional[int] = None):
        """
        Initialize CorpusLoader.

        Args:
            sources: Sources in priority order
            expected_dimension: Required embedding length (None trusts the corpus metadata)
        """
        self.sources = list(sources)
        self.expected_dimension = expected_dimension

    @classmethod
    def from_config(
        cls,
        corpus_paths: str = CORPUS_PATHS,
        expected_dimension: Optional[int] = EMBEDDING_DIMENSION
    ) -> "CorpusLoader":
        sources = [CorpusSource(name, path) for name, path in parse_corpus_paths(corpus_paths)]
        return cls(sources, expected_dimension=expected_dimension)

    def load(self) -> CorpusLoadResult:
        """
        Load the first usable source.

        Never raises: when nothing loads, the result has status UNAVAILABLE
        and lists every attempt.

        Returns:
            The successful source's result, or an UNAVAILABLE result
        """
        attempts: List[CorpusLoadResult] = []

        for source in self.sources:
            result = self.load_source(source)
            attempts.append(result)
            if result.ok:
                result.attempts = attempts
                return result

        logger.warning(
            "No pre-computed corpus could be loaded - starting with empty index "
            f"(tried: {', '.join(f'{a.source}={a.status.value}' for a in attempts) or 'nothing'})"
        )
        return CorpusLoadResult(source=None, status=LoadStatus.UNAVAILABLE, attempts=attempts)

    def load_source(self, source: CorpusSource) -> CorpusLoadResult:
        """
        Read and validate one source.

        Args:
            source: Source to read

        Returns:
            Result with status LOADED, MISSING, INVALID or EMPTY
        """
        path = Path(source.path)

        if not path.exists():
            logger.info(f"Corpus source '{source.name}' not found at {path}")
            return CorpusLoadResult(source=source.name, status=LoadStatus.MISSING, path=str(path))

        logger.info(f"Loading corpus '{source.name}' from: {path}")

        try:
            with path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
            corpus, quarantined = parse_corpus(payload, self.expected_dimension)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, CorpusError) as e:
            logger.error(f"Failed to load corpus '{source.name}': {str(e)}")
            return CorpusLoadResult(
                source=source.name, status=LoadStatus.INVALID, path=str(path), error=str(e)
            )

        if quarantined:
            logger.warning(f"Quarantined {len(quarantined)} malformed chunk entries in '{source.name}'")
            for entry in quarantined[:5]:
                logger.warning(f"  #{entry.position} ({entry.chunk_id or 'no id'}): {entry.reason}")

        if not corpus.chunks:
            logger.warning(f"Corpus '{source.name}' has no usable chunks")
            return CorpusLoadResult(
                source=source.name, status=LoadStatus.EMPTY, corpus=corpus,
                path=str(path), quarantined=quarantined
            )

        logger.info(
            f"Found {corpus.metadata.total_documents or len(corpus.documents)} documents "
            f"with {len(corpus.chunks)} chunks in '{source.name}'"
        )
        return CorpusLoadResult(
            source=source.name, status=LoadStatus.LOADED, corpus=corpus,
            path=str(path), quarantined=quarantined
        )


def build_corpus_snapshot(
    documents: List[CorpusDocument],
    chunks: List[CorpusChunk],
    chunk_size: int,
    chunk_overlap: int,
    embedding_model: str,
    embedding_dimension: int
) -> Corpus:
    """Assemble a corpus snapshot with freshly computed metadata."""
    metadata = CorpusMetadata(
        total_documents=len(documents),
        total_chunks=len(chunks),
        embedding_dimension=embedding_dimension,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        embedding_model=embedding_model,
        created_at=datetime.now(timezone.utc).isoformat()
    )
    return Corpus(metadata=metadata, documents=documents, chunks=chunks)


def write_corpus(path: str, corpus: Corpus) -> None:
    """
    Write a snapshot as JSON, replacing the target only once fully written.

    Args:
        path: Destination file
        corpus: Snapshot to write
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(target.suffix + ".tmp")

    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(corpus.to_json_dict(), f)
    os.replace(tmp_path, target)

    logger.info(f"Wrote corpus with {len(corpus.chunks)} chunks to {target}")


DEFAULT_CORPUS_STATS: Dict[str, Any] = {
    "total_documents": 0,
    "total_chunks": 0,
    "embedding_dimension": 384,
    "processed_docs": 0,
    "embedding_model": "all-MiniLM-L6-v2",
    "created_at": None,
    "chunk_size": 1000,
    "chunk_overlap": 200,
}


def read_corpus_stats(path: Optional[str]) -> Dict[str, Any]:
    """
    Summarize an on-disk snapshot without validating its chunks.

    Missing or unreadable files yield the default stats.

    Args:
        path: Snapshot file

    Returns:
        Dictionary of corpus statistics
    """
    if not path or not Path(path).exists():
        return dict(DEFAULT_CORPUS_STATS)

    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise CorpusError("Corpus root must be a JSON object")
        metadata = CorpusMetadata.model_validate(payload.get("metadata") or {})
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, CorpusError, ValidationError) as e:
        logger.error(f"Corpus stats error for {path}: {str(e)}")
        return dict(DEFAULT_CORPUS_STATS)

    documents = payload.get("documents") if isinstance(payload.get("documents"), list) else []
    chunks = payload.get("chunks") if isinstance(payload.get("chunks"), list) else []

    return {
        "total_documents": metadata.total_documents or len(documents),
        "total_chunks": metadata.total_chunks or len(chunks),
        "embedding_dimension": metadata.embedding_dimension,
        "processed_docs": len(documents),
        "embedding_model": metadata.embedding_model,
        "created_at": metadata.created_at,
        "chunk_size": metadata.chunk_size,
        "chunk_overlap": metadata.chunk_overlap,
    }
