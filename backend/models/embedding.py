"""Embedding result models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class EmbeddingOutcome:
    """
    Result of embedding a single item in a batch.

    Exactly one of `vector` or `reason` is set: an embedded item carries its
    vector, a skipped item carries the reason it was skipped.
    """
    item_id: str
    vector: Optional[List[float]] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.vector is not None

    @classmethod
    def embedded(cls, item_id: str, vector: List[float]) -> "EmbeddingOutcome":
        return cls(item_id=item_id, vector=vector)

    @classmethod
    def skipped(cls, item_id: str, reason: str) -> "EmbeddingOutcome":
        return cls(item_id=item_id, reason=reason)


@dataclass
class BatchEmbeddingReport:
    """Per-item outcomes of a batch embedding call, in input order."""
    outcomes: List[EmbeddingOutcome] = field(default_factory=list)

    @property
    def embedded(self) -> List[EmbeddingOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def skipped(self) -> List[EmbeddingOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def embedded_count(self) -> int:
        return len(self.embedded)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)
