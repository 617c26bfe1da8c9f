"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ChunkMetadata:
    """Derived statistics for a chunk."""
    start_position: int = 0  # Character offset within the page text
    end_position: int = 0
    word_count: int = 0
    char_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "startPosition": self.start_position,
            "endPosition": self.end_position,
            "wordCount": self.word_count,
            "charCount": self.char_count,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], content: str = "") -> "ChunkMetadata":
        """Build metadata from its wire form, deriving missing counts from content."""
        data = data or {}
        return cls(
            start_position=int(data.get("startPosition", 0)),
            end_position=int(data.get("endPosition", len(content))),
            word_count=int(data.get("wordCount", len(content.split()))),
            char_count=int(data.get("charCount", len(content))),
        )


@dataclass
class Chunk:
    """Represents a document chunk for retrieval."""
    chunk_id: str  # Format: "{document_id}-chunk-{chunk_index}"
    content: str
    document_id: str
    page_number: int
    chunk_index: int
    document_title: Optional[str] = None
    section_name: Optional[str] = None
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase form used by corpus snapshots."""
        return {
            "id": self.chunk_id,
            "content": self.content,
            "documentId": self.document_id,
            "documentTitle": self.document_title,
            "sectionName": self.section_name,
            "pageNumber": self.page_number,
            "chunkIndex": self.chunk_index,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class ScoredChunk:
    """Chunk with relevance score from retrieval."""
    chunk: Chunk
    relevance_score: float  # 0.0 to 1.0
