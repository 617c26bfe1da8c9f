"""Corpus snapshot schema.

A corpus snapshot is a JSON document produced offline by the corpus builder
and loaded at process start:

    {
      "metadata":  {...},
      "documents": [...],
      "chunks":    [{...chunk fields..., "embedding": [float, ...]}]
    }

Field names on the wire are camelCase; the models accept either the wire name
or the Python attribute name.
"""
import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.chunk import Chunk, ChunkMetadata


class CorpusMetadata(BaseModel):
    """Header describing how the snapshot was produced."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    total_documents: int = Field(default=0, alias="totalDocuments", ge=0)
    total_chunks: int = Field(default=0, alias="totalChunks", ge=0)
    embedding_dimension: int = Field(default=384, alias="embeddingDimension", gt=0)
    chunk_size: int = Field(default=1000, alias="chunkSize", gt=0)
    chunk_overlap: int = Field(default=200, alias="chunkOverlap", ge=0)
    embedding_model: str = Field(default="all-MiniLM-L6-v2", alias="embeddingModel")
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class CorpusDocument(BaseModel):
    """A document listed in the snapshot."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(min_length=1)
    title: Optional[str] = None
    filename: Optional[str] = None
    total_pages: Optional[int] = Field(default=None, alias="totalPages", ge=0)


class CorpusChunkMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_position: int = Field(default=0, alias="startPosition", ge=0)
    end_position: int = Field(default=0, alias="endPosition", ge=0)
    word_count: int = Field(default=0, alias="wordCount", ge=0)
    char_count: int = Field(default=0, alias="charCount", ge=0)


class CorpusChunk(BaseModel):
    """A chunk entry with its precomputed embedding."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    content: str
    document_id: Optional[str] = Field(default=None, alias="documentId")
    document_title: Optional[str] = Field(default=None, alias="documentTitle")
    section_name: Optional[str] = Field(default=None, alias="sectionName")
    page_number: int = Field(default=1, alias="pageNumber", ge=1)
    chunk_index: int = Field(default=0, alias="chunkIndex", ge=0)
    metadata: Optional[CorpusChunkMetadata] = None
    embedding: List[float] = Field(min_length=1)

    @field_validator("content")
    @classmethod
    def validate_content_not_empty(cls, v: str) -> str:
        """Ensure the chunk carries text."""
        if not v or not v.strip():
            raise ValueError("Chunk content cannot be empty")
        return v

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding_numbers(cls, v: Any) -> Any:
        """Reject anything but a list of plain numbers (no strings, no booleans)."""
        if not isinstance(v, list):
            raise ValueError("Embedding must be a list of numbers")
        for value in v:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("Embedding must contain only numbers")
        return v

    @field_validator("embedding")
    @classmethod
    def validate_embedding_finite(cls, v: List[float]) -> List[float]:
        if not all(math.isfinite(x) for x in v):
            raise ValueError("Embedding contains NaN or infinite values")
        return v

    def to_chunk(self) -> Chunk:
        """Convert to the in-memory Chunk model."""
        if self.metadata is not None:
            metadata = ChunkMetadata(
                start_position=self.metadata.start_position,
                end_position=self.metadata.end_position,
                word_count=self.metadata.word_count,
                char_count=self.metadata.char_count,
            )
        else:
            metadata = ChunkMetadata.from_dict(None, self.content)

        return Chunk(
            chunk_id=self.id,
            content=self.content,
            document_id=self.document_id or "",
            page_number=self.page_number,
            chunk_index=self.chunk_index,
            document_title=self.document_title,
            section_name=self.section_name,
            metadata=metadata,
        )

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: List[float]) -> "CorpusChunk":
        return cls.model_validate({**chunk.to_dict(), "embedding": list(embedding)})


class Corpus(BaseModel):
    """A validated corpus snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    metadata: CorpusMetadata = Field(default_factory=CorpusMetadata)
    documents: List[CorpusDocument] = Field(default_factory=list)
    chunks: List[CorpusChunk] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
