"""API request and response models."""
from typing import List, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    """Request body for POST /search."""
    query: str = Field(description="Natural-language query")
    top_k: Optional[int] = Field(default=None, ge=1, le=100, description="Maximum number of results")


class SearchResult(BaseModel):
    """A single ranked search hit."""
    chunk_id: str
    content: str
    document_title: str
    section_name: str
    page_number: int
    score: float = Field(ge=0.0, le=1.0)


class PageInput(BaseModel):
    """Extracted text of one page supplied for indexing."""
    page_number: int = Field(ge=1)
    text: str
    sections: List[str] = Field(default_factory=list)


class IndexDocumentRequest(BaseModel):
    """Request body for POST /documents/index."""
    document_id: str = Field(min_length=1)
    title: Optional[str] = None
    pages: List[PageInput]


class SkippedItem(BaseModel):
    chunk_id: str
    reason: str


class IndexDocumentResponse(BaseModel):
    document_id: str
    chunks_created: int
    chunks_indexed: int
    skipped: List[SkippedItem] = Field(default_factory=list)


class IndexStatsResponse(BaseModel):
    total_chunks: int
    average_chunk_length: float
    dimension: int


class CorpusStatsResponse(BaseModel):
    total_documents: int
    total_chunks: int
    embedding_dimension: int
    processed_docs: int
    embedding_model: str
    created_at: Optional[str] = None
    chunk_size: int
    chunk_overlap: int


class RemoveChunkResponse(BaseModel):
    chunk_id: str
    removed: bool
