"""Document data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Page:
    """Represents a single page of extracted text."""
    page_number: int
    text: str
    word_count: int = 0
    sections: List[str] = field(default_factory=list)  # Headings found on the page


@dataclass
class Document:
    """Represents a loaded PDF document."""
    document_id: str
    filename: str
    pages: List[Page]
    total_pages: int
    title: Optional[str] = None
