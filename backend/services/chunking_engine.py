"""Chunking engine with structure-aware splitting and a sliding-window fallback."""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from models.chunk import Chunk, ChunkMetadata
from models.document import Document, Page
from services.errors import ConfigurationError
from config import CHUNK_SIZE, CHUNK_OVERLAP, MIN_CHUNK_SIZE, MAX_CHUNK_SIZE

logger = logging.getLogger(__name__)

# Markdown-style heading: 1-6 '#' markers, whitespace, heading text
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")

# Chunks with fewer words than this are merge candidates
MIN_WORD_COUNT = 10


@dataclass
class ChunkingConfig:
    """Chunk sizing parameters, all in characters."""
    chunk_size: int = CHUNK_SIZE
    overlap: int = CHUNK_OVERLAP
    min_chunk_size: int = MIN_CHUNK_SIZE
    max_chunk_size: int = MAX_CHUNK_SIZE

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap < 0:
            raise ConfigurationError(f"overlap cannot be negative, got {self.overlap}")
        if self.overlap >= self.chunk_size:
            raise ConfigurationError(
                f"overlap ({self.overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )
        if self.min_chunk_size < 0:
            raise ConfigurationError(f"min_chunk_size cannot be negative, got {self.min_chunk_size}")
        if self.min_chunk_size > self.max_chunk_size:
            raise ConfigurationError(
                f"min_chunk_size ({self.min_chunk_size}) cannot exceed "
                f"max_chunk_size ({self.max_chunk_size})"
            )

    @property
    def step(self) -> int:
        """Distance between consecutive sliding-window starts (never below 1)."""
        return max(1, self.chunk_size - self.overlap)


@dataclass
class StructuralSection:
    """A heading-delimited span of page text."""
    content: str  # Trimmed
    start_position: int
    end_position: int
    section_name: Optional[str] = None


class ChunkingEngine:
    """Segments page text into retrievable, overlap-bounded chunks."""

    def __init__(self, config: Optional[ChunkingConfig] = None):
        """
        Initialize ChunkingEngine.

        Args:
            config: Chunk sizing parameters (defaults from environment)

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = config or ChunkingConfig()

    def chunk_documents(self, documents: List[Document]) -> List[Chunk]:
        """
        Chunk several documents.

        Args:
            documents: Loaded documents

        Returns:
            Chunks of all documents, in document order
        """
        all_chunks = []

        for document in documents:
            logger.info(f"Chunking document: {document.filename}")
            all_chunks.extend(
                self.chunk_document(document.pages, document.document_id, document.title)
            )

        logger.info(f"Created {len(all_chunks)} chunks from {len(documents)} documents")
        return all_chunks

    def chunk_document(
        self,
        pages: List[Page],
        document_id: str,
        document_title: Optional[str] = None
    ) -> List[Chunk]:
        """
        Chunk the pages of one document.

        Chunk indices are global across the document: they start at 0 and
        keep increasing from page to page.

        Args:
            pages: Pages in document order
            document_id: Identifier of the owning document
            document_title: Optional display title

        Returns:
            Ordered list of chunks
        """
        chunks: List[Chunk] = []

        for page in pages:
            page_chunks = self.chunk_page(page, document_id, len(chunks), document_title)
            chunks.extend(page_chunks)

        logger.debug(f"Document {document_id}: {len(pages)} pages -> {len(chunks)} chunks")
        return chunks

    def chunk_page(
        self,
        page: Page,
        document_id: str,
        start_index: int = 0,
        document_title: Optional[str] = None
    ) -> List[Chunk]:
        """
        Chunk a single page.

        Sections that fit within chunk_size become one chunk each; longer
        sections go through the sliding window.

        Args:
            page: Page to chunk
            document_id: Identifier of the owning document
            start_index: chunk_index of the first chunk produced
            document_title: Optional display title

        Returns:
            Chunks for this page
        """
        text = page.text or ""
        if not text.strip():
            return []

        chunks: List[Chunk] = []
        chunk_index = start_index

        for section in self.split_by_structure(text):
            if len(section.content) <= self.config.chunk_size:
                chunks.append(self._create_chunk(
                    content=section.content,
                    document_id=document_id,
                    document_title=document_title,
                    page_number=page.page_number,
                    chunk_index=chunk_index,
                    section_name=section.section_name,
                    start_position=section.start_position,
                    end_position=section.end_position
                ))
                chunk_index += 1
            else:
                window_chunks = self.sliding_window(
                    section,
                    document_id=document_id,
                    page_number=page.page_number,
                    start_index=chunk_index,
                    document_title=document_title
                )
                chunks.extend(window_chunks)
                chunk_index += len(window_chunks)

        return chunks

    def split_by_structure(self, text: str) -> List[StructuralSection]:
        """
        Split page text into heading-delimited sections.

        A heading line opens a new section and belongs to it. Text before the
        first heading forms a section without a name.

        Args:
            text: Page text

        Returns:
            Sections with trimmed content and offsets into `text`
        """
        sections: List[StructuralSection] = []
        current_name: Optional[str] = None
        buffer: List[str] = []
        section_start = 0
        position = 0

        for line in text.split("\n"):
            match = HEADING_PATTERN.match(line)
            if match:
                self._flush_section(sections, buffer, section_start, current_name)
                current_name = match.group(2).strip()
                buffer = []
                section_start = position

            buffer.append(line + "\n")
            position += len(line) + 1

        self._flush_section(sections, buffer, section_start, current_name)

        return sections

    @staticmethod
    def _flush_section(
        sections: List[StructuralSection],
        buffer: List[str],
        section_start: int,
        section_name: Optional[str]
    ) -> None:
        raw = "".join(buffer)
        content = raw.strip()
        if not content:
            return

        leading = len(raw) - len(raw.lstrip())
        start = section_start + leading
        sections.append(StructuralSection(
            content=content,
            start_position=start,
            end_position=start + len(content),
            section_name=section_name or None
        ))

    def sliding_window(
        self,
        section: StructuralSection,
        document_id: str,
        page_number: int,
        start_index: int = 0,
        document_title: Optional[str] = None
    ) -> List[Chunk]:
        """
        Split an oversized section with an overlapping sliding window.

        Each window covers up to chunk_size characters. When more text
        follows, the window is cut at the last whitespace that does not fall
        behind the next window start, so words are kept whole without
        skipping text. Trimmed windows shorter than min_chunk_size are
        dropped. Every window start advances by at least one character and
        the loop stops once a window reaches the end of the section.

        Args:
            section: Section to split
            document_id: Identifier of the owning document
            page_number: Page the section belongs to
            start_index: chunk_index of the first chunk produced
            document_title: Optional display title

        Returns:
            Window chunks in order
        """
        content = section.content
        length = len(content)
        chunks: List[Chunk] = []
        chunk_index = start_index
        start = 0

        while start < length:
            end = min(start + self.config.chunk_size, length)
            next_start = max(start + 1, end - self.config.overlap)

            cut = end
            if end < length:
                boundary = self._last_whitespace(content, lower=next_start, upper=end)
                if boundary is not None:
                    cut = boundary

            chunk_text = content[start:cut].strip()
            if chunk_text and len(chunk_text) >= self.config.min_chunk_size:
                chunks.append(self._create_chunk(
                    content=chunk_text,
                    document_id=document_id,
                    document_title=document_title,
                    page_number=page_number,
                    chunk_index=chunk_index,
                    section_name=section.section_name,
                    start_position=section.start_position + start,
                    end_position=section.start_position + cut
                ))
                chunk_index += 1

            if end >= length:
                break
            start = next_start

        return chunks

    @staticmethod
    def _last_whitespace(content: str, lower: int, upper: int) -> Optional[int]:
        """Index of the last whitespace character in content[lower:upper + 1]."""
        for i in range(upper, lower - 1, -1):
            if content[i].isspace():
                return i
        return None

    def _create_chunk(
        self,
        content: str,
        document_id: str,
        page_number: int,
        chunk_index: int,
        section_name: Optional[str],
        start_position: int,
        end_position: int,
        document_title: Optional[str] = None
    ) -> Chunk:
        return Chunk(
            chunk_id=f"{document_id}-chunk-{chunk_index}",
            content=content,
            document_id=document_id,
            document_title=document_title,
            section_name=section_name,
            page_number=page_number,
            chunk_index=chunk_index,
            metadata=ChunkMetadata(
                start_position=start_position,
                end_position=end_position,
                word_count=len(content.split()),
                char_count=len(content)
            )
        )

    def validate_chunk(self, chunk: Chunk) -> bool:
        """Check that a chunk is within size bounds and carries enough words."""
        return (
            self.config.min_chunk_size <= chunk.metadata.char_count <= self.config.max_chunk_size
            and chunk.metadata.word_count >= MIN_WORD_COUNT
        )

    def merge_small_chunks(self, chunks: List[Chunk]) -> List[Chunk]:
        """
        Collapse runs of consecutive invalid chunks into single chunks.

        Valid chunks pass through unchanged. A run of invalid chunks is
        merged when a valid chunk or the end of the sequence is reached.

        Args:
            chunks: Chunks in document order

        Returns:
            Chunks with invalid runs merged
        """
        merged: List[Chunk] = []
        pending: List[Chunk] = []

        for chunk in chunks:
            if self.validate_chunk(chunk):
                if pending:
                    merged.append(self._merge_chunk_group(pending))
                    pending = []
                merged.append(chunk)
            else:
                pending.append(chunk)

        if pending:
            merged.append(self._merge_chunk_group(pending))

        if len(merged) < len(chunks):
            logger.debug(f"Merged {len(chunks)} chunks into {len(merged)}")
        return merged

    def _merge_chunk_group(self, chunks: List[Chunk]) -> Chunk:
        if len(chunks) == 1:
            return chunks[0]

        first, last = chunks[0], chunks[-1]
        content = "\n\n".join(c.content for c in chunks)

        return Chunk(
            chunk_id=f"{first.document_id}-merged-{first.chunk_index}-{last.chunk_index}",
            content=content,
            document_id=first.document_id,
            document_title=first.document_title,
            section_name=first.section_name,
            page_number=first.page_number,
            chunk_index=first.chunk_index,
            metadata=ChunkMetadata(
                start_position=min(c.metadata.start_position for c in chunks),
                end_position=max(c.metadata.end_position for c in chunks),
                word_count=len(content.split()),
                char_count=len(content)
            )
        )
