"""Document loading service for PDF processing."""
import logging
import os
import re
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from models.document import Document, Page

logger = logging.getLogger(__name__)

# Markdown heading markers are written for spans above this font size
HEADING_FONT_SIZE = 12


def heading_level(font_size: float) -> int:
    """Map a font size to a heading level (1 is largest)."""
    if font_size > 18:
        return 1  # H1
    if font_size > 14:
        return 2  # H2
    return 3  # H3


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "document"


class DocumentLoader:
    """Loads PDFs and extracts page text with markdown-style headings."""

    def __init__(self, docs_directory: str = "docs"):
        """
        Initialize DocumentLoader.

        Args:
            docs_directory: Path to directory containing PDF files
        """
        self.docs_directory = docs_directory

    def load_documents(self) -> List[Document]:
        """
        Load all PDF files from the documents directory.

        Returns:
            List of Document objects, corrupt files skipped
        """
        documents = []

        if not os.path.exists(self.docs_directory):
            logger.error(f"Documents directory not found: {self.docs_directory}")
            return documents

        pdf_files = [f for f in os.listdir(self.docs_directory) if f.lower().endswith('.pdf')]
        logger.info(f"Found {len(pdf_files)} PDF files in {self.docs_directory}")

        for filename in sorted(pdf_files):
            filepath = os.path.join(self.docs_directory, filename)

            try:
                document = self.load_document(filepath)
                documents.append(document)
                logger.info(f"Loaded {filename}: {document.total_pages} pages")
            except Exception as e:
                # Skip corrupted file and continue
                logger.error(f"Error loading {filename}: {str(e)}", exc_info=True)

        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents

    def load_document(self, filepath: str, document_id: Optional[str] = None) -> Document:
        """
        Load a single PDF file and extract text page-by-page.

        Args:
            filepath: Full path to PDF file
            document_id: Identifier to assign (defaults to a slug of the file name)

        Returns:
            Document object with extracted pages
        """
        filename = os.path.basename(filepath)
        stem = os.path.splitext(filename)[0]

        pdf_document = fitz.open(filepath)
        try:
            pages = []
            for page_num in range(len(pdf_document)):
                text, sections = self._extract_page(pdf_document[page_num])
                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text,
                    word_count=len(text.split()),
                    sections=sections
                ))
        finally:
            pdf_document.close()

        return Document(
            document_id=document_id or slugify(stem),
            filename=filename,
            pages=pages,
            total_pages=len(pages),
            title=stem
        )

    def _extract_page(self, page) -> Tuple[str, List[str]]:
        """
        Extract page text, marking large-font lines as markdown headings.

        Args:
            page: PyMuPDF page

        Returns:
            (page text, heading texts found on the page)
        """
        lines: List[str] = []
        sections: List[str] = []

        for block in page.get_text("dict")["blocks"]:
            if "lines" not in block:
                continue

            for line in block["lines"]:
                spans = line.get("spans", [])
                text = "".join(span["text"] for span in spans).strip()
                if not text:
                    continue

                font_size = max(span["size"] for span in spans)
                if font_size > HEADING_FONT_SIZE and len(text) > 2:
                    lines.append(f"{'#' * heading_level(font_size)} {text}")
                    sections.append(text)
                else:
                    lines.append(text)

            # Blank line between blocks
            lines.append("")

        return "\n".join(lines).strip(), sections
