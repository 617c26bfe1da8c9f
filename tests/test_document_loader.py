"""Unit tests for DocumentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import MagicMock, patch
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader, heading_level, slugify


def span(text: str, size: float) -> dict:
    return {"text": text, "size": size}


def make_pdf(pages):
    """Mock PyMuPDF document whose pages return the given block dicts."""
    pdf = MagicMock()
    pdf.__len__.return_value = len(pages)

    page_mocks = []
    for blocks in pages:
        page = MagicMock()
        page.get_text.return_value = {"blocks": blocks}
        page_mocks.append(page)

    pdf.__getitem__.side_effect = lambda i: page_mocks[i]
    return pdf


class TestHelpers:
    """Test suite for the loader helpers."""

    @pytest.mark.parametrize("size,level", [(24, 1), (18.5, 1), (16, 2), (14, 3), (13, 3)])
    def test_heading_level(self, size, level):
        assert heading_level(size) == level

    def test_slugify(self):
        assert slugify("Product Guide v2") == "product-guide-v2"
        assert slugify("  ??  ") == "document"


class TestDocumentLoader:
    """Test suite for DocumentLoader."""

    @patch("services.document_loader.fitz.open")
    def test_load_document_marks_headings(self, mock_open):
        pdf = make_pdf([
            [
                {"lines": [{"spans": [span("Getting Started", 20)]}]},
                {"lines": [
                    {"spans": [span("Install the ", 11), span("agent.", 11)]},
                    {"spans": [span("Configuration", 16)]},
                    {"spans": [span("Edit the file.", 10)]},
                ]},
                {"type": 1},  # image block
            ],
            [
                {"lines": [{"spans": [span("   ", 30)]}, {"spans": [span("Page two text.", 11)]}]},
            ],
        ])
        mock_open.return_value = pdf

        document = DocumentLoader().load_document("/docs/Product Guide.pdf")

        assert document.document_id == "product-guide"
        assert document.title == "Product Guide"
        assert document.filename == "Product Guide.pdf"
        assert document.total_pages == 2

        first = document.pages[0]
        assert first.page_number == 1
        assert first.text == "# Getting Started\n\nInstall the agent.\n## Configuration\nEdit the file."
        assert first.sections == ["Getting Started", "Configuration"]
        assert document.pages[1].text == "Page two text."
        pdf.close.assert_called_once()

    @patch("services.document_loader.fitz.open")
    def test_headings_feed_structural_chunking(self, mock_open):
        mock_open.return_value = make_pdf([[
            {"lines": [{"spans": [span("Overview", 20)]}, {"spans": [span("Intro text.", 11)]}]},
            {"lines": [{"spans": [span("Details", 15)]}, {"spans": [span("Detail text.", 11)]}]},
        ]])

        document = DocumentLoader().load_document("guide.pdf", document_id="guide")
        chunks = ChunkingEngine().chunk_document(document.pages, document.document_id, document.title)

        assert [c.section_name for c in chunks] == ["Overview", "Details"]

    @patch("services.document_loader.fitz.open")
    def test_closes_document_on_error(self, mock_open):
        pdf = make_pdf([[]])
        pdf.__getitem__.side_effect = RuntimeError("corrupt page")
        mock_open.return_value = pdf

        with pytest.raises(RuntimeError):
            DocumentLoader().load_document("broken.pdf")
        pdf.close.assert_called_once()

    def test_missing_directory(self, tmp_path):
        assert DocumentLoader(str(tmp_path / "nope")).load_documents() == []

    @patch("services.document_loader.fitz.open")
    def test_load_documents_skips_corrupt_files(self, mock_open, tmp_path):
        for name in ["a.pdf", "b.PDF", "notes.txt"]:
            (tmp_path / name).write_bytes(b"%PDF")

        def open_pdf(path):
            if path.endswith("a.pdf"):
                raise RuntimeError("cannot open broken document")
            return make_pdf([[{"lines": [{"spans": [span("Body", 11)]}]}]])

        mock_open.side_effect = open_pdf

        documents = DocumentLoader(str(tmp_path)).load_documents()

        assert [d.filename for d in documents] == ["b.PDF"]
        assert documents[0].document_id == "b"
