"""Tests for the corpus build script."""
import json
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import patch
from build_corpus import build, main, parse_args
from models.document import Document, Page
from services.corpus_loader import CorpusLoader, CorpusSource, LoadStatus


def make_document() -> Document:
    pages = [
        Page(page_number=1, text="# Intro\nWelcome to the guide.\n# Setup\nInstall the agent."),
        Page(page_number=2, text="# Broken\nThis section will FAIL to embed."),
    ]
    return Document(document_id="guide", filename="Guide.pdf", pages=pages, total_pages=2, title="Guide")


class TestBuildCorpus:
    """Test suite for the build pipeline."""

    def test_parse_args_defaults(self):
        args = parse_args([])
        assert args.output == "data/corpus.json"
        assert args.batch_size == 16
        assert args.merge_small is False

    @pytest.mark.asyncio
    async def test_build_writes_loadable_snapshot(self, fake_embedding_model, tmp_path):
        output = tmp_path / "corpus.json"
        args = parse_args(["--docs", str(tmp_path), "--output", str(output)])

        with patch("build_corpus.create_embedding_model", return_value=fake_embedding_model), \
                patch("build_corpus.DocumentLoader") as mock_loader:
            mock_loader.return_value.load_documents.return_value = [make_document()]
            written = await build(args)

        assert written == 2

        raw = json.loads(output.read_text(encoding="utf-8"))
        assert raw["metadata"]["totalDocuments"] == 1
        assert raw["metadata"]["totalChunks"] == 2
        assert raw["metadata"]["embeddingModel"] == "fake-model"
        assert raw["metadata"]["embeddingDimension"] == 8
        assert raw["documents"][0] == {"id": "guide", "title": "Guide", "filename": "Guide.pdf", "totalPages": 2}
        assert [c["id"] for c in raw["chunks"]] == ["guide-chunk-0", "guide-chunk-1"]

        result = CorpusLoader([CorpusSource("corpus", str(output))], expected_dimension=8).load()
        assert result.status == LoadStatus.LOADED
        assert result.chunk_count == 2

    @pytest.mark.asyncio
    async def test_build_without_documents(self, fake_embedding_model, tmp_path):
        args = parse_args(["--docs", str(tmp_path), "--output", str(tmp_path / "corpus.json")])

        with patch("build_corpus.create_embedding_model", return_value=fake_embedding_model):
            with pytest.raises(RuntimeError, match="No documents found"):
                await build(args)

    def test_main_exits_on_failure(self, fake_embedding_model, tmp_path):
        with patch("build_corpus.create_embedding_model", return_value=fake_embedding_model):
            with pytest.raises(SystemExit) as exc_info:
                main(["--docs", str(tmp_path / "missing")])

        assert exc_info.value.code == 1
