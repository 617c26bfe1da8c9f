"""
Corpus build script.

This script:
1. Loads all PDFs from the docs directory
2. Chunks documents by heading structure with a sliding-window fallback
3. Generates embeddings for every chunk
4. Writes the corpus snapshot JSON loaded by the API at startup

Usage:
    python build_corpus.py --docs docs --output data/corpus.json
"""
import argparse
import asyncio
import sys
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader
from services.chunking_engine import ChunkingEngine
from services.embedding_model import create_embedding_model
from services.corpus_loader import build_corpus_snapshot, write_corpus
from models.chunk import Chunk
from models.corpus import CorpusChunk, CorpusDocument
from config import DOCS_DIRECTORY, EMBEDDING_BACKEND, EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a corpus snapshot from PDF documents")
    parser.add_argument("--docs", default=DOCS_DIRECTORY, help="Directory containing PDF files")
    parser.add_argument("--output", default="data/corpus.json", help="Snapshot file to write")
    parser.add_argument(
        "--backend", default=EMBEDDING_BACKEND, choices=["huggingface", "local"],
        help="Embedding backend"
    )
    parser.add_argument("--batch-size", type=int, default=16, help="Texts per embedding request")
    parser.add_argument(
        "--merge-small", action="store_true",
        help="Merge consecutive undersized chunks before embedding"
    )
    return parser.parse_args(argv)


async def build(args: argparse.Namespace) -> int:
    """
    Run the build pipeline.

    Args:
        args: Parsed command line arguments

    Returns:
        Number of chunks written
    """
    # Step 1: Initialize services
    logger.info("[1/5] Initializing services...")
    embedding_model = create_embedding_model(args.backend)
    document_loader = DocumentLoader(docs_directory=args.docs)
    chunking_engine = ChunkingEngine()
    logger.info(
        f"✓ Chunking with size={chunking_engine.config.chunk_size}, "
        f"overlap={chunking_engine.config.overlap}"
    )

    # Step 2: Warm up embedding model
    logger.info("[2/5] Warming up embedding model...")
    if not await embedding_model.warmup():
        logger.warning("Warmup failed, continuing anyway")

    # Step 3: Load documents
    logger.info("[3/5] Loading PDF documents...")
    documents = document_loader.load_documents()
    if not documents:
        raise RuntimeError(f"No documents found in {args.docs}")

    for doc in documents:
        logger.info(f"  - {doc.filename} ({doc.total_pages} pages)")

    # Step 4: Chunk documents
    logger.info("[4/5] Chunking documents...")
    all_chunks: List[Chunk] = []
    for doc in documents:
        chunks = chunking_engine.chunk_documents([doc])
        if args.merge_small:
            chunks = chunking_engine.merge_small_chunks(chunks)
        all_chunks.extend(chunks)
        logger.info(f"  ✓ {doc.filename}: {len(chunks)} chunks")

    logger.info(f"✓ Total chunks created: {len(all_chunks)}")

    # Step 5: Embed and write the snapshot
    logger.info(f"[5/5] Generating embeddings for {len(all_chunks)} chunks...")
    report = await embedding_model.embed_many(
        [(chunk.chunk_id, chunk.content) for chunk in all_chunks],
        batch_size=args.batch_size
    )

    corpus_chunks = [
        CorpusChunk.from_chunk(chunk, outcome.vector)
        for chunk, outcome in zip(all_chunks, report.outcomes)
        if outcome.ok
    ]
    for outcome in report.skipped:
        logger.warning(f"  Skipped {outcome.item_id}: {outcome.reason}")

    corpus = build_corpus_snapshot(
        documents=[
            CorpusDocument(
                id=doc.document_id,
                title=doc.title,
                filename=doc.filename,
                total_pages=doc.total_pages
            )
            for doc in documents
        ],
        chunks=corpus_chunks,
        chunk_size=chunking_engine.config.chunk_size,
        chunk_overlap=chunking_engine.config.overlap,
        embedding_model=embedding_model.model_name,
        embedding_dimension=embedding_model.dimension or EMBEDDING_DIMENSION
    )
    write_corpus(args.output, corpus)

    logger.info("=" * 60)
    logger.info("CORPUS BUILD COMPLETE")
    logger.info(f"Documents processed: {len(documents)}")
    logger.info(f"Chunks embedded: {len(corpus_chunks)} ({report.skipped_count} skipped)")
    logger.info(f"Snapshot: {args.output}")
    logger.info("=" * 60)

    return len(corpus_chunks)


def main(argv: Optional[List[str]] = None):
    """Main build process."""
    args = parse_args(argv)
    try:
        asyncio.run(build(args))
    except KeyboardInterrupt:
        logger.warning("Build interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Build failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
