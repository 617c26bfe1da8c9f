"""Main entry point for the document search API."""
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from config import (
    PORT,
    LOG_LEVEL,
    LOG_FORMAT,
    CORS_ORIGINS,
    EMBEDDING_BACKEND,
    RELEVANCE_THRESHOLD,
)
from logger import setup_logging
from models.api import (
    SearchRequest,
    SearchResult,
    IndexDocumentRequest,
    IndexDocumentResponse,
    IndexStatsResponse,
    CorpusStatsResponse,
    RemoveChunkResponse,
    SkippedItem,
)
from models.document import Page
from services.chunking_engine import ChunkingEngine
from services.corpus_loader import CorpusLoader, read_corpus_stats
from services.embedding_model import BaseEmbeddingModel, create_embedding_model
from services.errors import SearchUnavailableError
from services.indexing_service import IndexingService
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class SearchServices:
    """Service instances shared by every request, built once at startup."""
    vector_store: VectorStore
    retrieval_engine: RetrievalEngine
    indexing_service: IndexingService
    corpus_path: Optional[str] = None


def build_services(
    embedding_model: Optional[BaseEmbeddingModel] = None,
    corpus_loader: Optional[CorpusLoader] = None
) -> SearchServices:
    """
    Compose the search services and load the pre-computed corpus.

    Args:
        embedding_model: Embedding backend (built from config if omitted)
        corpus_loader: Corpus source chain (built from config if omitted)

    Returns:
        SearchServices ready to serve requests
    """
    embedding_model = embedding_model or create_embedding_model(EMBEDDING_BACKEND)
    corpus_loader = corpus_loader or CorpusLoader.from_config()

    vector_store = VectorStore(
        dimension=embedding_model.dimension,
        relevance_threshold=RELEVANCE_THRESHOLD
    )

    result = corpus_loader.load()
    vector_store.load(result.corpus if result.ok else None)

    if result.ok:
        corpus_path = result.path
    else:
        corpus_path = corpus_loader.sources[0].path if corpus_loader.sources else None

    return SearchServices(
        vector_store=vector_store,
        retrieval_engine=RetrievalEngine(vector_store, embedding_model),
        indexing_service=IndexingService(ChunkingEngine(), embedding_model, vector_store),
        corpus_path=corpus_path
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup."""
    setup_logging(LOG_LEVEL, json_format=LOG_FORMAT == "json")
    logger.info("Initializing document search services...")

    try:
        app.state.services = build_services()
        logger.info(f"All services initialized ({len(app.state.services.vector_store)} chunks indexed)")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield


# Initialize FastAPI app
app = FastAPI(
    title="Document Search",
    description="Semantic search over chunked document text",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_services(request: Request) -> SearchServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Search unavailable")
    return services


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Document Search API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "document-search",
        "version": "1.0.0"
    }


@app.post("/search", response_model=List[SearchResult])
async def search_endpoint(
    request: SearchRequest,
    services: SearchServices = Depends(get_services)
) -> List[SearchResult]:
    """
    Semantic search over the indexed chunks.

    Args:
        request: SearchRequest with the query and optional top_k

    Returns:
        Results sorted by descending relevance score

    Raises:
        HTTPException: 400 for an empty query, 503 when search is unavailable
    """
    start_time = time.time()

    if not request.query or not request.query.strip():
        raise HTTPException(status_code=400, detail="Query field is required and cannot be empty")

    try:
        results = await services.retrieval_engine.search(request.query, top_k=request.top_k)
    except SearchUnavailableError:
        raise HTTPException(status_code=503, detail="Search unavailable")
    except Exception as e:
        logger.error(f"Unexpected error processing search: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    latency_ms = int((time.time() - start_time) * 1000)
    logger.info(f"Search returned {len(results)} results in {latency_ms}ms")
    return results


@app.get("/corpus/stats", response_model=CorpusStatsResponse)
async def corpus_stats(services: SearchServices = Depends(get_services)) -> CorpusStatsResponse:
    """Statistics of the on-disk corpus snapshot (defaults if none exists)."""
    return CorpusStatsResponse(**read_corpus_stats(services.corpus_path))


@app.get("/index/stats", response_model=IndexStatsResponse)
async def index_stats(services: SearchServices = Depends(get_services)) -> IndexStatsResponse:
    """Statistics of the live in-memory index."""
    return IndexStatsResponse(**services.vector_store.stats().to_dict())


@app.post("/documents/index", response_model=IndexDocumentResponse)
async def index_document(
    request: IndexDocumentRequest,
    services: SearchServices = Depends(get_services)
) -> IndexDocumentResponse:
    """
    Chunk, embed and index the extracted pages of a document.

    Chunks whose embedding fails are skipped and listed in the response.
    """
    pages = [
        Page(
            page_number=page.page_number,
            text=page.text,
            word_count=len(page.text.split()),
            sections=page.sections
        )
        for page in request.pages
    ]

    report = await services.indexing_service.index_document(
        request.document_id, pages, document_title=request.title
    )

    return IndexDocumentResponse(
        document_id=report.document_id,
        chunks_created=report.chunks_created,
        chunks_indexed=report.chunks_indexed,
        skipped=[SkippedItem(chunk_id=cid, reason=reason) for cid, reason in report.skipped]
    )


@app.delete("/chunks/{chunk_id}", response_model=RemoveChunkResponse)
async def remove_chunk(
    chunk_id: str,
    services: SearchServices = Depends(get_services)
) -> RemoveChunkResponse:
    """Remove one chunk from the index."""
    removed = services.vector_store.remove(chunk_id)
    return RemoveChunkResponse(chunk_id=chunk_id, removed=removed)


@app.delete("/documents/{document_id}")
async def remove_document(
    document_id: str,
    services: SearchServices = Depends(get_services)
):
    """Remove every chunk of a document from the index."""
    removed = services.indexing_service.remove_document(document_id)
    return {"document_id": document_id, "removed": removed}


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Document Search API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
