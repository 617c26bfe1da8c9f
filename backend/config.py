"""Configuration management for the document search service."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Embedding Configuration
EMBEDDING_BACKEND = os.getenv("EMBEDDING_BACKEND", "huggingface")  # "huggingface" or "local"
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "384"))

# Chunking Configuration (characters)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))
MIN_CHUNK_SIZE = int(os.getenv("MIN_CHUNK_SIZE", "100"))
MAX_CHUNK_SIZE = int(os.getenv("MAX_CHUNK_SIZE", "2000"))

# Retrieval Configuration
DEFAULT_TOP_K = int(os.getenv("DEFAULT_TOP_K", "5"))
# Unset means no threshold: every hit is returned sorted by score
_threshold = os.getenv("RELEVANCE_THRESHOLD", "").strip()
RELEVANCE_THRESHOLD = float(_threshold) if _threshold else None

# Corpus Configuration
# Ordered "name=path" pairs, tried in sequence at startup
CORPUS_PATHS = os.getenv(
    "CORPUS_PATHS",
    "corpus=data/corpus.json,single_document=data/single_document.json"
)
DOCS_DIRECTORY = os.getenv("DOCS_DIRECTORY", "docs")


def parse_corpus_paths(value: str = CORPUS_PATHS) -> list:
    """
    Parse a CORPUS_PATHS value into (name, path) pairs.

    Entries without a name use the file stem as the source name.

    Args:
        value: Comma separated "name=path" entries

    Returns:
        List of (name, path) tuples in configured order
    """
    sources = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "=" in entry:
            name, path = entry.split("=", 1)
        else:
            path = entry
            name = os.path.splitext(os.path.basename(entry))[0]
        sources.append((name.strip(), path.strip()))
    return sources


# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
