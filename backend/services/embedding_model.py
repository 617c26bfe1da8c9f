"""Embedding model integrations: Hugging Face Inference API and local transformers."""
import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import httpx
import numpy as np

from models.embedding import BatchEmbeddingReport, EmbeddingOutcome
from services.errors import EmbeddingError
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL, EMBEDDING_DIMENSION, EMBEDDING_BACKEND

logger = logging.getLogger(__name__)

HF_INFERENCE_URL = "https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction"


def normalize_vector(values) -> List[float]:
    """
    Mean-pool token-level output if needed and scale to unit L2 norm.

    Args:
        values: A sentence vector, or a (tokens x dimension) matrix

    Returns:
        Unit-norm vector as a list of floats (zero vectors are returned as-is)
    """
    array = np.asarray(values, dtype=np.float64)
    if array.ndim == 2:
        array = array.mean(axis=0)
    if array.ndim != 1:
        raise EmbeddingError(f"Unexpected embedding shape {array.shape}")

    norm = np.linalg.norm(array)
    if norm > 0:
        array = array / norm
    return array.tolist()


class BaseEmbeddingModel(ABC):
    """
    Text to fixed-length vector contract shared by all embedding backends.

    Subclasses implement `_embed`; validation, dimension checks and
    per-item batch reporting live here.
    """

    def __init__(self, model_name: str, dimension: Optional[int] = EMBEDDING_DIMENSION):
        self.model_name = model_name
        self.dimension = dimension

    @abstractmethod
    async def _embed(self, texts: List[str]) -> List[List[float]]:
        """Embed non-empty texts, one vector per text, in input order."""

    def _check_dimension(self, vector: List[float], item_id: Optional[str] = None) -> List[float]:
        if self.dimension is not None and len(vector) != self.dimension:
            target = f" for {item_id}" if item_id else ""
            raise EmbeddingError(
                f"Embedding dimension mismatch{target}: expected {self.dimension}, got {len(vector)}"
            )
        return vector

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the backend fails or returns a wrong-sized vector
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        vectors = await self._embed([text])
        return self._check_dimension(vectors[0])

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts; fails as a whole.

        Args:
            texts: Texts to embed

        Returns:
            One vector per text, in input order

        Raises:
            ValueError: If the list is empty or contains empty strings
            EmbeddingError: If the backend fails
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")
        if any(not t or not t.strip() for t in texts):
            raise ValueError("Texts cannot contain empty strings")

        vectors = await self._embed(list(texts))
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Backend returned {len(vectors)} embeddings for {len(texts)} texts"
            )
        return [self._check_dimension(v) for v in vectors]

    async def embed_many(
        self,
        items: Sequence[Tuple[str, str]],
        batch_size: int = 16
    ) -> BatchEmbeddingReport:
        """
        Embed (item_id, text) pairs without letting one failure sink the batch.

        Items are sent in batches; when a batch fails, its items are retried
        one by one so only the failing items are skipped.

        Args:
            items: (item_id, text) pairs
            batch_size: Texts per backend call

        Returns:
            Report with one outcome per item, in input order
        """
        outcomes: List[Optional[EmbeddingOutcome]] = [None] * len(items)
        pending: List[int] = []

        for position, (item_id, text) in enumerate(items):
            if not text or not text.strip():
                outcomes[position] = EmbeddingOutcome.skipped(item_id, "empty text")
            else:
                pending.append(position)

        for offset in range(0, len(pending), batch_size):
            batch = pending[offset:offset + batch_size]
            texts = [items[p][1] for p in batch]

            try:
                vectors = await self._embed(texts)
                if len(vectors) != len(texts):
                    raise EmbeddingError(
                        f"Backend returned {len(vectors)} embeddings for {len(texts)} texts"
                    )
            except Exception as e:
                logger.warning(f"Batch of {len(batch)} failed ({e}); retrying items individually")
                for p in batch:
                    outcomes[p] = await self._embed_single(*items[p])
                continue

            for p, vector in zip(batch, vectors):
                item_id = items[p][0]
                try:
                    outcomes[p] = EmbeddingOutcome.embedded(item_id, self._check_dimension(vector, item_id))
                except EmbeddingError as e:
                    outcomes[p] = EmbeddingOutcome.skipped(item_id, str(e))

        report = BatchEmbeddingReport(outcomes=outcomes)
        for skipped in report.skipped:
            logger.warning(f"Skipped embedding for {skipped.item_id}: {skipped.reason}")
        logger.info(
            f"Embedded {report.embedded_count}/{len(items)} items "
            f"({report.skipped_count} skipped)"
        )
        return report

    async def _embed_single(self, item_id: str, text: str) -> EmbeddingOutcome:
        try:
            vectors = await self._embed([text])
            return EmbeddingOutcome.embedded(item_id, self._check_dimension(vectors[0], item_id))
        except Exception as e:
            return EmbeddingOutcome.skipped(item_id, str(e))

    async def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            await self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False


class HuggingFaceEmbeddingModel(BaseEmbeddingModel):
    """Embeddings from the Hugging Face Inference API."""

    def __init__(
        self,
        api_key: str = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        dimension: Optional[int] = EMBEDDING_DIMENSION,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-MiniLM-L6-v2)
            dimension: Expected vector length, None to accept any
            max_retries: Maximum number of attempts for 503s, timeouts and network errors
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
            http_client: Shared client; a short-lived one is opened per call if omitted
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        super().__init__(model_name=model_name, dimension=dimension)
        self.api_key = api_key
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = HF_INFERENCE_URL.format(model=model_name)
        self._http_client = http_client

        logger.info(f"Initialized HuggingFaceEmbeddingModel with model: {model_name}")

    async def _post(self, headers: dict, payload: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.api_url, headers=headers, json=payload)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.api_url, headers=headers, json=payload)

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        """
        Call the Inference API with an exponential backoff retry strategy.

        Free-tier models "sleep" and answer 503 while loading; those,
        timeouts and network errors are retried. Auth and rate-limit errors
        fail immediately.

        Args:
            texts: Texts to embed

        Returns:
            Unit-norm embedding vectors

        Raises:
            EmbeddingError: If the request fails after all retries
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()
                response = await self._post(headers, payload)
                elapsed = time.time() - start_time

                # Handle 503 Service Unavailable (model loading)
                if response.status_code == 503:
                    last_error = f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}"
                    logger.warning(f"{last_error}. Retrying in {delay}s...")

                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(delay)
                        delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s
                        continue
                    break

                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise EmbeddingError("Rate limit exceeded. Please try again later.")

                if response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise EmbeddingError("Invalid API key")

                if response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingError(error_msg)

                data = response.json()
                if not isinstance(data, list) or len(data) != len(texts):
                    raise EmbeddingError(f"Unexpected response payload for {len(texts)} texts")

                if elapsed > 10.0:
                    logger.info(
                        f"Model loading delay detected: {elapsed:.1f}s for {len(texts)} texts "
                        f"(attempt {attempt + 1})"
                    )
                else:
                    logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")

                return [normalize_vector(item) for item in data]

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, 60.0)

        # All retries exhausted
        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingError(error_msg)


class LocalEmbeddingModel(BaseEmbeddingModel):
    """
    Embeddings computed in-process with a transformers checkpoint.

    Mean pooling over the attention mask followed by L2 normalisation, as
    sentence-transformers does for all-MiniLM-L6-v2. The checkpoint is
    loaded on first use and reused afterwards.
    """

    def __init__(
        self,
        model_name: str = EMBEDDING_MODEL,
        dimension: Optional[int] = EMBEDDING_DIMENSION,
        device: str = "cpu",
        max_length: int = 256
    ):
        super().__init__(model_name=model_name, dimension=dimension)
        self.device = device
        self.max_length = max_length
        self._tokenizer = None
        self._model = None
        self._load_lock = threading.Lock()

    def _load(self) -> None:
        with self._load_lock:
            if self._model is not None:
                return

            from transformers import AutoModel, AutoTokenizer

            logger.info(f"Loading {self.model_name} (first time may take a few minutes)...")
            self._tokenizer = AutoTokenizer.from_pretrained(self.model_name)
            model = AutoModel.from_pretrained(self.model_name)
            model.to(self.device)
            model.eval()
            self._model = model
            logger.info("Model loaded successfully")

    def _encode(self, texts: List[str]) -> List[List[float]]:
        import torch

        self._load()
        encoded = self._tokenizer(
            texts,
            padding=True,
            truncation=True,
            max_length=self.max_length,
            return_tensors="pt"
        ).to(self.device)

        with torch.no_grad():
            output = self._model(**encoded)

        mask = encoded["attention_mask"].unsqueeze(-1).float()
        summed = (output.last_hidden_state * mask).sum(dim=1)
        pooled = summed / mask.sum(dim=1).clamp(min=1e-9)
        return torch.nn.functional.normalize(pooled, p=2, dim=1).cpu().tolist()

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        try:
            return await asyncio.to_thread(self._encode, texts)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Local embedding failed: {str(e)}") from e


def create_embedding_model(backend: str = EMBEDDING_BACKEND, **kwargs) -> BaseEmbeddingModel:
    """
    Build the configured embedding backend.

    Args:
        backend: "huggingface" or "local"
        **kwargs: Passed through to the backend constructor

    Returns:
        An embedding model instance

    Raises:
        ValueError: For an unknown backend name
    """
    backend = (backend or "").lower()
    if backend == "huggingface":
        return HuggingFaceEmbeddingModel(**kwargs)
    if backend == "local":
        return LocalEmbeddingModel(**kwargs)
    raise ValueError(f"Unknown embedding backend: {backend}")
