"""FastEmbed embedding service.

Local ONNX-based embedding provider using the fastembed library.
CPU-optimized, no external API calls, no API key needed.

Supported models:
    sentence-transformers/all-MiniLM-L6-v2  384 dims  ~90MB   Default
    BAAI/bge-small-en-v1.5                  384 dims  ~130MB  Good quality
    BAAI/bge-base-en-v1.5                   768 dims  ~440MB  Better quality

Usage:
    service = FastEmbedService()  # defaults to all-MiniLM-L6-v2
    embedding = await service.embed("hello world")
"""

import asyncio
import logging
from typing import Optional

from ..errors import EmbeddingUnavailable
from ..interfaces import IEmbeddingService
from ..utils import normalize_embedding

logger = logging.getLogger(__name__)

# Model name → default dimensions mapping
_MODEL_DIMENSIONS: dict[str, int] = {
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "nomic-ai/nomic-embed-text-v1.5": 768,
}

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class FastEmbedService(IEmbeddingService):
    """FastEmbed local embedding service.

    The underlying ``TextEmbedding`` model is loaded lazily, at most once
    per service instance. Callers that arrive while the load is in flight
    await the same future instead of starting their own load. Loading and
    inference run in a worker thread so the event loop is never blocked.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        dimensions: Optional[int] = None,
        cache_dir: Optional[str] = None,
    ):
        """Initialize FastEmbed service.

        Args:
            model: FastEmbed model name.
            dimensions: Output embedding dimensions.  When ``None``,
                inferred from the model name (see ``_MODEL_DIMENSIONS``).
            cache_dir: Directory for downloaded model files.
                Defaults to fastembed's built-in cache.
        """
        if dimensions is not None and dimensions < 1:
            raise ValueError(
                f"Dimensions must be >= 1, got {dimensions}"
            )

        self.model_name = model
        self.dimensions = (
            dimensions
            if dimensions is not None
            else _MODEL_DIMENSIONS.get(model, 384)
        )
        self._cache_dir = cache_dir
        self._model = None
        self._loading: Optional[asyncio.Future] = None

    def _load_model(self):
        """Load the TextEmbedding model (blocking)."""
        from fastembed import TextEmbedding

        kwargs: dict = {"model_name": self.model_name}
        if self._cache_dir is not None:
            kwargs["cache_dir"] = self._cache_dir
        model = TextEmbedding(**kwargs)
        logger.info(
            "FastEmbed model loaded: %s (%d dims)",
            self.model_name,
            self.dimensions,
        )
        return model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def _get_model(self):
        """Return the model, loading it on first use."""
        if self._model is not None:
            return self._model

        if self._loading is None:
            self._loading = asyncio.ensure_future(
                asyncio.to_thread(self._load_model)
            )
        loading = self._loading

        try:
            # shield: a cancelled caller must not cancel the shared load
            model = await asyncio.shield(loading)
        except Exception as e:
            # Let the next request try again instead of caching the failure
            if self._loading is loading:
                self._loading = None
            logger.error("FastEmbed model %s failed to load: %s", self.model_name, e)
            raise EmbeddingUnavailable() from e

        self._model = model
        return model

    def __repr__(self) -> str:
        return (
            f"FastEmbedService(model={self.model_name!r}, "
            f"dimensions={self.dimensions})"
        )

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Input text to embed.

        Returns:
            Normalized embedding vector as list of floats.
        """
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(
        self, texts: list[str]
    ) -> list[list[float]]:
        """Generate embeddings for multiple texts.

        Raises:
            EmbeddingUnavailable: If the model cannot be loaded or
                inference fails.
        """
        if not texts:
            return []

        model = await self._get_model()
        try:
            # fastembed returns a generator of numpy arrays
            raw_embeddings = await asyncio.to_thread(
                lambda: list(model.embed(texts))
            )
        except Exception as e:
            logger.error("FastEmbed inference failed: %s", e)
            raise EmbeddingUnavailable() from e

        return [
            normalize_embedding(emb.tolist())
            for emb in raw_embeddings
        ]
