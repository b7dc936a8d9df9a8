"""OpenAI-compatible embedding service.

Alternative to the local FastEmbed provider for deployments that prefer a
hosted model (OpenAI) or an OpenAI-compatible server (Ollama, vLLM).
"""

import asyncio
import logging
import os
from typing import Optional

import httpx

from ..errors import EmbeddingUnavailable
from ..interfaces import IEmbeddingService
from ..utils import normalize_embedding

logger = logging.getLogger(__name__)


class OpenAIEmbeddingService(IEmbeddingService):
    """Embedding service backed by an OpenAI-compatible ``/embeddings`` API.

    Usage:
        # OpenAI
        service = OpenAIEmbeddingService(api_key="sk-...")

        # Ollama (local)
        service = OpenAIEmbeddingService(
            api_base="http://localhost:11434/v1",
            model="all-minilm",
            dimensions=384,
        )

    Retries are bounded by ``max_retries``; once exhausted the call fails
    with ``EmbeddingUnavailable`` rather than retrying indefinitely.
    """

    DEFAULT_MODEL = "text-embedding-3-small"
    DEFAULT_DIMENSIONS = 1536
    DEFAULT_API_BASE = "https://api.openai.com/v1"
    LOCAL_API_KEY_PLACEHOLDER = "local-no-key-needed"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        max_retries: int = 3,
        timeout_seconds: float = 30.0,
        backoff_base: float = 2.0,
        backoff_max: float = 30.0,
        api_base: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the service.

        Args:
            api_key: API key. Falls back to OPENAI_API_KEY env var.
                Not required when api_base points to a local service.
            model: Embedding model to use.
            dimensions: Output embedding dimensions.
            max_retries: Max attempts on transient failures.
            timeout_seconds: Request timeout.
            backoff_base: Base for exponential backoff.
            backoff_max: Maximum backoff delay in seconds.
            api_base: Base URL for the embedding API. Defaults to OpenAI.
            transport: Optional httpx transport (used by tests).
        """
        if dimensions < 1 or dimensions > 8192:
            raise ValueError(
                f"Dimensions must be between 1 and 8192, got {dimensions}"
            )
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")

        self.api_url = self._resolve_api_url(api_base)

        is_local = (
            api_base is not None
            and api_base.strip() != ""
            and "api.openai.com" not in api_base.lower()
        )

        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            if not is_local:
                raise ValueError(
                    "OpenAI API key required. Pass api_key "
                    "or set OPENAI_API_KEY env var."
                )
            self.api_key = self.LOCAL_API_KEY_PLACEHOLDER

        self.model = model
        self.dimensions = dimensions
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @staticmethod
    def _resolve_api_url(api_base: Optional[str] = None) -> str:
        """Resolve the full embeddings URL from an optional base.

        Raises:
            ValueError: If api_base is not a valid HTTP(S) URL.
        """
        if api_base is None or api_base.strip() == "":
            return f"{OpenAIEmbeddingService.DEFAULT_API_BASE}/embeddings"

        base = api_base.strip().rstrip("/")
        if not base.startswith(("http://", "https://")):
            raise ValueError(
                f"api_base must be an HTTP(S) URL, got: {base}"
            )
        if base.endswith("/embeddings"):
            return base
        return f"{base}/embeddings"

    def __repr__(self) -> str:
        """Safe repr that masks API key to prevent accidental logging."""
        return f"OpenAIEmbeddingService(model={self.model!r}, api_key=***)"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts.

        Raises:
            EmbeddingUnavailable: On a non-retryable API error or once
                ``max_retries`` attempts have failed.
        """
        if not texts:
            return []

        client = self._get_client()
        payload = {
            "model": self.model,
            "input": [" ".join(t.split()) for t in texts],
            "dimensions": self.dimensions,
        }

        last_error: Optional[str] = None
        for attempt in range(self.max_retries):
            try:
                response = await client.post(self.api_url, json=payload)
            except httpx.RequestError as e:
                last_error = str(e)
            else:
                if response.status_code == 200:
                    data = response.json()
                    embeddings = sorted(data["data"], key=lambda x: x["index"])
                    return [normalize_embedding(e["embedding"]) for e in embeddings]

                last_error = f"HTTP {response.status_code}"
                if response.status_code != 429 and response.status_code < 500:
                    logger.error(
                        "Embedding API rejected request (%d): %s",
                        response.status_code,
                        response.text[:200],
                    )
                    raise EmbeddingUnavailable()

            if attempt < self.max_retries - 1:
                await asyncio.sleep(min(self.backoff_base ** attempt, self.backoff_max))

        logger.error(
            "Embedding API failed after %d attempts: %s",
            self.max_retries,
            last_error,
        )
        raise EmbeddingUnavailable()

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
