"""YouTube metadata provider.

Looks up a video's title, description and thumbnail through the YouTube
Data API v3 (``videos?part=snippet``).
"""

import logging
import os
from typing import Optional

import httpx

from ..errors import SourceLookupFailed
from ..interfaces import IMetadataLookup, SourceMetadata
from ..utils import extract_video_id

logger = logging.getLogger(__name__)


class YouTubeMetadataService(IMetadataLookup):
    """Fetch video metadata from the YouTube Data API.

    Usage:
        service = YouTubeMetadataService(api_key="AIza...")
        video_id = service.extract_source_id("https://youtu.be/dQw4w9WgXcQ")
        metadata = await service.lookup(video_id)
    """

    DEFAULT_API_BASE = "https://www.googleapis.com/youtube/v3"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the provider.

        Args:
            api_key: YouTube Data API key. Falls back to YOUTUBE_API_KEY.
            api_base: API base URL (override for tests or proxies).
            timeout_seconds: Request timeout.
            transport: Optional httpx transport (used by tests).
        """
        self.api_key = api_key or os.environ.get("YOUTUBE_API_KEY")
        self.api_base = (api_base or self.DEFAULT_API_BASE).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def __repr__(self) -> str:
        return f"YouTubeMetadataService(api_base={self.api_base!r}, api_key=***)"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def extract_source_id(self, link: str) -> str:
        return extract_video_id(link)

    async def lookup(self, source_id: str) -> Optional[SourceMetadata]:
        """Fetch snippet metadata for a video id.

        Returns:
            SourceMetadata, or None if the API knows no such video.

        Raises:
            SourceLookupFailed: If the API is unreachable or errors.
        """
        client = self._get_client()
        try:
            response = await client.get(
                f"{self.api_base}/videos",
                params={"part": "snippet", "id": source_id, "key": self.api_key or ""},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("YouTube lookup failed for %s: %s", source_id, e)
            raise SourceLookupFailed() from e

        items = data.get("items") or []
        if not items:
            return None

        snippet = items[0].get("snippet", {})
        thumbnails = snippet.get("thumbnails") or {}
        return SourceMetadata(
            title=snippet.get("title"),
            description=snippet.get("description"),
            thumbnail_url=(thumbnails.get("default") or {}).get("url") or None,
        )

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
