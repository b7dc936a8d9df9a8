"""Tests for the YouTube metadata provider."""

import httpx
import pytest

from secondbrain.errors import InvalidSource, SourceLookupFailed
from secondbrain.interfaces import IMetadataLookup
from secondbrain.services.metadata import YouTubeMetadataService

SNIPPET = {
    "items": [
        {
            "id": "abc12345678",
            "snippet": {
                "title": "Demo Video",
                "description": "A demo description",
                "thumbnails": {
                    "default": {"url": "https://i.ytimg.com/vi/abc12345678/default.jpg"},
                    "high": {"url": "https://i.ytimg.com/vi/abc12345678/hqdefault.jpg"},
                },
            },
        }
    ]
}


def _service(handler) -> YouTubeMetadataService:
    return YouTubeMetadataService(
        api_key="yt-key",
        api_base="https://yt.test/v3/",
        transport=httpx.MockTransport(handler),
    )


def test_implements_interface():
    assert issubclass(YouTubeMetadataService, IMetadataLookup)


def test_extract_source_id():
    service = YouTubeMetadataService(api_key="yt-key")
    assert service.extract_source_id("https://youtu.be/abc12345678") == "abc12345678"
    with pytest.raises(InvalidSource):
        service.extract_source_id("https://example.com/video")


def test_repr_masks_key():
    assert "yt-key" not in repr(YouTubeMetadataService(api_key="yt-key"))


class TestLookup:

    async def test_returns_snippet_fields(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json=SNIPPET)

        metadata = await _service(handler).lookup("abc12345678")

        assert metadata.title == "Demo Video"
        assert metadata.description == "A demo description"
        assert metadata.thumbnail_url == "https://i.ytimg.com/vi/abc12345678/default.jpg"
        assert seen["url"].path == "/v3/videos"
        assert seen["url"].params["part"] == "snippet"
        assert seen["url"].params["id"] == "abc12345678"
        assert seen["url"].params["key"] == "yt-key"

    async def test_unknown_video_returns_none(self):
        service = _service(lambda request: httpx.Response(200, json={"items": []}))
        assert await service.lookup("zzzzzzzzzzz") is None

    async def test_missing_thumbnail(self):
        body = {"items": [{"snippet": {"title": "t", "description": "d"}}]}
        metadata = await _service(lambda request: httpx.Response(200, json=body)).lookup("x")
        assert metadata.thumbnail_url is None

    async def test_http_error_raises_lookup_failed(self):
        service = _service(lambda request: httpx.Response(403, json={"error": "quota"}))
        with pytest.raises(SourceLookupFailed) as exc_info:
            await service.lookup("abc12345678")
        assert exc_info.value.status_code == 502

    async def test_network_error_raises_lookup_failed(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SourceLookupFailed):
            await _service(handler).lookup("abc12345678")

    async def test_invalid_json_raises_lookup_failed(self):
        service = _service(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(SourceLookupFailed):
            await service.lookup("abc12345678")

    async def test_close(self):
        service = _service(lambda request: httpx.Response(200, json=SNIPPET))
        await service.lookup("abc12345678")
        await service.close()
        assert service._client.is_closed
