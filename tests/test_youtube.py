"""Tests for the YouTube Data API client."""

from __future__ import annotations

import httpx
import pytest

from vidcat.services.youtube import VIDEO_PARTS, YouTubeMetadataClient

VIDEO_BODY = {
    "items": [
        {
            "id": "abc123",
            "snippet": {
                "title": "Cognition 101",
                "channelTitle": "ISC",
                "description": "Intro",
                "publishedAt": "2024-03-01T10:00:00Z",
                "tags": ["cognition"],
                "thumbnails": {
                    "default": {"url": "https://img/default.jpg", "width": 120},
                    "high": {"url": "https://img/high.jpg", "width": 480},
                },
            },
            "statistics": {"viewCount": "1500", "likeCount": "12"},
            "contentDetails": {"duration": "PT4M5S"},
        }
    ]
}


def _client(settings, console, handler) -> YouTubeMetadataClient:
    return YouTubeMetadataClient(settings=settings, console=console, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_maps_response(make_settings, console) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=VIDEO_BODY)

    client = _client(make_settings(YOUTUBE_API_KEY="secret"), console, handler)

    metadata = await client.fetch("abc123")

    assert metadata is not None
    assert metadata.title == "Cognition 101"
    assert metadata.channel_title == "ISC"
    assert metadata.view_count == "1500"
    assert metadata.duration == "PT4M5S"
    assert metadata.thumbnails == {"default": "https://img/default.jpg", "high": "https://img/high.jpg"}
    assert metadata.tags == ["cognition"]
    params = seen[0].url.params
    assert params["id"] == "abc123"
    assert params["part"] == VIDEO_PARTS
    assert params["key"] == "secret"


@pytest.mark.asyncio
async def test_missing_key_skips_network(settings, console) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=VIDEO_BODY)

    client = _client(settings, console, handler)

    assert client.is_configured is False
    assert await client.fetch("abc123") is None
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(403, json={"error": {"message": "quota"}}),
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"items": []}),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"items": [{"snippet": {"tags": "not-a-list"}}]}),
    ],
)
async def test_failures_degrade_to_none(make_settings, console, response: httpx.Response) -> None:
    client = _client(make_settings(YOUTUBE_API_KEY="secret"), console, lambda request: response)

    assert await client.fetch("abc123") is None


@pytest.mark.asyncio
async def test_timeout_degrades_to_none(make_settings, console) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(make_settings(YOUTUBE_API_KEY="secret"), console, handler)

    assert await client.fetch("abc123") is None
    assert "timed out" in console.file.getvalue()


@pytest.mark.asyncio
async def test_connection_error_degrades_to_none(make_settings, console) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(make_settings(YOUTUBE_API_KEY="secret"), console, handler)

    assert await client.fetch("abc123") is None
