"""YouTube Data API client used to enrich catalog entries with video metadata."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

import httpx
from pydantic import ValidationError
from rich.console import Console

from vidcat.config.settings import Settings, get_settings
from vidcat.models.metadata import ProviderMetadata

YOUTUBE_VIDEOS_ENDPOINT = "https://www.googleapis.com/youtube/v3/videos"
VIDEO_PARTS = "snippet,statistics,contentDetails"


class YouTubeMetadataClient:
    """Fetch ``snippet``, ``statistics`` and ``contentDetails`` for a single video.

    Every failure mode (missing key, unknown video, timeout, HTTP error, malformed body) is reported as
    ``None`` so callers fall back to default metadata.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        endpoint: str = YOUTUBE_VIDEOS_ENDPOINT,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._transport = transport
        self._endpoint = endpoint

    @property
    def is_configured(self) -> bool:
        return self._api_key() is not None

    async def fetch(self, external_id: str) -> Optional[ProviderMetadata]:
        """Return metadata for ``external_id`` or ``None`` when it is unavailable."""

        api_key = self._api_key()
        if api_key is None:
            return None

        params = {"part": VIDEO_PARTS, "id": external_id, "key": api_key}
        timeout = float(self._settings.provider_timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.get(self._endpoint, params=params)
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException:
            self._console.log(f"[yellow]YouTube metadata request for {external_id} timed out after {timeout:.0f}s.[/yellow]")
            return None
        except httpx.HTTPStatusError as exc:
            self._console.log(
                f"[yellow]YouTube metadata request for {external_id} failed with status {exc.response.status_code}.[/yellow]"
            )
            return None
        except httpx.HTTPError as exc:
            self._console.log(f"[yellow]YouTube metadata request for {external_id} failed: {exc}[/yellow]")
            return None
        except ValueError:
            self._console.log(f"[yellow]YouTube returned a non-JSON body for {external_id}.[/yellow]")
            return None

        return self._parse_body(external_id, body)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _api_key(self) -> Optional[str]:
        secret = self._settings.youtube_api_key
        if secret is None:
            return None
        value = secret.get_secret_value().strip()
        return value or None

    def _parse_body(self, external_id: str, body: object) -> Optional[ProviderMetadata]:
        items = body.get("items") if isinstance(body, Mapping) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], Mapping):
            self._console.log(f"[yellow]YouTube has no video with id {external_id}.[/yellow]")
            return None

        item = items[0]
        snippet = _section(item, "snippet")
        statistics = _section(item, "statistics")
        details = _section(item, "contentDetails")

        payload = {
            "title": snippet.get("title"),
            "channelTitle": snippet.get("channelTitle"),
            "description": snippet.get("description"),
            "publishedAt": snippet.get("publishedAt"),
            "tags": snippet.get("tags") or [],
            "thumbnails": _thumbnail_urls(snippet.get("thumbnails")),
            "viewCount": statistics.get("viewCount"),
            "duration": details.get("duration"),
        }
        try:
            return ProviderMetadata.model_validate(payload)
        except ValidationError as exc:
            self._console.log(f"[yellow]Discarding malformed YouTube metadata for {external_id}: {exc.error_count()} errors.[/yellow]")
            return None


def _section(item: Mapping[str, object], name: str) -> Mapping[str, object]:
    value = item.get(name)
    return value if isinstance(value, Mapping) else {}


def _thumbnail_urls(raw: object) -> Dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    urls: Dict[str, str] = {}
    for variant, entry in raw.items():
        url = entry.get("url") if isinstance(entry, Mapping) else None
        if isinstance(url, str) and url:
            urls[str(variant)] = url
    return urls


__all__ = ["VIDEO_PARTS", "YOUTUBE_VIDEOS_ENDPOINT", "YouTubeMetadataClient"]
