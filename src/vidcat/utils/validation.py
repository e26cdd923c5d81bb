"""Validation helpers for YouTube URLs and identifiers."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Union
from urllib.parse import parse_qs, urlparse

from vidcat.models.video import Provider, VideoReference

SHORT_HOST = "youtu.be"
LONG_HOST_MARKER = "youtube.com"
THUMBNAIL_URL_TEMPLATE = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"
WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"

_VIDEO_ID_PATTERN = re.compile(r"[0-9A-Za-z_-]{1,64}")


class RejectionReason(str, Enum):
    """Reasons a submitted URL cannot be turned into a video reference."""

    INVALID_URL = "invalid_url"
    UNRECOGNIZED_URL = "unrecognized_url"
    MISSING_IDENTIFIER = "missing_identifier"


class UrlResolutionError(ValueError):
    """Raised when a provided URL is not a usable YouTube video link."""

    reason: RejectionReason = RejectionReason.INVALID_URL

    def __init__(self, url: str, message: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message or f"{self.reason.value}: {url!r}")


class InvalidUrlError(UrlResolutionError):
    """The input could not be parsed as an absolute URL."""

    reason = RejectionReason.INVALID_URL


class UnrecognizedUrlError(UrlResolutionError):
    """The URL parsed but does not match a supported video URL shape."""

    reason = RejectionReason.UNRECOGNIZED_URL


class MissingIdentifierError(UrlResolutionError):
    """The URL matched a supported shape but carried an empty video identifier."""

    reason = RejectionReason.MISSING_IDENTIFIER


_ERRORS_BY_REASON = {
    RejectionReason.INVALID_URL: InvalidUrlError,
    RejectionReason.UNRECOGNIZED_URL: UnrecognizedUrlError,
    RejectionReason.MISSING_IDENTIFIER: MissingIdentifierError,
}


def resolve_url(raw_url: str) -> Union[VideoReference, RejectionReason]:
    """Resolve a submitted URL into a :class:`VideoReference` or a rejection reason.

    Resolution is purely syntactic and never raises. Accepted shapes are ``https://youtu.be/<id>``
    (trailing query, fragment, or extra path segments are ignored) and any ``youtube.com`` host with a
    ``v`` query parameter (other query parameters are ignored).
    """

    if not isinstance(raw_url, str):
        return RejectionReason.INVALID_URL

    stripped = raw_url.strip()
    try:
        parsed = urlparse(stripped)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return RejectionReason.INVALID_URL

    if not parsed.scheme or not parsed.netloc or not host:
        return RejectionReason.INVALID_URL

    if host == SHORT_HOST:
        candidate = parsed.path.lstrip("/").split("/", 1)[0]
    elif LONG_HOST_MARKER in host:
        query_params = parse_qs(parsed.query, keep_blank_values=True)
        if "v" not in query_params:
            return RejectionReason.UNRECOGNIZED_URL
        candidate = query_params["v"][0]
    else:
        return RejectionReason.UNRECOGNIZED_URL

    candidate = candidate.strip()
    if not candidate:
        return RejectionReason.MISSING_IDENTIFIER
    if not _VIDEO_ID_PATTERN.fullmatch(candidate):
        return RejectionReason.UNRECOGNIZED_URL

    return VideoReference(provider=Provider.YOUTUBE, external_id=candidate)


def require_reference(raw_url: str) -> VideoReference:
    """Resolve a URL, raising the matching :class:`UrlResolutionError` subclass on rejection."""

    outcome = resolve_url(raw_url)
    if isinstance(outcome, RejectionReason):
        raise _ERRORS_BY_REASON[outcome](str(raw_url))
    return outcome


def canonical_url(reference: VideoReference) -> str:
    """Return the canonical watch URL for a reference."""

    return WATCH_URL_TEMPLATE.format(video_id=reference.external_id)


def default_thumbnail_url(video_id: str) -> str:
    """Return the conventional high-quality thumbnail URL for a video ID."""

    return THUMBNAIL_URL_TEMPLATE.format(video_id=video_id)


__all__ = [
    "InvalidUrlError",
    "MissingIdentifierError",
    "RejectionReason",
    "UnrecognizedUrlError",
    "UrlResolutionError",
    "canonical_url",
    "default_thumbnail_url",
    "require_reference",
    "resolve_url",
]
