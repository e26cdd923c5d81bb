"""Models describing provider payloads and normalized enrichment output."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from vidcat.models.base import CatalogBaseModel
from vidcat.models.theme import Theme
from vidcat.models.video import MISSING_DURATION, PENDING_SUMMARY, PENDING_TITLE, UNKNOWN_UPLOADER


class ProviderMetadata(BaseModel):
    """Raw video metadata as returned by a metadata provider.

    Values are kept close to the wire format: ``view_count`` may still be a numeric string and
    ``duration`` an ISO-8601 token. Unknown keys are ignored so provider schema drift does not break
    ingestion.
    """

    title: Optional[str] = None
    channel_title: Optional[str] = Field(default=None, alias="channelTitle")
    description: Optional[str] = None
    view_count: Optional[Union[int, str]] = Field(default=None, alias="viewCount")
    duration: Optional[str] = None
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
    thumbnails: Dict[str, str] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ThemeResolution(CatalogBaseModel):
    """Outcome of matching an AI-proposed theme name against existing themes.

    Exactly one of ``theme`` (reuse) or ``proposed_name`` (creation requested) is set.
    """

    theme: Optional[Theme] = None
    proposed_name: Optional[str] = None

    @property
    def requests_new_theme(self) -> bool:
        return self.theme is None and bool(self.proposed_name)


class ParsedAIResponse(CatalogBaseModel):
    """Structured fields recovered from an AI provider response."""

    summary: str = PENDING_SUMMARY
    keywords: List[str] = Field(default_factory=list)
    theme_name: Optional[str] = None
    simulated: bool = True
    structured: bool = False
    issues: List[str] = Field(default_factory=list)


class NormalizedMetadata(CatalogBaseModel):
    """Validated enrichment payload ready to be merged into a catalog record."""

    title: str = PENDING_TITLE
    uploader: str = UNKNOWN_UPLOADER
    view_count: int = Field(default=0, ge=0)
    thumbnail_url: Optional[str] = None
    duration: str = MISSING_DURATION
    description: str = ""
    published_at: Optional[datetime] = None
    summary: str = PENDING_SUMMARY
    keywords: List[str] = Field(default_factory=list)
    theme_name: Optional[str] = None
    theme_resolution: Optional[ThemeResolution] = None
    simulated: bool = True
    metadata_simulated: bool = True
    issues: List[str] = Field(default_factory=list)


__all__ = ["NormalizedMetadata", "ParsedAIResponse", "ProviderMetadata", "ThemeResolution"]
