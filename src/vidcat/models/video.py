"""Pydantic models describing catalogued videos."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator, model_validator

from vidcat.models.base import CatalogBaseModel
from vidcat.models.theme import Theme

PENDING_TITLE = "pending"
UNKNOWN_UPLOADER = "unknown channel"
PENDING_SUMMARY = "pending"
MISSING_DURATION = "N/A"

EXTERNAL_ID_PATTERN = r"^[0-9A-Za-z_-]+$"


class Provider(str, Enum):
    """Video platforms the catalog can reference."""

    YOUTUBE = "youtube"


class VideoReference(CatalogBaseModel):
    """Immutable ``(provider, external_id)`` pair identifying a video outside the catalog."""

    provider: Provider = Provider.YOUTUBE
    external_id: str = Field(min_length=1, max_length=64, pattern=EXTERNAL_ID_PATTERN)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.provider.value, self.external_id)


def clean_keyword_list(values: Optional[List[str]]) -> List[str]:
    """Return a fresh list with surrounding whitespace trimmed and blank entries dropped."""

    if not values:
        return []
    return [value.strip() for value in values if value and value.strip()]


class VideoRecord(CatalogBaseModel):
    """Domain model representing a row in the ``videos`` table.

    ``created_at`` is set once by :class:`vidcat.services.catalog.CatalogService` and never
    rewritten; ``updated_at`` moves forward on every mutation.
    """

    id: UUID
    reference: VideoReference
    title: str = PENDING_TITLE
    uploader: str = UNKNOWN_UPLOADER
    view_count: int = Field(default=0, ge=0)
    keywords: List[str] = Field(default_factory=list)
    ai_summary: str = PENDING_SUMMARY
    theme: Optional[Theme] = None
    admin_annotation: str = ""
    thumbnail_url: Optional[str] = None
    duration: str = MISSING_DURATION
    original_description: str = ""
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("keywords", mode="before")
    @classmethod
    def _drop_blank_keywords(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            return clean_keyword_list([item for item in value if isinstance(item, str)])
        return value


class VideoUpdate(CatalogBaseModel):
    """Partial update applied by administrators; ``None`` fields are left untouched."""

    title: Optional[str] = None
    uploader: Optional[str] = None
    ai_summary: Optional[str] = None
    keywords: Optional[List[str]] = None
    admin_annotation: Optional[str] = None
    theme_id: Optional[UUID] = None
    clear_theme: bool = False

    @model_validator(mode="after")
    def _theme_change_is_unambiguous(self) -> "VideoUpdate":
        if self.clear_theme and self.theme_id is not None:
            raise ValueError("theme_id and clear_theme cannot be combined")
        return self

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True, exclude={"clear_theme"})


__all__ = [
    "EXTERNAL_ID_PATTERN",
    "MISSING_DURATION",
    "PENDING_SUMMARY",
    "PENDING_TITLE",
    "Provider",
    "UNKNOWN_UPLOADER",
    "VideoRecord",
    "VideoReference",
    "VideoUpdate",
    "clean_keyword_list",
]
