"""Repository for the `videos` table."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from vidcat.db.repositories import BaseRepository
from vidcat.models.base import CatalogBaseModel
from vidcat.models.theme import Theme
from vidcat.models.video import (
    MISSING_DURATION,
    PENDING_SUMMARY,
    PENDING_TITLE,
    UNKNOWN_UPLOADER,
    Provider,
    VideoRecord,
    VideoReference,
)


class VideoRow(CatalogBaseModel):
    """Flat mirror of a ``videos`` row; the theme is referenced by id only."""

    id: UUID
    provider: Provider = Provider.YOUTUBE
    external_id: str
    title: str = PENDING_TITLE
    uploader: str = UNKNOWN_UPLOADER
    view_count: int = Field(default=0, ge=0)
    keywords: List[str] = Field(default_factory=list)
    ai_summary: str = PENDING_SUMMARY
    theme_id: Optional[UUID] = None
    admin_annotation: str = ""
    thumbnail_url: Optional[str] = None
    duration: str = MISSING_DURATION
    original_description: str = ""
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: VideoRecord) -> "VideoRow":
        payload = record.model_dump(exclude={"reference", "theme"})
        return cls(
            provider=record.reference.provider,
            external_id=record.reference.external_id,
            theme_id=record.theme.id if record.theme else None,
            **payload,
        )

    def to_record(self, theme: Optional[Theme]) -> VideoRecord:
        payload = self.model_dump(exclude={"provider", "external_id", "theme_id"})
        return VideoRecord(
            reference=VideoReference(provider=self.provider, external_id=self.external_id),
            theme=theme,
            **payload,
        )


class VideoRepository(BaseRepository[VideoRow]):
    """Data access object encapsulating catalog video persistence."""

    table_name = "videos"
    model_type = VideoRow
    insert_fields = (
        "id",
        "provider",
        "external_id",
        "title",
        "uploader",
        "view_count",
        "keywords",
        "ai_summary",
        "theme_id",
        "admin_annotation",
        "thumbnail_url",
        "duration",
        "original_description",
        "published_at",
        "created_at",
        "updated_at",
    )
    update_fields = (
        "title",
        "uploader",
        "view_count",
        "keywords",
        "ai_summary",
        "theme_id",
        "admin_annotation",
        "updated_at",
    )
    default_order = "created_at DESC, id DESC"

    def find_by_reference(self, reference: VideoReference) -> Optional[VideoRow]:
        """Return the row for ``(provider, external_id)``, if present."""

        return self.find_one(
            "provider = %(provider)s AND external_id = %(external_id)s",
            {"provider": reference.provider.value, "external_id": reference.external_id},
        )


__all__ = ["VideoRepository", "VideoRow"]
