"""Catalog persistence interface and the in-memory implementation."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Tuple
from uuid import UUID, uuid4

from vidcat.models.theme import Theme, theme_key
from vidcat.models.video import VideoRecord, VideoReference


class StorageError(RuntimeError):
    """Base exception raised when a persistence backend fails."""


class CatalogError(RuntimeError):
    """Base exception for catalog mutation failures surfaced to callers."""


class DuplicateReferenceError(CatalogError):
    """Raised when a ``(provider, external_id)`` pair is already catalogued."""

    def __init__(self, reference: VideoReference) -> None:
        self.reference = reference
        super().__init__(f"Video '{reference.external_id}' ({reference.provider.value}) is already catalogued.")


class VideoNotFoundError(CatalogError):
    """Raised when no catalog record matches the requested identifier."""

    def __init__(self, record_id: UUID) -> None:
        self.record_id = record_id
        super().__init__(f"No video with id {record_id}.")


class ThemeNotFoundError(CatalogError):
    """Raised when an update references a theme that does not exist."""

    def __init__(self, theme_id: UUID) -> None:
        self.theme_id = theme_id
        super().__init__(f"No theme with id {theme_id}.")


@dataclass(slots=True)
class CatalogFilters:
    """Options that constrain catalog listings."""

    theme_id: Optional[UUID] = None
    keyword: Optional[str] = None
    search: Optional[str] = None
    limit: Optional[int] = None


class CatalogStore(Protocol):
    """Persistence collaborator used by :class:`vidcat.services.catalog.CatalogService`.

    ``insert`` must raise :class:`DuplicateReferenceError` when the reference is already stored, and
    ``list`` returns records newest first (``created_at`` then ``id``, both descending).
    """

    def find_by_reference(self, reference: VideoReference) -> Optional[VideoRecord]:
        ...

    def get(self, record_id: UUID) -> Optional[VideoRecord]:
        ...

    def insert(self, record: VideoRecord) -> VideoRecord:
        ...

    def update(self, record_id: UUID, patch: Mapping[str, object]) -> Optional[VideoRecord]:
        ...

    def delete(self, record_id: UUID) -> bool:
        ...

    def list(self, filters: Optional[CatalogFilters] = None) -> List[VideoRecord]:
        ...

    def list_themes(self) -> List[Theme]:
        ...

    def get_theme(self, theme_id: UUID) -> Optional[Theme]:
        ...

    def find_or_create_theme(self, name: str) -> Theme:
        ...


def matches_filters(record: VideoRecord, filters: CatalogFilters) -> bool:
    """Return ``True`` when ``record`` satisfies every populated filter."""

    if filters.theme_id is not None and (record.theme is None or record.theme.id != filters.theme_id):
        return False
    if filters.keyword is not None and filters.keyword not in record.keywords:
        return False
    if filters.search:
        needle = filters.search.casefold()
        haystacks = (record.title, record.uploader, record.ai_summary, record.admin_annotation)
        if not any(needle in value.casefold() for value in haystacks):
            return False
    return True


def newest_first(records: List[VideoRecord]) -> List[VideoRecord]:
    return sorted(records, key=lambda record: (record.created_at, record.id), reverse=True)


class InMemoryCatalogStore:
    """Dictionary-backed store used for tests and as the base of the JSON file store.

    Mutations hold a re-entrant lock, so concurrent theme creation yields one theme per name.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._videos: Dict[UUID, VideoRecord] = {}
        self._references: Dict[Tuple[str, str], UUID] = {}
        self._themes: Dict[UUID, Theme] = {}

    # ------------------------------------------------------------------ #
    # Videos                                                             #
    # ------------------------------------------------------------------ #
    def find_by_reference(self, reference: VideoReference) -> Optional[VideoRecord]:
        with self._lock:
            record_id = self._references.get(reference.key)
            return self.get(record_id) if record_id is not None else None

    def get(self, record_id: UUID) -> Optional[VideoRecord]:
        with self._lock:
            record = self._videos.get(record_id)
            return record.model_copy(deep=True) if record is not None else None

    def insert(self, record: VideoRecord) -> VideoRecord:
        with self._lock:
            if record.reference.key in self._references:
                raise DuplicateReferenceError(record.reference)
            stored = record.model_copy(deep=True)
            self._videos[stored.id] = stored
            self._references[stored.reference.key] = stored.id
            return stored.model_copy(deep=True)

    def update(self, record_id: UUID, patch: Mapping[str, object]) -> Optional[VideoRecord]:
        with self._lock:
            existing = self._videos.get(record_id)
            if existing is None:
                return None
            payload = existing.model_dump()
            payload.update(patch)
            updated = VideoRecord.model_validate(payload)
            self._videos[record_id] = updated
            return updated.model_copy(deep=True)

    def delete(self, record_id: UUID) -> bool:
        with self._lock:
            record = self._videos.pop(record_id, None)
            if record is None:
                return False
            self._references.pop(record.reference.key, None)
            return True

    def list(self, filters: Optional[CatalogFilters] = None) -> List[VideoRecord]:
        filters = filters or CatalogFilters()
        with self._lock:
            selected = [record for record in self._videos.values() if matches_filters(record, filters)]
        ordered = newest_first(selected)
        if filters.limit is not None:
            ordered = ordered[: filters.limit]
        return [record.model_copy(deep=True) for record in ordered]

    # ------------------------------------------------------------------ #
    # Themes                                                             #
    # ------------------------------------------------------------------ #
    def list_themes(self) -> List[Theme]:
        with self._lock:
            themes = list(self._themes.values())
        return sorted(themes, key=lambda theme: (theme.match_key, str(theme.id)))

    def get_theme(self, theme_id: UUID) -> Optional[Theme]:
        with self._lock:
            return self._themes.get(theme_id)

    def find_or_create_theme(self, name: str) -> Theme:
        key = theme_key(name)
        with self._lock:
            for theme in self._themes.values():
                if theme.match_key == key:
                    return theme
            theme = Theme(id=uuid4(), name=name.strip())
            self._themes[theme.id] = theme
            return theme

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _load(self, videos: List[VideoRecord], themes: List[Theme]) -> None:
        self._videos.clear()
        self._references.clear()
        self._themes = {theme.id: theme for theme in themes}
        for record in videos:
            if record.reference.key in self._references:
                raise StorageError(f"Duplicate reference {record.reference.external_id!r} in stored catalog.")
            self._videos[record.id] = record
            self._references[record.reference.key] = record.id
            if record.theme is not None:
                self._themes.setdefault(record.theme.id, record.theme)


__all__ = [
    "CatalogError",
    "CatalogFilters",
    "CatalogStore",
    "DuplicateReferenceError",
    "InMemoryCatalogStore",
    "StorageError",
    "ThemeNotFoundError",
    "VideoNotFoundError",
    "matches_filters",
    "newest_first",
]
