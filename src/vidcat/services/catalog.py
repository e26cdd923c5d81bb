"""Catalog mutation rules layered over an injected persistence store."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from rich.console import Console

from vidcat.config.settings import Settings, get_settings
from vidcat.db.store import (
    CatalogError,
    CatalogFilters,
    CatalogStore,
    DuplicateReferenceError,
    StorageError,
    ThemeNotFoundError,
    VideoNotFoundError,
)
from vidcat.models.metadata import NormalizedMetadata
from vidcat.models.theme import Theme
from vidcat.models.video import VideoRecord, VideoReference, VideoUpdate

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Register, annotate, edit, remove, and list catalogued videos.

    Every mutation runs under one re-entrant lock so the duplicate check and the insert are atomic with
    respect to other callers in the process. Stores backed by a shared database additionally enforce
    uniqueness themselves.
    """

    _lock = threading.RLock()

    def __init__(
        self,
        store: CatalogStore,
        *,
        console: Optional[Console] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._console = console or Console()
        self._clock = clock or utc_now

    @property
    def store(self) -> CatalogStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Mutations                                                          #
    # ------------------------------------------------------------------ #
    def register(
        self,
        reference: VideoReference,
        metadata: Optional[NormalizedMetadata] = None,
        *,
        admin_annotation: str = "",
    ) -> VideoRecord:
        """Create a catalog record for ``reference``.

        Parameters
        ----------
        reference:
            Resolved provider reference; must not already be catalogued.
        metadata:
            Normalized enrichment output. When omitted the record carries the pending defaults.
        admin_annotation:
            Optional note supplied by the administrator at registration time.

        Returns
        -------
        VideoRecord
            The stored record, including its newly assigned ``id``.

        Raises
        ------
        DuplicateReferenceError
            If the reference already exists. The catalog is left unchanged.
        """

        with self._lock:
            if self._store.find_by_reference(reference) is not None:
                raise DuplicateReferenceError(reference)

            now = self._clock()
            fields = self._fields_from_metadata(metadata) if metadata is not None else {}
            theme = self._theme_for(metadata)
            record = VideoRecord(
                id=uuid4(),
                reference=reference,
                theme=theme,
                admin_annotation=admin_annotation,
                created_at=now,
                updated_at=now,
                **fields,
            )
            stored = self._store.insert(record)

        theme_label = stored.theme.name if stored.theme else "none"
        self._console.log(
            f"[green]Registered {reference.external_id} as {stored.id} (theme: {theme_label}).[/green]"
        )
        return stored

    def annotate(self, record_id: UUID, annotation: str) -> VideoRecord:
        """Replace the administrator annotation of an existing record."""

        with self._lock:
            updated = self._store.update(
                record_id,
                {"admin_annotation": annotation, "updated_at": self._clock()},
            )
        if updated is None:
            raise VideoNotFoundError(record_id)
        return updated

    def update(self, record_id: UUID, changes: VideoUpdate) -> VideoRecord:
        """Apply an administrator edit; ``changes.clear_theme`` detaches the record from its theme.

        Raises
        ------
        VideoNotFoundError
            If no record has ``record_id``.
        ThemeNotFoundError
            If ``changes.theme_id`` does not name an existing theme.
        """

        with self._lock:
            if self._store.get(record_id) is None:
                raise VideoNotFoundError(record_id)

            patch = changes.changes()
            theme_id = patch.pop("theme_id", None)
            if theme_id is not None:
                theme = self._store.get_theme(theme_id)
                if theme is None:
                    raise ThemeNotFoundError(theme_id)
                patch["theme"] = theme
            elif changes.clear_theme:
                patch["theme"] = None
            patch["updated_at"] = self._clock()

            updated = self._store.update(record_id, patch)
        if updated is None:
            raise VideoNotFoundError(record_id)
        return updated

    def remove(self, record_id: UUID) -> VideoRecord:
        """Delete a record unconditionally and return what was removed."""

        with self._lock:
            record = self._store.get(record_id)
            if record is None or not self._store.delete(record_id):
                raise VideoNotFoundError(record_id)

        self._console.log(f"[yellow]Removed {record.reference.external_id} ({record_id}).[/yellow]")
        return record

    # ------------------------------------------------------------------ #
    # Reads                                                              #
    # ------------------------------------------------------------------ #
    def get(self, record_id: UUID) -> VideoRecord:
        record = self._store.get(record_id)
        if record is None:
            raise VideoNotFoundError(record_id)
        return record

    def exists(self, reference: VideoReference) -> bool:
        return self._store.find_by_reference(reference) is not None

    def list(self, filters: Optional[CatalogFilters] = None) -> List[VideoRecord]:
        """Return records matching ``filters``, newest first."""

        with self._lock:
            return self._store.list(filters or CatalogFilters())

    def list_themes(self) -> List[Theme]:
        return sorted(self._store.list_themes(), key=lambda theme: theme.name.casefold())

    def list_keywords(self) -> List[str]:
        keywords = {keyword for record in self.list() for keyword in record.keywords}
        return sorted(keywords)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _fields_from_metadata(self, metadata: NormalizedMetadata) -> dict[str, object]:
        return {
            "title": metadata.title,
            "uploader": metadata.uploader,
            "view_count": metadata.view_count,
            "keywords": list(metadata.keywords),
            "ai_summary": metadata.summary,
            "thumbnail_url": metadata.thumbnail_url,
            "duration": metadata.duration,
            "original_description": metadata.description,
            "published_at": metadata.published_at,
        }

    def _theme_for(self, metadata: Optional[NormalizedMetadata]) -> Optional[Theme]:
        if metadata is None or metadata.theme_resolution is None:
            return None
        resolution = metadata.theme_resolution
        if resolution.theme is not None:
            stored = self._store.get_theme(resolution.theme.id)
            if stored is not None:
                return stored
            return self._store.find_or_create_theme(resolution.theme.name)
        if resolution.proposed_name:
            theme = self._store.find_or_create_theme(resolution.proposed_name)
            self._console.log(f"[cyan]Using theme '{theme.name}' for proposed '{resolution.proposed_name}'.[/cyan]")
            return theme
        return None


def create_store(settings: Optional[Settings] = None, console: Optional[Console] = None) -> CatalogStore:
    """Return the Postgres store when ``DATABASE_URL`` is configured, else the JSON file store."""

    settings = settings or get_settings()
    if settings.database_url is not None:
        from vidcat.db.postgres_store import PostgresCatalogStore

        return PostgresCatalogStore(settings=settings, console=console)

    from vidcat.db.json_store import JsonFileCatalogStore

    return JsonFileCatalogStore(settings.catalog_data_file)


__all__ = [
    "CatalogError",
    "CatalogFilters",
    "CatalogService",
    "DuplicateReferenceError",
    "StorageError",
    "ThemeNotFoundError",
    "VideoNotFoundError",
    "create_store",
    "utc_now",
]
