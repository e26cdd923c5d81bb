"""Postgres implementation of the catalog store."""

from __future__ import annotations

from functools import partial
from typing import Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from psycopg2 import errors as pg_errors
from rich.console import Console

from vidcat.config.settings import Settings, get_settings
from vidcat.db import ConnectionFactory
from vidcat.db.connection import get_connection
from vidcat.db.migrate import run_migrations
from vidcat.db.store import CatalogFilters, DuplicateReferenceError
from vidcat.db.theme_repository import ThemeRepository
from vidcat.db.video_repository import VideoRepository, VideoRow
from vidcat.models.theme import Theme
from vidcat.models.video import VideoRecord, VideoReference


def escape_like(value: str) -> str:
    """Escape ``LIKE`` wildcards so user input matches literally."""

    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_filter_clause(filters: CatalogFilters) -> Tuple[Optional[str], Dict[str, object]]:
    """Translate :class:`CatalogFilters` into a SQL predicate and its parameters."""

    clauses: List[str] = []
    params: Dict[str, object] = {}

    if filters.theme_id is not None:
        clauses.append("theme_id = %(theme_id)s")
        params["theme_id"] = str(filters.theme_id)
    if filters.keyword is not None:
        clauses.append("keywords @> ARRAY[%(keyword)s]::text[]")
        params["keyword"] = filters.keyword
    if filters.search:
        clauses.append(
            "(title ILIKE %(pattern)s OR uploader ILIKE %(pattern)s "
            "OR ai_summary ILIKE %(pattern)s OR admin_annotation ILIKE %(pattern)s)"
        )
        params["pattern"] = f"%{escape_like(filters.search)}%"

    if not clauses:
        return None, params
    return " AND ".join(clauses), params


class PostgresCatalogStore:
    """Catalog store backed by the ``videos`` and ``themes`` tables."""

    _migrations_applied: bool = False

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        auto_migrate: bool = True,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        dsn = str(self._settings.database_url) if self._settings.database_url is not None else None
        self._connection_factory = connection_factory or partial(get_connection, dsn)
        self._videos = VideoRepository(self._connection_factory)
        self._themes = ThemeRepository(self._connection_factory)

        if auto_migrate and not PostgresCatalogStore._migrations_applied:
            run_migrations(console=self._console, dsn=dsn)
            PostgresCatalogStore._migrations_applied = True

    # ------------------------------------------------------------------ #
    # Videos                                                             #
    # ------------------------------------------------------------------ #
    def find_by_reference(self, reference: VideoReference) -> Optional[VideoRecord]:
        row = self._videos.find_by_reference(reference)
        return self._hydrate(row) if row is not None else None

    def get(self, record_id: UUID) -> Optional[VideoRecord]:
        row = self._videos.find_by_id(record_id)
        return self._hydrate(row) if row is not None else None

    def insert(self, record: VideoRecord) -> VideoRecord:
        try:
            row = self._videos.insert(VideoRow.from_record(record))
        except pg_errors.UniqueViolation as exc:
            raise DuplicateReferenceError(record.reference) from exc
        return row.to_record(record.theme)

    def update(self, record_id: UUID, patch: Mapping[str, object]) -> Optional[VideoRecord]:
        existing = self._videos.find_by_id(record_id)
        if existing is None:
            return None

        changes = dict(patch)
        theme_changed = "theme" in changes
        theme = changes.pop("theme", None)
        if theme_changed:
            changes["theme_id"] = theme.id if isinstance(theme, Theme) else None

        candidate = VideoRow.model_validate({**existing.model_dump(), **changes})
        row = self._videos.update(candidate, include_none=True)
        return self._hydrate(row) if row is not None else None

    def delete(self, record_id: UUID) -> bool:
        return self._videos.delete_by_id(record_id)

    def list(self, filters: Optional[CatalogFilters] = None) -> List[VideoRecord]:
        filters = filters or CatalogFilters()
        where_clause, params = build_filter_clause(filters)
        rows = self._videos.fetch_all(where_clause, params, limit=filters.limit)

        theme_ids = sorted({row.theme_id for row in rows if row.theme_id is not None}, key=str)
        themes = {theme.id: theme for theme in self._themes.fetch_many_by_id(theme_ids)}
        return [row.to_record(themes.get(row.theme_id) if row.theme_id else None) for row in rows]

    # ------------------------------------------------------------------ #
    # Themes                                                             #
    # ------------------------------------------------------------------ #
    def list_themes(self) -> List[Theme]:
        return self._themes.fetch_all()

    def get_theme(self, theme_id: UUID) -> Optional[Theme]:
        return self._themes.find_by_id(theme_id)

    def find_or_create_theme(self, name: str) -> Theme:
        return self._themes.find_or_create(name)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _hydrate(self, row: VideoRow) -> VideoRecord:
        theme = self._themes.find_by_id(row.theme_id) if row.theme_id is not None else None
        return row.to_record(theme)


__all__ = ["PostgresCatalogStore", "build_filter_clause", "escape_like"]
