"""Catalog store persisted to a single JSON document on disk."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union
from uuid import UUID

from pydantic import ValidationError

from vidcat.db.store import InMemoryCatalogStore, StorageError
from vidcat.models.theme import Theme
from vidcat.models.video import VideoRecord

Snapshot = Tuple[Dict[UUID, VideoRecord], Dict[Tuple[str, str], UUID], Dict[UUID, Theme]]


class JsonFileCatalogStore(InMemoryCatalogStore):
    """In-memory store that writes ``{"videos": [...], "themes": [...]}`` back after every mutation.

    A missing file is an empty catalog. Writes go to a temporary sibling file which then replaces the
    target, so readers never observe a partially written document.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self._path = Path(path)
        self._read()

    @property
    def path(self) -> Path:
        return self._path

    def insert(self, record: VideoRecord) -> VideoRecord:
        with self._lock:
            snapshot = self._snapshot()
            stored = super().insert(record)
            self._persist(snapshot)
            return stored

    def update(self, record_id: UUID, patch: Mapping[str, object]) -> Optional[VideoRecord]:
        with self._lock:
            snapshot = self._snapshot()
            updated = super().update(record_id, patch)
            if updated is not None:
                self._persist(snapshot)
            return updated

    def delete(self, record_id: UUID) -> bool:
        with self._lock:
            snapshot = self._snapshot()
            removed = super().delete(record_id)
            if removed:
                self._persist(snapshot)
            return removed

    def find_or_create_theme(self, name: str) -> Theme:
        with self._lock:
            snapshot = self._snapshot()
            theme = super().find_or_create_theme(name)
            if len(self._themes) != len(snapshot[2]):
                self._persist(snapshot)
            return theme

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _snapshot(self) -> Snapshot:
        return dict(self._videos), dict(self._references), dict(self._themes)

    def _persist(self, snapshot: Snapshot) -> None:
        """Write the document, restoring ``snapshot`` in memory when the write fails."""

        try:
            self._write()
        except StorageError:
            self._videos, self._references, self._themes = snapshot
            raise

    def _read(self) -> None:
        if not self._path.exists():
            return
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unable to read catalog file {self._path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StorageError(f"Catalog file {self._path} must contain a JSON object.")

        try:
            videos: List[VideoRecord] = [VideoRecord.model_validate(item) for item in document.get("videos", [])]
            themes: List[Theme] = [Theme.model_validate(item) for item in document.get("themes", [])]
        except (TypeError, ValidationError) as exc:
            raise StorageError(f"Catalog file {self._path} contains invalid entries: {exc}") from exc
        self._load(videos, themes)

    def _write(self) -> None:
        document = {
            "videos": [record.model_dump(mode="json") for record in self.list()],
            "themes": [theme.model_dump(mode="json") for theme in self.list_themes()],
        }
        temp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                json.dump(document, handle, ensure_ascii=False, indent=2)
            os.replace(temp_name, self._path)
        except OSError as exc:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise StorageError(f"Unable to write catalog file {self._path}: {exc}") from exc


__all__ = ["JsonFileCatalogStore"]
