"""Tests for the JSON file catalog store."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from vidcat.db.json_store import JsonFileCatalogStore
from vidcat.db.store import DuplicateReferenceError, StorageError
from vidcat.models.video import VideoRecord
from vidcat.utils.validation import require_reference

NOW = datetime(2025, 11, 5, 12, 0, tzinfo=timezone.utc)


def _record(url: str, **overrides: object) -> VideoRecord:
    values = {
        "id": uuid4(),
        "reference": require_reference(url),
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return VideoRecord(**values)


def test_missing_file_is_an_empty_catalog(tmp_path) -> None:
    store = JsonFileCatalogStore(tmp_path / "missing.json")

    assert store.list() == []
    assert store.list_themes() == []
    assert not (tmp_path / "missing.json").exists()


def test_round_trip_across_instances(tmp_path) -> None:
    path = tmp_path / "nested" / "catalog.json"
    first = JsonFileCatalogStore(path)
    theme = first.find_or_create_theme("Neuroscience")
    record = first.insert(_record("https://youtu.be/abc123", theme=theme, keywords=["a", "b"], title="Brain"))

    second = JsonFileCatalogStore(path)

    assert second.get(record.id) == record
    assert second.list_themes() == [theme]
    assert second.find_by_reference(record.reference) == record
    assert [item.name for item in path.parent.iterdir()] == ["catalog.json"]


def test_mutations_are_written_through(tmp_path) -> None:
    path = tmp_path / "catalog.json"
    store = JsonFileCatalogStore(path)
    record = store.insert(_record("https://youtu.be/abc123"))

    store.update(record.id, {"admin_annotation": "note"})
    assert JsonFileCatalogStore(path).get(record.id).admin_annotation == "note"

    assert store.delete(record.id) is True
    assert JsonFileCatalogStore(path).list() == []
    assert store.delete(record.id) is False


def test_duplicate_insert_does_not_touch_file(tmp_path) -> None:
    path = tmp_path / "catalog.json"
    store = JsonFileCatalogStore(path)
    store.insert(_record("https://youtu.be/abc123"))
    before = path.read_text(encoding="utf-8")

    with pytest.raises(DuplicateReferenceError):
        store.insert(_record("https://youtu.be/abc123"))

    assert path.read_text(encoding="utf-8") == before


def test_document_layout(tmp_path) -> None:
    path = tmp_path / "catalog.json"
    store = JsonFileCatalogStore(path)
    store.insert(_record("https://youtu.be/abc123"))

    document = json.loads(path.read_text(encoding="utf-8"))

    assert set(document) == {"videos", "themes"}
    assert document["videos"][0]["reference"] == {"provider": "youtube", "external_id": "abc123"}


@pytest.mark.parametrize("content", ["{not json", "[]", '{"videos": [{"id": "nope"}]}'])
def test_corrupt_file_raises_storage_error(tmp_path, content: str) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileCatalogStore(path)


def test_failed_insert_leaves_memory_unchanged(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = JsonFileCatalogStore(blocker / "catalog.json")
    record = _record("https://youtu.be/abc123")

    with pytest.raises(StorageError):
        store.insert(record)
    with pytest.raises(StorageError):
        store.find_or_create_theme("Neuroscience")

    assert store.list() == []
    assert store.list_themes() == []
    assert store.find_by_reference(record.reference) is None
    with pytest.raises(StorageError):
        store.insert(record)


def test_failed_update_and_delete_are_rolled_back(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "catalog.json"
    store = JsonFileCatalogStore(path)
    record = store.insert(_record("https://youtu.be/abc123"))
    before = path.read_text(encoding="utf-8")

    def refuse_replace(source: str, target: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("vidcat.db.json_store.os.replace", refuse_replace)

    with pytest.raises(StorageError):
        store.update(record.id, {"admin_annotation": "lost"})
    with pytest.raises(StorageError):
        store.delete(record.id)

    assert store.get(record.id) == record
    assert store.find_by_reference(record.reference) == record
    assert path.read_text(encoding="utf-8") == before
    assert sorted(item.name for item in tmp_path.iterdir()) == ["catalog.json"]
