"""Tests for catalog mutation rules over the in-memory store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from vidcat.db.store import CatalogFilters, InMemoryCatalogStore
from vidcat.models.metadata import NormalizedMetadata, ThemeResolution
from vidcat.models.video import VideoUpdate
from vidcat.services.catalog import (
    CatalogService,
    DuplicateReferenceError,
    ThemeNotFoundError,
    VideoNotFoundError,
)
from vidcat.services.metadata import normalize
from vidcat.utils.validation import require_reference


def _metadata(**overrides: object) -> NormalizedMetadata:
    values = {
        "title": "Attention",
        "uploader": "ISC",
        "view_count": 10,
        "summary": "Un résumé.",
        "keywords": ["attention", "focus"],
        "simulated": False,
        "metadata_simulated": False,
    }
    values.update(overrides)
    return NormalizedMetadata(**values)


def test_register_without_metadata_produces_pending_record(catalog: CatalogService) -> None:
    reference = require_reference("https://youtu.be/abc123?t=5")

    record = catalog.register(reference)

    assert record.reference.external_id == "abc123"
    assert record.title == "pending"
    assert record.view_count == 0
    assert record.ai_summary == "pending"
    assert record.keywords == []
    assert record.theme is None
    assert record.created_at == record.updated_at


def test_register_with_normalized_defaults_matches_bare_registration(catalog: CatalogService) -> None:
    record = catalog.register(require_reference("https://youtu.be/abc123"), normalize(None, None, []))

    assert record.title == "pending"
    assert record.ai_summary == "pending"
    assert record.theme is None


def test_duplicate_registration_fails_and_leaves_catalog_unchanged(catalog: CatalogService) -> None:
    reference = require_reference("https://youtu.be/abc123")
    catalog.register(reference)

    with pytest.raises(DuplicateReferenceError):
        catalog.register(require_reference("https://www.youtube.com/watch?v=abc123"))

    assert len(catalog.list()) == 1
    assert catalog.exists(reference)


def test_register_copies_keywords(catalog: CatalogService) -> None:
    metadata = _metadata()

    record = catalog.register(require_reference("https://youtu.be/abc123"), metadata)
    metadata.keywords.append("mutated")

    assert catalog.get(record.id).keywords == ["attention", "focus"]


def test_proposed_theme_is_created_once(catalog: CatalogService) -> None:
    first = catalog.register(
        require_reference("https://youtu.be/one"),
        _metadata(theme_resolution=ThemeResolution(proposed_name="Neuroscience")),
    )
    second = catalog.register(
        require_reference("https://youtu.be/two"),
        _metadata(theme_resolution=ThemeResolution(proposed_name="neuroscience")),
    )

    assert first.theme is not None
    assert second.theme == first.theme
    assert [theme.name for theme in catalog.list_themes()] == ["Neuroscience"]


def test_overlong_ai_theme_registers_under_default_theme(catalog: CatalogService) -> None:
    normalized = normalize(None, "Résumé: ok.\nMots-clés: a\nThématique: " + "neuro " * 30, [])

    record = catalog.register(require_reference("https://youtu.be/abc123"), normalized)

    assert record.theme is not None
    assert record.theme.name == "Other"
    assert catalog.list() == [record]


def test_existing_theme_resolution_is_reused(catalog: CatalogService, store: InMemoryCatalogStore) -> None:
    theme = store.find_or_create_theme("Vision")

    record = catalog.register(
        require_reference("https://youtu.be/abc123"),
        _metadata(theme_resolution=ThemeResolution(theme=theme)),
    )

    assert record.theme == theme
    assert len(store.list_themes()) == 1


def test_annotate_refreshes_updated_at(catalog: CatalogService) -> None:
    record = catalog.register(require_reference("https://youtu.be/abc123"))

    annotated = catalog.annotate(record.id, "À voir en cours.")

    assert annotated.admin_annotation == "À voir en cours."
    assert annotated.created_at == record.created_at
    assert annotated.updated_at > record.updated_at


def test_annotate_unknown_record(catalog: CatalogService) -> None:
    with pytest.raises(VideoNotFoundError):
        catalog.annotate(uuid4(), "note")


def test_update_applies_changes_and_theme(catalog: CatalogService, store: InMemoryCatalogStore) -> None:
    theme = store.find_or_create_theme("Memory")
    record = catalog.register(require_reference("https://youtu.be/abc123"))

    updated = catalog.update(
        record.id,
        VideoUpdate(title="New title", keywords=[" a ", "", "b"], theme_id=theme.id),
    )

    assert updated.title == "New title"
    assert updated.keywords == ["a", "b"]
    assert updated.theme == theme
    assert updated.uploader == record.uploader
    assert updated.updated_at > record.updated_at


def test_update_can_clear_theme(catalog: CatalogService, store: InMemoryCatalogStore) -> None:
    theme = store.find_or_create_theme("Memory")
    record = catalog.register(require_reference("https://youtu.be/abc123"))
    catalog.update(record.id, VideoUpdate(theme_id=theme.id))

    cleared = catalog.update(record.id, VideoUpdate(clear_theme=True))

    assert cleared.theme is None
    assert catalog.list(CatalogFilters(theme_id=theme.id)) == []


def test_update_rejects_assigning_and_clearing_theme_together() -> None:
    with pytest.raises(ValueError):
        VideoUpdate(theme_id=uuid4(), clear_theme=True)


def test_update_rejects_unknown_theme(catalog: CatalogService) -> None:
    record = catalog.register(require_reference("https://youtu.be/abc123"))

    with pytest.raises(ThemeNotFoundError):
        catalog.update(record.id, VideoUpdate(theme_id=uuid4()))

    assert catalog.get(record.id).theme is None


def test_update_unknown_record(catalog: CatalogService) -> None:
    with pytest.raises(VideoNotFoundError):
        catalog.update(uuid4(), VideoUpdate(title="x"))


def test_remove_returns_removed_record(catalog: CatalogService) -> None:
    record = catalog.register(require_reference("https://youtu.be/abc123"))

    removed = catalog.remove(record.id)

    assert removed.id == record.id
    assert catalog.list() == []
    assert not catalog.exists(record.reference)
    catalog.register(record.reference)


def test_remove_unknown_record_leaves_catalog_unchanged(catalog: CatalogService) -> None:
    catalog.register(require_reference("https://youtu.be/abc123"))

    with pytest.raises(VideoNotFoundError):
        catalog.remove(uuid4())

    assert len(catalog.list()) == 1


def test_get_unknown_record(catalog: CatalogService) -> None:
    with pytest.raises(VideoNotFoundError):
        catalog.get(uuid4())


def test_list_is_newest_first_and_idempotent(catalog: CatalogService) -> None:
    ids = [catalog.register(require_reference(f"https://youtu.be/v{index}")).id for index in range(3)]

    first = catalog.list()
    second = catalog.list()

    assert [record.id for record in first] == list(reversed(ids))
    assert first == second


def test_list_breaks_timestamp_ties_by_id(store: InMemoryCatalogStore, console) -> None:
    frozen = datetime(2025, 1, 1, tzinfo=timezone.utc)
    catalog = CatalogService(store, console=console, clock=lambda: frozen)
    records = [catalog.register(require_reference(f"https://youtu.be/t{index}")) for index in range(4)]

    listed = catalog.list()

    assert [record.id for record in listed] == sorted((record.id for record in records), reverse=True)


def test_list_filters(catalog: CatalogService) -> None:
    brain = catalog.register(
        require_reference("https://youtu.be/brain"),
        _metadata(
            title="The Brain",
            keywords=["neuro", "Brain"],
            theme_resolution=ThemeResolution(proposed_name="Neuroscience"),
        ),
    )
    catalog.register(
        require_reference("https://youtu.be/lang"),
        _metadata(title="Language", keywords=["linguistics"], summary="Grammar and BRAINS"),
    )
    catalog.register(require_reference("https://youtu.be/other"), admin_annotation="50% off_topic")

    assert [r.id for r in catalog.list(CatalogFilters(keyword="neuro"))] == [brain.id]
    assert catalog.list(CatalogFilters(keyword="brain")) == []
    assert {r.title for r in catalog.list(CatalogFilters(search="brain"))} == {"The Brain", "Language"}
    assert [r.id for r in catalog.list(CatalogFilters(theme_id=brain.theme.id))] == [brain.id]
    assert len(catalog.list(CatalogFilters(search="% OFF_"))) == 1
    assert len(catalog.list(CatalogFilters(limit=2))) == 2


def test_list_keywords_and_themes(catalog: CatalogService) -> None:
    catalog.register(
        require_reference("https://youtu.be/one"),
        _metadata(keywords=["b", "a"], theme_resolution=ThemeResolution(proposed_name="zeta")),
    )
    catalog.register(
        require_reference("https://youtu.be/two"),
        _metadata(keywords=["a", "c"], theme_resolution=ThemeResolution(proposed_name="Alpha")),
    )

    assert catalog.list_keywords() == ["a", "b", "c"]
    assert [theme.name for theme in catalog.list_themes()] == ["Alpha", "zeta"]


def test_returned_records_are_copies(catalog: CatalogService) -> None:
    record = catalog.register(require_reference("https://youtu.be/abc123"), _metadata())

    record.keywords.append("local only")

    assert "local only" not in catalog.get(record.id).keywords
    assert isinstance(record.id, UUID)


def test_concurrent_registration_of_one_reference_succeeds_once(catalog: CatalogService) -> None:
    reference = require_reference("https://youtu.be/abc123")
    start = threading.Barrier(8)

    def register() -> str:
        start.wait()
        try:
            catalog.register(reference)
        except DuplicateReferenceError:
            return "duplicate"
        return "stored"

    with ThreadPoolExecutor(max_workers=8) as executor:
        outcomes = list(executor.map(lambda _: register(), range(8)))

    assert outcomes.count("stored") == 1
    assert outcomes.count("duplicate") == 7
    assert len(catalog.list()) == 1


def test_concurrent_theme_creation_yields_one_theme(store: InMemoryCatalogStore) -> None:
    names = ["Neuroscience", "neuroscience", " NEUROSCIENCE ", "Neuroscience"] * 4
    start = threading.Barrier(len(names))

    def create(name: str) -> UUID:
        start.wait()
        return store.find_or_create_theme(name).id

    with ThreadPoolExecutor(max_workers=len(names)) as executor:
        theme_ids = set(executor.map(create, names))

    assert len(theme_ids) == 1
    assert [theme.name for theme in store.list_themes()] == ["Neuroscience"]
