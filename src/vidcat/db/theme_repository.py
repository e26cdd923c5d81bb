"""Repository for the `themes` table."""

from __future__ import annotations

from typing import List, Optional, Sequence
from uuid import UUID, uuid4

from vidcat.db.repositories import BaseRepository, RepositoryError
from vidcat.models.theme import Theme


class ThemeRepository(BaseRepository[Theme]):
    """Data access object for themes; names are unique case-insensitively."""

    table_name = "themes"
    model_type = Theme
    insert_fields = ("id", "name", "color", "description")
    update_fields = ("name", "color", "description")
    default_order = "name"

    def find_by_name(self, name: str) -> Optional[Theme]:
        return self.find_one("lower(name) = lower(%(name)s)", {"name": name.strip()})

    def fetch_many_by_id(self, theme_ids: Sequence[UUID]) -> List[Theme]:
        if not theme_ids:
            return []
        return self.fetch_all(
            "id = ANY(%(ids)s::uuid[])",
            {"ids": [str(theme_id) for theme_id in theme_ids]},
        )

    def find_or_create(self, name: str) -> Theme:
        """Return the theme named ``name``, inserting it when absent.

        Concurrent creators race on the ``lower(name)`` unique index; the loser's insert is a no-op
        and it re-reads the winner's row.
        """

        existing = self.find_by_name(name)
        if existing is not None:
            return existing

        row = self._query_one(
            f"INSERT INTO {self.table_name} (id, name) VALUES (%(id)s, %(name)s) "
            "ON CONFLICT DO NOTHING RETURNING *",
            {"id": str(uuid4()), "name": name.strip()},
        )
        if row is not None:
            return self.model_type.model_validate(row)

        winner = self.find_by_name(name)
        if winner is None:
            raise RepositoryError(f"Theme {name!r} vanished after a conflicting insert.")
        return winner


__all__ = ["ThemeRepository"]
