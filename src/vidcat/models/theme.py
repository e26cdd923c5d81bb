"""Pydantic models for catalog themes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import Field

from vidcat.models.base import CatalogBaseModel

DEFAULT_THEME_NAME = "Other"
THEME_NAME_MAX_LENGTH = 120


class Theme(CatalogBaseModel):
    """Domain model representing a row in the ``themes`` table.

    Names are unique case-insensitively; many videos may point at the same theme.
    """

    id: UUID
    name: str = Field(min_length=1, max_length=THEME_NAME_MAX_LENGTH)
    color: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None

    @property
    def match_key(self) -> str:
        return theme_key(self.name)


def theme_key(name: str) -> str:
    """Return the comparison key used for case-insensitive theme matching."""

    return name.strip().casefold()


__all__ = ["DEFAULT_THEME_NAME", "THEME_NAME_MAX_LENGTH", "Theme", "theme_key"]
