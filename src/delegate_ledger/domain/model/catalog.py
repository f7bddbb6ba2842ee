"""Catalog entries describing the accepted original assets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

PLACEHOLDER_MARKER: Final[str] = "PLACEHOLDER"


def is_placeholder_reference(reference_id: str) -> bool:
    return PLACEHOLDER_MARKER in reference_id.upper()


@dataclass(slots=True, frozen=True)
class CatalogEntry:
    id: str
    project_id: str
    display_name: str
    reference_id: str
    asset_class: str
    rarity_tier: str

    @property
    def is_placeholder(self) -> bool:
        return is_placeholder_reference(self.reference_id)


@dataclass(slots=True, frozen=True)
class CatalogProject:
    project_id: str
    display_name: str
    description: str = ""
    entries: tuple[CatalogEntry, ...] = field(default_factory=tuple)

    @property
    def placeholders(self) -> tuple[CatalogEntry, ...]:
        return tuple(entry for entry in self.entries if entry.is_placeholder)
