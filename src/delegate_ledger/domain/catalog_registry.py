"""Read-only, process-wide table of accepted original references."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from delegate_ledger.domain.model import CatalogEntry, CatalogProject

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ProjectMatch:
    project_id: str
    entry: CatalogEntry


@dataclass(slots=True, frozen=True)
class ProjectStats:
    project_id: str
    display_name: str
    total: int
    placeholders: int
    by_asset_class: dict[str, int] = field(default_factory=dict)
    by_rarity: dict[str, int] = field(default_factory=dict)


class CatalogRegistry:
    """Index over all catalog projects.

    Lookups never raise: an unknown reference, id or project yields ``None`` or an
    empty tuple. Construction raises ``ValueError`` if a reference id or catalog id
    appears twice within one project.
    """

    def __init__(self, projects: Iterable[CatalogProject], *, version: int | None = None) -> None:
        self.version = version
        self._projects: dict[str, CatalogProject] = {}
        self._by_reference: dict[tuple[str, str], CatalogEntry] = {}
        self._by_id: dict[tuple[str, str], CatalogEntry] = {}
        for project in projects:
            if project.project_id in self._projects:
                raise ValueError(f"Duplicate catalog project {project.project_id!r}")
            self._projects[project.project_id] = project
            for entry in project.entries:
                ref_key = (project.project_id, entry.reference_id)
                if ref_key in self._by_reference:
                    raise ValueError(
                        f"Reference {entry.reference_id} listed twice in project "
                        f"{project.project_id!r}"
                    )
                id_key = (project.project_id, entry.id)
                if id_key in self._by_id:
                    raise ValueError(
                        f"Catalog id {entry.id!r} listed twice in project {project.project_id!r}"
                    )
                self._by_reference[ref_key] = entry
                self._by_id[id_key] = entry

    def __len__(self) -> int:
        return len(self._by_reference)

    def project_ids(self) -> tuple[str, ...]:
        return tuple(self._projects)

    def project(self, project_id: str) -> CatalogProject | None:
        return self._projects.get(project_id)

    def lookup_by_reference(
        self, reference_id: str, project_id: str | None = None
    ) -> CatalogEntry | None:
        ref = reference_id.strip() if reference_id else ""
        if not ref:
            return None
        if project_id is not None:
            return self._by_reference.get((project_id, ref))
        match = self.find_project_for_reference(ref)
        return match.entry if match else None

    def lookup_by_id(self, catalog_id: str, project_id: str | None = None) -> CatalogEntry | None:
        if project_id is not None:
            return self._by_id.get((project_id, catalog_id))
        for (_, entry_id), entry in self._by_id.items():
            if entry_id == catalog_id:
                return entry
        return None

    def lookup_all_for_project(self, project_id: str) -> tuple[CatalogEntry, ...]:
        project = self._projects.get(project_id)
        return project.entries if project else ()

    def find_project_for_reference(self, reference_id: str) -> ProjectMatch | None:
        """Scan every project for ``reference_id``; the first declared project wins."""

        ref = reference_id.strip() if reference_id else ""
        if not ref:
            return None
        for project_id in self._projects:
            entry = self._by_reference.get((project_id, ref))
            if entry is not None:
                return ProjectMatch(project_id=project_id, entry=entry)
        return None

    def reference_ids(self) -> tuple[str, ...]:
        """Assignable reference ids in catalog order, placeholders excluded."""

        return tuple(
            dict.fromkeys(
                entry.reference_id
                for entry in self._by_reference.values()
                if not entry.is_placeholder
            )
        )

    def placeholders(self) -> tuple[CatalogEntry, ...]:
        return tuple(entry for entry in self._by_reference.values() if entry.is_placeholder)

    def project_stats(self) -> list[ProjectStats]:
        stats: list[ProjectStats] = []
        for project in self._projects.values():
            stats.append(
                ProjectStats(
                    project_id=project.project_id,
                    display_name=project.display_name,
                    total=len(project.entries),
                    placeholders=len(project.placeholders),
                    by_asset_class=dict(Counter(entry.asset_class for entry in project.entries)),
                    by_rarity=dict(Counter(entry.rarity_tier for entry in project.entries)),
                )
            )
        return stats
