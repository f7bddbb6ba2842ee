"""Load the catalog from its versioned TOML file."""

from __future__ import annotations

import tomllib
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from delegate_ledger.config import CatalogConfigurationError, CatalogSettings, get_catalog_settings
from delegate_ledger.domain.catalog_registry import CatalogRegistry
from delegate_ledger.domain.model import CatalogEntry, CatalogProject

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class EntryModel(CatalogBaseModel):
    id: str = Field(min_length=1)
    display_name: str = Field(validation_alias=AliasChoices("name", "display_name"), min_length=1)
    reference_id: str = Field(
        validation_alias=AliasChoices("reference_id", "referenceId"), min_length=1
    )
    asset_class: str = Field(validation_alias=AliasChoices("asset_class", "assetClass"))
    rarity_tier: str = Field(validation_alias=AliasChoices("rarity", "rarity_tier", "rarityTier"))


class ProjectModel(CatalogBaseModel):
    id: str = Field(min_length=1)
    name: str
    description: str = ""
    entries: list[EntryModel] = Field(default_factory=list)


class CatalogDocument(CatalogBaseModel):
    version: int
    projects: list[ProjectModel]


def parse_catalog(document: object) -> CatalogRegistry:
    try:
        parsed = CatalogDocument.model_validate(document)
    except ValidationError as exc:
        raise CatalogConfigurationError(f"Invalid catalog document: {exc}") from exc

    projects = [
        CatalogProject(
            project_id=project.id,
            display_name=project.name,
            description=project.description,
            entries=tuple(
                CatalogEntry(
                    id=entry.id,
                    project_id=project.id,
                    display_name=entry.display_name.strip(),
                    reference_id=entry.reference_id.strip(),
                    asset_class=entry.asset_class,
                    rarity_tier=entry.rarity_tier,
                )
                for entry in project.entries
            ),
        )
        for project in parsed.projects
    ]
    try:
        return CatalogRegistry(projects, version=parsed.version)
    except ValueError as exc:
        raise CatalogConfigurationError(str(exc)) from exc


def load_catalog(
    settings: CatalogSettings | None = None,
    *,
    path: Path | None = None,
) -> CatalogRegistry:
    """Read, validate and index the catalog file.

    Placeholder reference ids are fatal in production-like environments and only
    logged elsewhere, so half-finished projects can still be worked on locally.
    """

    effective = settings or get_catalog_settings()
    catalog_path = path or effective.path
    try:
        with catalog_path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise CatalogConfigurationError(f"Catalog file not found: {catalog_path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise CatalogConfigurationError(f"Catalog file {catalog_path} is not valid TOML") from exc

    registry = parse_catalog(document)
    placeholders = registry.placeholders()
    if placeholders:
        listed = ", ".join(f"{entry.project_id}/{entry.id}" for entry in placeholders)
        if effective.production_like:
            raise CatalogConfigurationError(
                f"Catalog contains placeholder references in {effective.environment}: {listed}"
            )
        log.warning("Catalog contains placeholder references (not assignable): %s", listed)

    log.info(
        f"Loaded catalog v{registry.version}: {len(registry)} entries in "
        f"{len(registry.project_ids())} projects"
    )
    return registry
