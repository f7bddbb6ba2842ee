from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from delegate_ledger.adapters.catalog_file import load_catalog, parse_catalog
from delegate_ledger.config import CatalogConfigurationError, CatalogSettings
from delegate_ledger.domain.validation import Validator
from tests.helpers.delegates import FOX_REF, WOLF_REF

if TYPE_CHECKING:
    from pathlib import Path

    from delegate_ledger.domain.catalog_registry import CatalogRegistry

SMALL_CATALOG = """
version = 2

[[projects]]
id = "black-and-wild"
name = "Black & Wild"

[[projects.entries]]
id = "wolf"
name = " Wolf "
referenceId = "{wolf}"
assetClass = "animal"
rarity = "epic"

[[projects.entries]]
id = "ghost"
name = "Ghost"
reference_id = "PLACEHOLDER_GHOST"
asset_class = "spirit"
rarity_tier = "mythic"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "catalog.toml"
    path.write_text(text)
    return path


def test_shipped_catalog_loads(shipped_catalog: CatalogRegistry) -> None:
    validator = Validator(shipped_catalog)

    assert shipped_catalog.version is not None
    assert validator.validate("Wolf", WOLF_REF, "black-and-wild").accepted
    rejected = validator.validate("Wolf", FOX_REF, "black-and-wild")
    assert rejected.suggestion == "Fox"
    assert shipped_catalog.placeholders()


def test_every_shipped_entry_validates_against_itself(shipped_catalog: CatalogRegistry) -> None:
    validator = Validator(shipped_catalog)

    for project_id in shipped_catalog.project_ids():
        for entry in shipped_catalog.lookup_all_for_project(project_id):
            if entry.is_placeholder:
                continue
            outcome = validator.validate(entry.display_name, entry.reference_id, project_id)
            assert outcome.accepted, outcome.message
            assert outcome.entry == entry


def test_shipped_catalog_is_rejected_in_production() -> None:
    with pytest.raises(CatalogConfigurationError, match="placeholder"):
        load_catalog(CatalogSettings(environment="production"))


def test_aliases_and_whitespace(tmp_path: Path) -> None:
    path = _write(tmp_path, SMALL_CATALOG.format(wolf=WOLF_REF))

    registry = load_catalog(CatalogSettings(environment="development"), path=path)

    wolf = registry.lookup_by_reference(WOLF_REF)
    assert wolf is not None
    assert wolf.display_name == "Wolf"
    assert wolf.rarity_tier == "epic"
    assert registry.version == 2
    assert [entry.id for entry in registry.placeholders()] == ["ghost"]


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(CatalogConfigurationError, match="not found"):
        load_catalog(path=tmp_path / "absent.toml")


def test_invalid_toml(tmp_path: Path) -> None:
    with pytest.raises(CatalogConfigurationError, match="not valid TOML"):
        load_catalog(path=_write(tmp_path, "projects = [[["))


def test_schema_errors_are_reported() -> None:
    with pytest.raises(CatalogConfigurationError, match="Invalid catalog"):
        parse_catalog({"version": 1, "projects": [{"id": "x", "name": "X", "entries": [{}]}]})


def test_duplicate_references_are_reported() -> None:
    entry = {
        "id": "wolf",
        "name": "Wolf",
        "reference_id": WOLF_REF,
        "asset_class": "animal",
        "rarity": "epic",
    }
    document = {
        "version": 1,
        "projects": [{"id": "p", "name": "P", "entries": [entry, {**entry, "id": "wolf-2"}]}],
    }

    with pytest.raises(CatalogConfigurationError, match="listed twice"):
        parse_catalog(document)
