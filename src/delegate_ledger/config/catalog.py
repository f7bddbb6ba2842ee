"""Catalog location and deployment environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

DEFAULT_CATALOG_PATH: Final[Path] = Path(__file__).resolve().parents[1] / "data" / "catalog.toml"
PRODUCTION_LIKE_ENVIRONMENTS: Final[frozenset[str]] = frozenset({"production", "staging"})


@dataclass(frozen=True, slots=True)
class CatalogSettings:
    path: Path = DEFAULT_CATALOG_PATH
    environment: str = "development"

    @property
    def production_like(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_LIKE_ENVIRONMENTS


def get_catalog_settings() -> CatalogSettings:
    env_path = os.getenv("CATALOG_PATH")
    return CatalogSettings(
        path=Path(env_path).expanduser() if env_path else DEFAULT_CATALOG_PATH,
        environment=os.getenv("DELEGATE_LEDGER_ENV") or "development",
    )
