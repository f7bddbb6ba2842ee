"""Shared fixtures for indexer adapter tests."""

from __future__ import annotations

import pytest

from delegate_ledger.config import IndexerConfig
from delegate_ledger.config.indexer import build_indexer_profiles
from tests.helpers.indexer_payloads import IndexerPayload, load_fixture

BASE_URL = "https://indexer.test"
FALLBACK_URL = "https://ordinals.test"


@pytest.fixture
def indexer_config() -> IndexerConfig:
    listing, content = build_indexer_profiles(api_key="test-key", base_url=BASE_URL)
    return IndexerConfig(
        api_key="test-key",
        listing=listing,
        content=content,
        content_fallback_url=FALLBACK_URL,
    )


@pytest.fixture
def first_page() -> IndexerPayload:
    return load_fixture("address_inscriptions_page1.json")


@pytest.fixture
def second_page() -> IndexerPayload:
    return load_fixture("address_inscriptions_page2.json")


@pytest.fixture
def inscription_info() -> IndexerPayload:
    return load_fixture("inscription_info.json")


@pytest.fixture
def funding_tx() -> IndexerPayload:
    return load_fixture("funding_tx.json")
