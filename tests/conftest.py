"""Shared pytest fixtures for sheet migrator tests."""

from collections.abc import Callable

import pytest

from sheet_migrator.core.config_loader import MigrationSettings, MigratorConfig
from sheet_migrator.core.settings import RetrySettings
from sheet_migrator.core.store.memory import InMemoryStore

from .factories import DESTINATIONS, HEADER, IDENTITY_COLUMN, RULES, SOURCE, SequentialEntropy


@pytest.fixture
def settings() -> MigrationSettings:
    return MigrationSettings(
        source_collections=(SOURCE,),
        destination_collections=DESTINATIONS,
        identity_column=IDENTITY_COLUMN,
        header_rows=1,
    )


@pytest.fixture
def config(settings: MigrationSettings) -> MigratorConfig:
    return MigratorConfig(migration=settings, rules=RULES, retry=RetrySettings.no_retry())


@pytest.fixture
def make_store() -> Callable[..., InMemoryStore]:
    """Factory for a workbook holding the source and every configured destination."""

    def _make(
        rows: list[list[str]],
        destinations: dict[str, list[list[str]]] | None = None,
        store_class: type[InMemoryStore] = InMemoryStore,
    ) -> InMemoryStore:
        store = store_class({SOURCE: [HEADER, *rows]})
        for name in DESTINATIONS:
            store.add_collection(name, [HEADER, *(destinations or {}).get(name, [])])
        return store

    return _make


@pytest.fixture
def entropy() -> SequentialEntropy:
    return SequentialEntropy()


@pytest.fixture
def fixed_clock() -> Callable[[], float]:
    return lambda: 1_700_000_000.0
