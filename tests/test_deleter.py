"""Tests for the delete commit stage."""

from unittest.mock import AsyncMock

import pytest

from sheet_migrator.core.migration.deleter import DeleteCommitter, ordered_deletions
from sheet_migrator.core.store.base import BaseTabularStore
from sheet_migrator.core.store.memory import InMemoryStore
from sheet_migrator.models.plan import MigrationPlanItem
from sheet_migrator.models.requests import DeleteRows


def _item(position: int, collection: str = "Leads") -> MigrationPlanItem:
    return MigrationPlanItem(
        source_collection=collection,
        source_position=position,
        identity=f"id-{collection}-{position}",
        checksum_snapshot="00000000",
        destination_collection="Interested",
        destination_position=2,
    )


class TestOrderedDeletions:
    """Test suite for deletion ordering."""

    def test_descending(self):
        assert ordered_deletions([3, 7, 2, 9]) == [9, 7, 3, 2]

    def test_duplicates_collapse(self):
        assert ordered_deletions([4, 4, 1]) == [4, 1]

    def test_empty(self):
        assert ordered_deletions([]) == []


class TestDeleteCommitter:
    """Test suite for DeleteCommitter."""

    @pytest.mark.asyncio
    async def test_survivors_keep_their_order(self):
        store = InMemoryStore({"Leads": [[f"r{n}"] for n in range(1, 11)]})

        order = await DeleteCommitter(store).commit([_item(p) for p in (3, 7, 2, 9)])

        assert order == {"Leads": [9, 7, 3, 2]}
        assert store.rows("Leads") == [[f"r{n}"] for n in (1, 4, 5, 6, 8, 10)]

    @pytest.mark.asyncio
    async def test_one_non_idempotent_batch(self):
        store = AsyncMock(spec=BaseTabularStore)

        await DeleteCommitter(store).commit([_item(2), _item(5), _item(3, collection="Archive")])

        store.batch_edit.assert_awaited_once_with(
            [
                DeleteRows(collection="Archive", start_row=3, end_row=3),
                DeleteRows(collection="Leads", start_row=5, end_row=5),
                DeleteRows(collection="Leads", start_row=2, end_row=2),
            ],
            idempotent=False,
        )

    @pytest.mark.asyncio
    async def test_nothing_admitted(self):
        store = AsyncMock(spec=BaseTabularStore)

        assert await DeleteCommitter(store).commit([]) == {}
        store.batch_edit.assert_not_awaited()
