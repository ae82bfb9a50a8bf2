"""Tests for the copy commit stage."""

import pytest

from sheet_migrator.core.exceptions import DestinationChangedError, PermanentRemoteError
from sheet_migrator.core.migration.copier import CopyCommitter
from sheet_migrator.core.store.memory import InMemoryStore
from sheet_migrator.models.plan import MigrationPlanItem
from sheet_migrator.models.requests import AppendDimension, CopyBlock, ValueRange

from .factories import HEADER, lead


def _item(source_position: int, destination_position: int | None) -> MigrationPlanItem:
    return MigrationPlanItem(
        source_collection="Leads",
        source_position=source_position,
        identity=f"id-{source_position}",
        checksum_snapshot="00000000",
        destination_collection="Interested",
        destination_position=destination_position,
    )


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore(
        {
            "Leads": [
                HEADER,
                lead("Interested", name="Ann", identity="id-2"),
                lead("Interested", name="Bob", identity="id-3"),
            ]
        }
    )
    store.add_collection("Interested", [HEADER], row_count=2, column_count=6)
    return store


class TestCopyCommitter:
    """Test suite for CopyCommitter."""

    @pytest.mark.asyncio
    async def test_build_requests_grows_grid_first(self, store):
        snapshot = await store.snapshot()
        requests = CopyCommitter(store).build_requests([_item(2, 2), _item(3, 3)], snapshot)

        assert requests[0] == AppendDimension(collection="Interested", dimension="ROWS", length=1)
        assert requests[1] == AppendDimension(
            collection="Interested", dimension="COLUMNS", length=20
        )
        assert [type(request) for request in requests[2:]] == [CopyBlock, CopyBlock]
        assert requests[2].destination_row == 2
        assert requests[3].source_row == 3

    @pytest.mark.asyncio
    async def test_commit_appends_rows_in_one_batch(self, store):
        snapshot = await store.snapshot()
        store.calls.clear()

        copied = await CopyCommitter(store).commit([_item(2, 2), _item(3, 3)], snapshot)

        assert copied == 2
        assert [name for name, _ in store.calls if name.startswith("batch_")] == ["batch_edit"]
        assert store.rows("Interested") == [
            HEADER,
            lead("Interested", name="Ann", identity="id-2"),
            lead("Interested", name="Bob", identity="id-3"),
        ]
        assert len(store.rows("Leads")) == 3

    @pytest.mark.asyncio
    async def test_delete_only_items_are_not_copied(self, store):
        snapshot = await store.snapshot()
        store.calls.clear()

        assert await CopyCommitter(store).commit([_item(2, None)], snapshot) == 0
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_failed_commit_raises_and_leaves_destination(self, store):
        snapshot = await store.snapshot()
        store.inject_failure("batch_edit", PermanentRemoteError("Invalid requests", 400))

        with pytest.raises(PermanentRemoteError):
            await CopyCommitter(store).commit([_item(2, 2)], snapshot)
        assert store.rows("Interested") == [HEADER]

    @pytest.mark.asyncio
    async def test_commit_refuses_rows_appended_after_planning(self, store):
        snapshot = await store.snapshot()
        await store.batch_write_values(
            [
                ValueRange(
                    collection="Interested",
                    start_row=2,
                    start_col=1,
                    values=[lead("Interested", name="Cy", identity="id-9")],
                )
            ]
        )
        store.calls.clear()

        with pytest.raises(DestinationChangedError):
            await CopyCommitter(store).commit([_item(2, 2)], snapshot)
        assert not any(name == "batch_edit" for name, _ in store.calls)
        assert store.rows("Interested") == [
            HEADER,
            lead("Interested", name="Cy", identity="id-9"),
        ]
