"""Tests for delete verification."""

import pytest

from sheet_migrator.core.migration.classifier import Classifier
from sheet_migrator.core.migration.copier import CopyCommitter
from sheet_migrator.core.migration.identity import IdentityAssigner
from sheet_migrator.core.migration.planner import MigrationPlanner
from sheet_migrator.core.migration.verification import DeleteVerifier
from sheet_migrator.models.plan import MigrationPlan
from sheet_migrator.models.requests import DeleteRows, ValueRange

from .factories import IDENTITY_COLUMN, RULES, SOURCE, lead


async def _plan_and_copy(store, settings, copy: bool = True) -> MigrationPlan:
    snapshot = await store.snapshot()
    assigner = IdentityAssigner(store, IDENTITY_COLUMN)
    plan = await MigrationPlanner(store, Classifier(RULES), assigner, settings).plan(snapshot)
    if copy:
        await CopyCommitter(store).commit(plan.copy_items, snapshot)
    return plan


def _reasons(result) -> dict[int, str]:
    return {retained.item.source_position: retained.reason for retained in result.retained}


class TestDeleteVerifier:
    """Test suite for DeleteVerifier."""

    @pytest.mark.asyncio
    async def test_admits_verified_copies(self, make_store, settings):
        store = make_store([lead("Interested", name="Ann"), lead("Meeting set", name="Bob")])
        plan = await _plan_and_copy(store, settings)

        result = await DeleteVerifier(store, settings).verify(plan)

        assert [item.source_position for item in result.admitted] == [2, 3]
        assert result.retained == []

    @pytest.mark.asyncio
    async def test_retains_when_copy_not_visible(self, make_store, settings):
        store = make_store([lead("Interested")])
        plan = await _plan_and_copy(store, settings, copy=False)

        result = await DeleteVerifier(store, settings).verify(plan)

        assert result.admitted == []
        assert _reasons(result) == {2: "copy_not_visible"}

    @pytest.mark.asyncio
    async def test_copy_check_can_be_disabled(self, make_store, settings):
        store = make_store([lead("Interested")])
        plan = await _plan_and_copy(store, settings, copy=False)
        settings = settings.model_copy(update={"require_destination_identity": False})

        result = await DeleteVerifier(store, settings).verify(plan)

        assert len(result.admitted) == 1

    @pytest.mark.asyncio
    async def test_retains_changed_source(self, make_store, settings):
        store = make_store([lead("Interested", name="Ann"), lead("Interested", name="Bob")])
        plan = await _plan_and_copy(store, settings)
        await store.batch_write_values(
            [ValueRange(collection=SOURCE, start_row=3, start_col=4, values=[["Interested!"]])]
        )

        result = await DeleteVerifier(store, settings).verify(plan)

        assert [item.source_position for item in result.admitted] == [2]
        assert _reasons(result) == {3: "source_changed"}

    @pytest.mark.asyncio
    async def test_checksum_check_can_be_disabled(self, make_store, settings):
        store = make_store([lead("Interested")])
        plan = await _plan_and_copy(store, settings)
        await store.batch_write_values(
            [ValueRange(collection=SOURCE, start_row=2, start_col=2, values=[["Edited"]])]
        )
        settings = settings.model_copy(update={"require_unchanged_checksum": False})

        result = await DeleteVerifier(store, settings).verify(plan)

        assert len(result.admitted) == 1

    @pytest.mark.asyncio
    async def test_retains_shifted_rows(self, make_store, settings):
        store = make_store([lead("Interested", name="Ann"), lead("Interested", name="Bob")])
        plan = await _plan_and_copy(store, settings)
        # Someone deleted row 2 by hand: Bob moved up, row 3 is now empty
        await store.batch_edit([DeleteRows(collection=SOURCE, start_row=2, end_row=2)])
        settings = settings.model_copy(update={"require_unchanged_checksum": False})

        result = await DeleteVerifier(store, settings).verify(plan)

        assert result.admitted == []
        assert _reasons(result) == {2: "identity_changed", 3: "source_missing"}

    @pytest.mark.asyncio
    async def test_no_candidates_reads_nothing(self, make_store, settings):
        store = make_store([])
        store.calls.clear()

        result = await DeleteVerifier(store, settings).verify(MigrationPlan())

        assert result.admitted == [] and result.retained == []
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_retains_orphan_whose_copy_changed(self, make_store, settings):
        store = make_store(
            [lead("Interested", identity="id-1")],
            destinations={"Interested": [lead("Interested", identity="id-1")]},
        )
        settings = settings.model_copy(update={"reconcile_orphans": True})
        plan = await _plan_and_copy(store, settings)
        await store.batch_write_values(
            [ValueRange(collection="Interested", start_row=2, start_col=3, values=[["x@y.z"]])]
        )

        result = await DeleteVerifier(store, settings).verify(plan)

        assert result.admitted == []
        assert _reasons(result) == {2: "copy_differs"}
