"""Tests for migration planning."""

import pytest

from sheet_migrator.core.migration.classifier import Classifier
from sheet_migrator.core.migration.identity import IdentityAssigner
from sheet_migrator.core.migration.planner import MigrationPlanner
from sheet_migrator.models.records import Record

from .factories import IDENTITY_COLUMN, RULES, SOURCE, lead


def _planner(store, settings, fixed_clock, entropy, **kwargs) -> MigrationPlanner:
    assigner = IdentityAssigner(store, IDENTITY_COLUMN, clock=fixed_clock, entropy=entropy)
    return MigrationPlanner(store, Classifier(RULES), assigner, settings, **kwargs)


def _stored(store, collection: str, position: int) -> Record:
    return Record.from_values(
        collection, position, store.rows(collection)[position - 1], IDENTITY_COLUMN
    )


class TestMigrationPlanner:
    """Test suite for MigrationPlanner.plan."""

    @pytest.mark.asyncio
    async def test_plan_mixed_rows(self, make_store, settings, fixed_clock, entropy):
        store = make_store(
            [
                lead("Interested", name="Ann"),
                lead("Not interested", name="Bob"),
                lead("Meeting set", name="Cat", identity="id-existing"),
                ["", "", "", "", "", ""],
                lead("", name="Dan", creator="yes"),
            ]
        )
        planner = _planner(store, settings, fixed_clock, entropy)

        plan = await planner.plan(await store.snapshot())

        assert [
            (item.source_position, item.destination_collection, item.destination_position)
            for item in plan.items
        ] == [(2, "Interested", 2), (4, "Meeting Set", 2), (6, "Creators", 2)]
        assert plan.delete_candidates == {(SOURCE, 2), (SOURCE, 4), (SOURCE, 6)}
        assert plan.classified == 3
        assert plan.no_match == 1
        assert plan.identities_assigned == 2
        assert plan.items[1].identity == "id-existing"

    @pytest.mark.asyncio
    async def test_identities_persisted_before_items_returned(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store([lead("Interested")])
        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        stored = _stored(store, SOURCE, 2)
        assert stored.identity == plan.items[0].identity
        assert stored.checksum == plan.items[0].checksum_snapshot

    @pytest.mark.asyncio
    async def test_allocates_consecutive_rows_after_existing_data(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store(
            [lead("Interested", name="Ann"), lead("Interested", name="Bob")],
            destinations={"Interested": [lead("Interested", name="Old", identity="id-old")]},
        )
        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert [item.destination_position for item in plan.items] == [3, 4]

    @pytest.mark.asyncio
    async def test_skips_identity_already_at_destination(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store(
            [lead("Interested", identity="id-old")],
            destinations={"Interested": [lead("Interested", identity="id-old")]},
        )
        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert plan.items == []
        assert plan.delete_candidates == set()
        assert plan.already_present == 1

    @pytest.mark.asyncio
    async def test_duplicate_identity_within_run_planned_once(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store(
            [lead("Interested", identity="id-dup"), lead("Interested", identity="id-dup")]
        )
        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert len(plan.items) == 1
        assert plan.items[0].source_position == 2
        assert plan.already_present == 1

    @pytest.mark.asyncio
    async def test_copy_only_mode_elects_no_deletions(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store([lead("Interested")])
        settings = settings.model_copy(update={"move_rows": False})

        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert len(plan.copy_items) == 1
        assert plan.delete_candidates == set()

    @pytest.mark.asyncio
    async def test_reconcile_orphans_plans_delete_only_item(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store(
            [lead("Interested", identity="id-old")],
            destinations={"Interested": [lead("Interested", identity="id-old")]},
        )
        settings = settings.model_copy(update={"reconcile_orphans": True})

        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert len(plan.items) == 1
        assert plan.items[0].destination_position is None
        assert plan.copy_items == []
        assert plan.delete_candidates == {(SOURCE, 2)}

    @pytest.mark.asyncio
    async def test_reconcile_keeps_source_row_edited_since_copy(
        self, make_store, settings, fixed_clock, entropy
    ):
        edited = lead("Interested", identity="id-1")
        edited[2] = "new@example.com"
        store = make_store(
            [edited],
            destinations={"Interested": [lead("Interested", identity="id-1")]},
        )
        settings = settings.model_copy(update={"reconcile_orphans": True})

        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert plan.items == []
        assert plan.delete_candidates == set()
        assert plan.already_present == 1

    @pytest.mark.asyncio
    async def test_row_already_in_its_destination_is_not_moved(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store([], destinations={"Interested": [lead("Interested", identity="id-1")]})
        settings = settings.model_copy(
            update={"source_collections": (SOURCE, "Interested")}
        )

        plan = await _planner(store, settings, fixed_clock, entropy).plan(await store.snapshot())

        assert plan.items == []
        assert plan.no_match == 1

    @pytest.mark.asyncio
    async def test_dry_run_planning_writes_nothing(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store([lead("Interested")])
        plan = await _planner(
            store, settings, fixed_clock, entropy, persist_identities=False
        ).plan(await store.snapshot())

        assert plan.items[0].identity.startswith("id-")
        assert _stored(store, SOURCE, 2).identity == ""
        assert not any(name.startswith("batch_") for name, _ in store.calls)

    @pytest.mark.asyncio
    async def test_missing_destination_treated_as_empty(
        self, make_store, settings, fixed_clock, entropy
    ):
        store = make_store([lead("Interested")])
        snapshot = await store.snapshot()
        snapshot.collections.pop("Interested")

        plan = await _planner(
            store, settings, fixed_clock, entropy, persist_identities=False
        ).plan(snapshot)

        assert plan.items[0].destination_position == 2
