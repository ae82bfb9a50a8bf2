"""Migration planning: classify, identify, dedup and allocate append rows."""

import asyncio

import structlog

from ...models.enums import RecordState
from ...models.plan import MigrationPlan, MigrationPlanItem
from ...models.records import DestinationState, MetadataSnapshot, Record
from ...utils import is_blank
from ..config_loader import MigrationSettings
from ..store.base import BaseTabularStore
from .classifier import Classifier
from .identity import IdentityAssigner

logger = structlog.get_logger()


class MigrationPlanner:
    """Produces the ordered move plan for one run."""

    def __init__(
        self,
        store: BaseTabularStore,
        classifier: Classifier,
        assigner: IdentityAssigner,
        settings: MigrationSettings,
        persist_identities: bool = True,
    ):
        self.store = store
        self.classifier = classifier
        self.assigner = assigner
        self.settings = settings
        self.persist_identities = persist_identities
        self.logger = logger.bind(component="migration_planner")

    async def read_destination_states(
        self, snapshot: MetadataSnapshot | None = None
    ) -> dict[str, DestinationState]:
        """Read identity sets and next free rows of every destination.

        Destinations absent from ``snapshot`` (not created yet, dry runs) are
        treated as empty.
        """
        names = [
            name
            for name in self.settings.destination_collections
            if snapshot is None or name in snapshot
        ]
        results = await asyncio.gather(
            *(
                self.store.read_identities(
                    name, self.settings.first_data_row, self.settings.identity_column
                )
                for name in names
            )
        )
        states = {
            name: DestinationState(name=name, next_free_row=self.settings.first_data_row)
            for name in self.settings.destination_collections
        }
        for name, (identities, used_rows) in zip(names, results, strict=True):
            states[name] = DestinationState(
                name=name,
                identities=identities,
                next_free_row=max(used_rows + 1, self.settings.first_data_row),
            )
        return states

    async def read_sources(self) -> dict[str, list[Record]]:
        names = list(self.settings.source_collections)
        results = await asyncio.gather(
            *(
                self.store.read_records(
                    name, self.settings.first_data_row, self.settings.identity_column
                )
                for name in names
            )
        )
        return dict(zip(names, results, strict=True))

    async def plan(self, snapshot: MetadataSnapshot) -> MigrationPlan:
        """Build the plan for every configured source collection.

        Args:
            snapshot: Metadata fetched at the start of the stage

        Returns:
            MigrationPlan with items in source order and the delete candidates
        """
        sources, destinations = await asyncio.gather(
            self.read_sources(), self.read_destination_states(snapshot)
        )
        next_free = {name: state.next_free_row for name, state in destinations.items()}
        planned: dict[str, set[str]] = {name: set() for name in destinations}
        plan = MigrationPlan()

        for source in self.settings.source_collections:
            matched = self._classify_collection(source, sources[source], plan)

            if self.persist_identities:
                await self.assigner.flush(source)

            for record, destination in matched:
                state = destinations[destination]
                if record.identity in state.identities or record.identity in planned[destination]:
                    plan.already_present += 1
                    self._plan_orphan(record, destination, state, plan)
                    continue

                position = next_free[destination]
                next_free[destination] += 1
                planned[destination].add(record.identity)

                item = MigrationPlanItem(
                    source_collection=source,
                    source_position=record.position,
                    identity=record.identity,
                    checksum_snapshot=record.checksum,
                    destination_collection=destination,
                    destination_position=position,
                )
                plan.items.append(item)
                if self.settings.move_rows:
                    plan.delete_candidates.add(item.source_key)
                self.logger.debug(
                    "Record planned",
                    state=RecordState.PLANNED_COPY.value,
                    collection=source,
                    position=record.position,
                    identity=record.identity,
                    destination=destination,
                    destination_position=position,
                )

        plan.identities_assigned = self.assigner.assigned_count
        self.logger.info(
            "Migration plan ready",
            snapshot_collections=len(snapshot.collections),
            classified=plan.classified,
            no_match=plan.no_match,
            already_present=plan.already_present,
            copies=len(plan.copy_items),
            delete_candidates=len(plan.delete_candidates),
        )
        return plan

    def _classify_collection(
        self, source: str, records: list[Record], plan: MigrationPlan
    ) -> list[tuple[Record, str]]:
        """Classify rows of one collection, ensuring identities on matches."""
        matched: list[tuple[Record, str]] = []
        for record in records:
            if is_blank(record.cells):
                continue

            destination = self.classifier.classify(record)
            if destination is None or destination == source:
                plan.no_match += 1
                self.logger.debug(
                    "Record not migrated",
                    state=RecordState.NO_MATCH.value,
                    collection=source,
                    position=record.position,
                    destination=destination,
                )
                continue

            plan.classified += 1
            matched.append((self.assigner.ensure(record), destination))
        return matched

    def _plan_orphan(
        self,
        record: Record,
        destination: str,
        state: DestinationState,
        plan: MigrationPlan,
    ) -> None:
        """Elect a source row whose copy already exists for deletion, if enabled."""
        reconcile = self.settings.reconcile_orphans and self.settings.move_rows
        if not reconcile or record.identity not in state.identities:
            self.logger.debug(
                "Record already present at destination",
                collection=record.collection,
                position=record.position,
                identity=record.identity,
                destination=destination,
            )
            return

        if state.identities[record.identity] != record.checksum:
            # Only rows identical to their destination copy are reconciled
            self.logger.warning(
                "Orphaned source row differs from its destination copy; kept",
                collection=record.collection,
                position=record.position,
                identity=record.identity,
                destination=destination,
            )
            return

        item = MigrationPlanItem(
            source_collection=record.collection,
            source_position=record.position,
            identity=record.identity,
            checksum_snapshot=record.checksum,
            destination_collection=destination,
        )
        plan.items.append(item)
        plan.delete_candidates.add(item.source_key)
        self.logger.info(
            "Orphaned source row elected for deletion",
            collection=record.collection,
            position=record.position,
            identity=record.identity,
            destination=destination,
        )
