"""Main migration orchestrator for one run over the configured collections."""

import secrets
import time
from collections.abc import Callable

import structlog

from ...constants import (
    STAGE_COPY,
    STAGE_DELETE,
    STAGE_PLAN,
    STAGE_PREPARE,
    STAGE_VERIFY,
)
from ...models.plan import MigrationPlan, RunReport
from ...models.records import MetadataSnapshot
from ...models.requests import AddCollection, AppendDimension, CopyBlock, StructuralRequest
from ..config_loader import MigratorConfig, validate_config
from ..exceptions import ConfigurationError, MigrationAborted, SheetMigratorError
from ..store.base import BaseTabularStore
from .classifier import Classifier
from .copier import CopyCommitter
from .deleter import DeleteCommitter
from .identity import IdentityAssigner
from .planner import MigrationPlanner
from .verification import DeleteVerifier

logger = structlog.get_logger()


class MigrationManager:
    """Runs the migration pipeline end-to-end.

    Stages execute strictly in order: prepare, plan (identity flush included),
    copy, verify, delete. Deletion is always last and gated on verification, so
    an abort at any stage leaves every record in its source, its destination,
    or both.
    """

    def __init__(
        self,
        store: BaseTabularStore,
        config: MigratorConfig,
        clock: Callable[[], float] = time.time,
        entropy: Callable[[], str] = lambda: secrets.token_hex(4),
    ):
        validate_config(config)
        self.store = store
        self.config = config
        self.settings = config.migration
        self.classifier = Classifier(config.rules)
        self.copier = CopyCommitter(store)
        self.verifier = DeleteVerifier(store, self.settings)
        self.deleter = DeleteCommitter(store)
        self._clock = clock
        self._entropy = entropy
        self.logger = logger.bind(component="migration_manager")

    def _new_assigner(self) -> IdentityAssigner:
        return IdentityAssigner(
            self.store,
            self.settings.identity_column,
            prefix=self.settings.identity_prefix,
            clock=self._clock,
            entropy=self._entropy,
        )

    async def run(self, dry_run: bool = False) -> RunReport:
        """Execute one migration pass.

        Args:
            dry_run: Plan only; no identity, copy or delete is written

        Returns:
            RunReport with per-stage counts

        Raises:
            MigrationAborted: A stage failed; carries the partial report
        """
        report = RunReport(dry_run=dry_run)
        self.logger.info(
            "Migration run started",
            dry_run=dry_run,
            move_rows=self.settings.move_rows,
            sources=list(self.settings.source_collections),
        )

        try:
            await self._run_stages(report, dry_run)
        except SheetMigratorError as e:
            report.aborted = True
            report.error = str(e)
            self.logger.error(
                "Migration run aborted", error_type=type(e).__name__, **report.summary()
            )
            raise MigrationAborted(
                f"Run aborted after stage '{report.last_completed_stage}': {e}", report
            ) from e

        self.logger.info("Migration run complete", **report.summary())
        return report

    async def _run_stages(self, report: RunReport, dry_run: bool) -> None:
        snapshot = await self.prepare(dry_run=dry_run)
        report.last_completed_stage = STAGE_PREPARE

        assigner = self._new_assigner()
        planner = MigrationPlanner(
            self.store, self.classifier, assigner, self.settings, persist_identities=not dry_run
        )
        plan = await planner.plan(snapshot)
        self._record_plan(report, plan)
        report.last_completed_stage = STAGE_PLAN

        if dry_run:
            discarded = assigner.discard()
            self.logger.info("Dry run: nothing written", identities_not_written=discarded)
            return

        report.copied = await self.copier.commit(plan.copy_items, snapshot)
        report.last_completed_stage = STAGE_COPY

        if not plan.delete_candidates:
            return

        verification = await self.verifier.verify(plan)
        report.verified = len(verification.admitted)
        report.retained = len(verification.retained)
        report.last_completed_stage = STAGE_VERIFY

        deleted = await self.deleter.commit(verification.admitted)
        report.deleted = sum(len(positions) for positions in deleted.values())
        report.last_completed_stage = STAGE_DELETE

    @staticmethod
    def _record_plan(report: RunReport, plan: MigrationPlan) -> None:
        report.classified = plan.classified
        report.no_match = plan.no_match
        report.already_present = plan.already_present
        report.identities_assigned = plan.identities_assigned
        report.planned = len(plan.copy_items)

    async def prepare(self, dry_run: bool = False) -> MetadataSnapshot:
        """Check collections exist and size their grids, returning a fresh snapshot.

        Missing destinations are created (with the first source's header rows)
        when ``create_missing_destinations`` is set; missing sources are a
        configuration error.
        """
        sources = list(self.settings.source_collections)
        destinations = list(self.settings.destination_collections)

        snapshot = await self.store.snapshot()
        missing_sources = snapshot.missing(sources)
        if missing_sources:
            raise ConfigurationError(f"Source collections not found: {', '.join(missing_sources)}")

        created = snapshot.missing(destinations)
        if created and not self.settings.create_missing_destinations:
            raise ConfigurationError(
                f"Destination collections not found: {', '.join(created)}"
            )
        if dry_run:
            if created:
                self.logger.info("Dry run: destinations would be created", collections=created)
            return snapshot

        if created:
            await self.store.batch_edit([AddCollection(name=name) for name in created])
            self.logger.info("Destination collections created", collections=created)
            snapshot = await self.store.snapshot()

        requests = self._layout_requests(snapshot, created)
        if requests:
            await self.store.batch_edit(requests)
            snapshot = await self.store.snapshot()
        return snapshot

    def _layout_requests(
        self, snapshot: MetadataSnapshot, created: list[str]
    ) -> list[StructuralRequest]:
        """Widen grids to hold the identity column and seed headers of new destinations."""
        identity_column = self.settings.identity_column
        names = list(
            dict.fromkeys(self.settings.source_collections + self.settings.destination_collections)
        )
        widths = {
            name: max(snapshot.get(name).column_count, identity_column) for name in names
        }

        header_source = self.settings.source_collections[0]
        header_rows = self.settings.header_rows
        if header_rows:
            for name in created:
                widths[name] = max(widths[name], widths[header_source])

        requests: list[StructuralRequest] = [
            AppendDimension(
                collection=name,
                dimension="COLUMNS",
                length=widths[name] - snapshot.get(name).column_count,
            )
            for name in names
            if widths[name] > snapshot.get(name).column_count
        ]
        if header_rows and created:
            requests.extend(
                CopyBlock(
                    source_collection=header_source,
                    source_row=1,
                    destination_collection=name,
                    destination_row=1,
                    row_count=header_rows,
                    column_count=widths[header_source],
                )
                for name in created
            )
        return requests
