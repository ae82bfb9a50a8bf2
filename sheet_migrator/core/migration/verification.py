"""Delete verification against freshly read store state."""

import asyncio

import structlog

from ...constants import (
    RETAIN_COPY_DIFFERS,
    RETAIN_COPY_NOT_VISIBLE,
    RETAIN_IDENTITY_CHANGED,
    RETAIN_SOURCE_CHANGED,
    RETAIN_SOURCE_MISSING,
)
from ...models.enums import RecordState
from ...models.plan import MigrationPlan, MigrationPlanItem, RetainedRecord, VerificationResult
from ...models.records import Record
from ..config_loader import MigrationSettings
from ..store.base import BaseTabularStore

logger = structlog.get_logger()


class DeleteVerifier:
    """Admits a delete candidate only when its copy is visible and its source is unchanged.

    Both checks run against state re-read after the copy batch, never against
    the planner's view. A failed check retains the row for the next run; it is
    not an error.
    """

    def __init__(self, store: BaseTabularStore, settings: MigrationSettings):
        self.store = store
        self.settings = settings
        self.logger = logger.bind(component="delete_verifier")

    async def verify(self, plan: MigrationPlan) -> VerificationResult:
        candidates = plan.candidate_items
        result = VerificationResult()
        if not candidates:
            return result

        destination_names = sorted({item.destination_collection for item in candidates})
        source_names = sorted({item.source_collection for item in candidates})

        identity_sets, source_rows = await asyncio.gather(
            self._read_destination_identities(destination_names),
            self._read_source_rows(source_names),
        )

        for item in candidates:
            reason = self.check(item, identity_sets, source_rows.get(item.source_key))
            if reason is None:
                result.admitted.append(item)
                self.logger.debug(
                    "Delete admitted",
                    state=RecordState.VERIFIED_FOR_DELETE.value,
                    collection=item.source_collection,
                    position=item.source_position,
                    identity=item.identity,
                )
            else:
                result.retained.append(RetainedRecord(item=item, reason=reason))
                self.logger.warning(
                    "Record retained for next run",
                    state=RecordState.RETAINED.value,
                    reason=reason,
                    collection=item.source_collection,
                    position=item.source_position,
                    identity=item.identity,
                    destination=item.destination_collection,
                )

        self.logger.info(
            "Delete verification complete",
            admitted=len(result.admitted),
            retained=len(result.retained),
        )
        return result

    def check(
        self,
        item: MigrationPlanItem,
        identity_sets: dict[str, dict[str, str]],
        current: Record | None,
    ) -> str | None:
        """Return the retention reason for ``item``, or None when it may be deleted."""
        if current is None:
            return RETAIN_SOURCE_MISSING
        # The row at this position must still be the planned record
        if current.identity != item.identity:
            return RETAIN_IDENTITY_CHANGED
        if (
            self.settings.require_unchanged_checksum
            and current.checksum != item.checksum_snapshot
        ):
            return RETAIN_SOURCE_CHANGED
        destination_identities = identity_sets.get(item.destination_collection, {})
        if (
            self.settings.require_destination_identity
            and item.identity not in destination_identities
        ):
            return RETAIN_COPY_NOT_VISIBLE
        # A delete-only row must still match the copy it leaves behind
        if not item.requires_copy and destination_identities.get(item.identity) != current.checksum:
            return RETAIN_COPY_DIFFERS
        return None

    async def _read_destination_identities(
        self, names: list[str]
    ) -> dict[str, dict[str, str]]:
        results = await asyncio.gather(
            *(
                self.store.read_identities(
                    name, self.settings.first_data_row, self.settings.identity_column
                )
                for name in names
            )
        )
        return {name: identities for name, (identities, _) in zip(names, results, strict=True)}

    async def _read_source_rows(self, names: list[str]) -> dict[tuple[str, int], Record]:
        results = await asyncio.gather(
            *(
                self.store.read_records(
                    name, self.settings.first_data_row, self.settings.identity_column
                )
                for name in names
            )
        )
        return {
            (record.collection, record.position): record
            for records in results
            for record in records
            if record.cells
        }
