"""Copy commit: append planned rows to their destinations in one batch."""

import asyncio
from collections import defaultdict

import structlog

from ...models.plan import MigrationPlanItem
from ...models.records import MetadataSnapshot
from ...models.requests import AppendDimension, CopyBlock, StructuralRequest
from ..exceptions import DestinationChangedError
from ..store.base import BaseTabularStore

logger = structlog.get_logger()


class CopyCommitter:
    """Issues the structural copy batch for a run.

    Destinations are only ever appended to, so a failed or partial commit
    leaves previously migrated rows untouched.
    """

    def __init__(self, store: BaseTabularStore):
        self.store = store
        self.logger = logger.bind(component="copy_committer")

    def build_requests(
        self, items: list[MigrationPlanItem], snapshot: MetadataSnapshot
    ) -> list[StructuralRequest]:
        """Grid growth requests first, then one full-row copy per item."""
        copies = [item for item in items if item.requires_copy]
        last_row: dict[str, int] = defaultdict(int)
        width: dict[str, int] = defaultdict(int)
        for item in copies:
            destination = item.destination_collection
            last_row[destination] = max(last_row[destination], item.destination_position or 0)
            width[destination] = max(
                width[destination], snapshot.get(item.source_collection).column_count
            )

        requests: list[StructuralRequest] = []
        for destination in sorted(last_row):
            meta = snapshot.get(destination)
            if last_row[destination] > meta.row_count:
                requests.append(
                    AppendDimension(
                        collection=destination,
                        dimension="ROWS",
                        length=last_row[destination] - meta.row_count,
                    )
                )
            if width[destination] > meta.column_count:
                requests.append(
                    AppendDimension(
                        collection=destination,
                        dimension="COLUMNS",
                        length=width[destination] - meta.column_count,
                    )
                )

        for item in copies:
            requests.append(
                CopyBlock(
                    source_collection=item.source_collection,
                    source_row=item.source_position,
                    destination_collection=item.destination_collection,
                    destination_row=item.destination_position,
                    column_count=snapshot.get(item.source_collection).column_count,
                )
            )
        return requests

    async def ensure_targets_free(self, items: list[MigrationPlanItem]) -> None:
        """Refuse to paste over rows another writer appended after planning.

        Raises:
            DestinationChangedError: A planned target row is already in use
        """
        first_target: dict[str, int] = {}
        for item in items:
            if item.requires_copy and item.destination_position:
                destination = item.destination_collection
                first_target[destination] = min(
                    first_target.get(destination, item.destination_position),
                    item.destination_position,
                )
        if not first_target:
            return

        destinations = sorted(first_target)
        grids = await asyncio.gather(
            *(self.store.read_range(destination, 1) for destination in destinations)
        )
        for destination, grid in zip(destinations, grids):
            if len(grid) >= first_target[destination]:
                raise DestinationChangedError(
                    f"Destination '{destination}' now uses row {len(grid)}, "
                    f"planned copies start at row {first_target[destination]}"
                )

    async def commit(self, items: list[MigrationPlanItem], snapshot: MetadataSnapshot) -> int:
        """Copy every planned row; raises on failure so no deletion follows.

        Returns:
            Number of rows copied
        """
        requests = self.build_requests(items, snapshot)
        copied = sum(isinstance(request, CopyBlock) for request in requests)
        if not copied:
            self.logger.info("Nothing to copy")
            return 0

        await self.ensure_targets_free(items)
        await self.store.batch_edit(requests)
        self.logger.info("Copy batch committed", copied=copied, requests=len(requests))
        return copied
