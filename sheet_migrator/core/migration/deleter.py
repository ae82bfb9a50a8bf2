"""Delete commit: remove admitted source rows, highest position first."""

from collections import defaultdict
from collections.abc import Iterable

import structlog

from ...models.enums import RecordState
from ...models.plan import MigrationPlanItem
from ...models.requests import DeleteRows, StructuralRequest
from ..store.base import BaseTabularStore

logger = structlog.get_logger()


def ordered_deletions(positions: Iterable[int]) -> list[int]:
    """Positions in strictly descending order, so no deletion shifts a pending one."""
    return sorted(set(positions), reverse=True)


class DeleteCommitter:
    def __init__(self, store: BaseTabularStore):
        self.store = store
        self.logger = logger.bind(component="delete_committer")

    def group_positions(self, admitted: list[MigrationPlanItem]) -> dict[str, list[int]]:
        groups: dict[str, list[int]] = defaultdict(list)
        for item in admitted:
            groups[item.source_collection].append(item.source_position)
        return {collection: ordered_deletions(groups[collection]) for collection in sorted(groups)}

    async def commit(self, admitted: list[MigrationPlanItem]) -> dict[str, list[int]]:
        """Delete admitted rows in one batch.

        Returns:
            Committed deletion order per source collection
        """
        order = self.group_positions(admitted)
        requests: list[StructuralRequest] = [
            DeleteRows(collection=collection, start_row=position, end_row=position)
            for collection, positions in order.items()
            for position in positions
        ]
        if not requests:
            self.logger.info("Nothing to delete")
            return {}

        # Not idempotent: a replayed batch would remove shifted rows
        await self.store.batch_edit(requests, idempotent=False)

        for collection, positions in order.items():
            self.logger.info(
                "Source rows deleted",
                state=RecordState.DELETED.value,
                collection=collection,
                positions=positions,
            )
        return order
