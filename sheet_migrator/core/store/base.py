"""Abstract base class for remote tabular stores."""

from abc import ABC, abstractmethod
from typing import Any

from ...models.records import CollectionMeta, MetadataSnapshot, Record, row_checksum
from ...models.requests import StructuralRequest, ValueRange
from ...utils import cell_at
from ..logging_config import get_remote_logger

logger = get_remote_logger()


class BaseTabularStore(ABC):
    """Read/write contract every store backend implements.

    Rows and columns are 1-based. Reads trim trailing empty rows and cells the
    way the Sheets values API does, so a short row means empty trailing cells.
    """

    def __init__(self):
        self.logger = logger.bind(component=self.__class__.__name__.lower())

    @abstractmethod
    async def read_range(
        self,
        collection: str,
        start_row: int,
        end_row: int | None = None,
        start_col: int = 1,
        end_col: int | None = None,
    ) -> list[list[str]]:
        """Read a block of cell values.

        Args:
            collection: Collection (worksheet) title
            start_row: First row, 1-based
            end_row: Last row inclusive, None for all remaining rows
            start_col: First column, 1-based
            end_col: Last column inclusive, None for all remaining columns

        Returns:
            Grid of cell strings, trailing empties trimmed
        """
        pass

    @abstractmethod
    async def get_metadata(self) -> list[CollectionMeta]:
        """List collections with their stable ids and grid sizes."""
        pass

    @abstractmethod
    async def batch_write_values(self, data: list[ValueRange]) -> None:
        """Write several value blocks as one request."""
        pass

    @abstractmethod
    async def batch_edit(
        self, requests: list[StructuralRequest], idempotent: bool = True
    ) -> list[dict[str, Any]]:
        """Apply structural edits as one ordered request.

        Args:
            requests: Edits applied in list order
            idempotent: False when replaying the batch would change its effect
                (row deletions); backends then only retry rejected requests

        Returns:
            One reply dict per request (empty for requests without a reply)
        """
        pass

    async def snapshot(self) -> MetadataSnapshot:
        """Fetch collection metadata once for a stage boundary."""
        return MetadataSnapshot.from_list(await self.get_metadata())

    async def read_records(
        self, collection: str, first_row: int, identity_column: int
    ) -> list[Record]:
        """Read every row from ``first_row`` down as records."""
        grid = await self.read_range(collection, first_row)
        return [
            Record.from_values(collection, first_row + offset, values, identity_column)
            for offset, values in enumerate(grid)
        ]

    async def read_identities(
        self, collection: str, first_row: int, identity_column: int
    ) -> tuple[dict[str, str], int]:
        """Read the identities stored in a collection below its header rows.

        Returns:
            Tuple of (identity -> checksum of the row carrying it, last used row
            of the collection)
        """
        grid = await self.read_range(collection, 1)
        identities: dict[str, str] = {}
        for row in grid[first_row - 1 :]:
            identity = cell_at(row, identity_column).strip()
            if identity:
                identities.setdefault(identity, row_checksum(row))
        return identities, len(grid)
