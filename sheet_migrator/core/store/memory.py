"""In-process tabular store with the same contract as the Sheets backend."""

import copy
from dataclasses import dataclass, field
from typing import Any

from ...models.records import CollectionMeta
from ...models.requests import (
    AddCollection,
    AppendDimension,
    CopyBlock,
    DeleteRows,
    SetCellValue,
    StructuralRequest,
    ValueRange,
)
from ...utils import normalize_cells
from ..exceptions import PermanentRemoteError
from .base import BaseTabularStore

DEFAULT_ROW_COUNT = 1000
DEFAULT_COLUMN_COUNT = 26


@dataclass
class _Collection:
    collection_id: int
    row_count: int
    column_count: int
    rows: list[list[str]] = field(default_factory=list)

    def ensure_row(self, row: int) -> list[str]:
        while len(self.rows) < row:
            self.rows.append([])
        return self.rows[row - 1]


class InMemoryStore(BaseTabularStore):
    """Workbook held in memory.

    Mirrors the remote behaviour the engine depends on: reads trim trailing
    empty rows and cells, writes outside the grid are rejected, and every
    batch is applied atomically (all requests or none).
    """

    def __init__(self, collections: dict[str, list[list[Any]]] | None = None):
        super().__init__()
        self._collections: dict[str, _Collection] = {}
        self._failures: dict[str, list[Exception]] = {}
        self.calls: list[tuple[str, Any]] = []
        for name, rows in (collections or {}).items():
            self.add_collection(name, rows)

    def add_collection(
        self,
        name: str,
        rows: list[list[Any]] | None = None,
        row_count: int | None = None,
        column_count: int | None = None,
    ) -> int:
        """Create a collection directly (test and fixture setup)."""
        if name in self._collections:
            raise PermanentRemoteError(f"A collection named '{name}' already exists", 400)
        normalized = [list(normalize_cells(row)) for row in rows or []]
        widest = max((len(row) for row in normalized), default=0)
        collection_id = max((c.collection_id for c in self._collections.values()), default=-1) + 1
        self._collections[name] = _Collection(
            collection_id=collection_id,
            row_count=row_count or max(len(normalized), DEFAULT_ROW_COUNT),
            column_count=column_count or max(widest, DEFAULT_COLUMN_COUNT),
            rows=normalized,
        )
        return collection_id

    def rows(self, name: str) -> list[list[str]]:
        """Current used rows of a collection, trimmed like a remote read."""
        return self._trimmed(self._get(self._collections, name).rows)

    def inject_failure(self, method: str, error: Exception) -> None:
        """Make the next call to ``method`` raise ``error``."""
        self._failures.setdefault(method, []).append(error)

    def _check_failure(self, method: str) -> None:
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    async def read_range(
        self,
        collection: str,
        start_row: int,
        end_row: int | None = None,
        start_col: int = 1,
        end_col: int | None = None,
    ) -> list[list[str]]:
        self.calls.append(("read_range", (collection, start_row, end_row, start_col, end_col)))
        self._check_failure("read_range")
        sheet = self._get(self._collections, collection)
        block = sheet.rows[start_row - 1 : end_row]
        return self._trimmed([row[start_col - 1 : end_col] for row in block])

    async def get_metadata(self) -> list[CollectionMeta]:
        self.calls.append(("get_metadata", None))
        self._check_failure("get_metadata")
        return [
            CollectionMeta(
                title=name,
                collection_id=sheet.collection_id,
                row_count=sheet.row_count,
                column_count=sheet.column_count,
            )
            for name, sheet in self._collections.items()
        ]

    async def batch_write_values(self, data: list[ValueRange]) -> None:
        self.calls.append(("batch_write_values", list(data)))
        self._check_failure("batch_write_values")
        staged = copy.deepcopy(self._collections)
        for block in data:
            sheet = self._get(staged, block.collection)
            for offset, values in enumerate(block.values):
                row = block.start_row + offset
                last_col = block.start_col + len(values) - 1
                self._check_grid(block.collection, sheet, row, last_col)
                self._write_cells(sheet, row, block.start_col, values)
        self._collections = staged

    async def batch_edit(
        self, requests: list[StructuralRequest], idempotent: bool = True
    ) -> list[dict[str, Any]]:
        self.calls.append(("batch_edit", list(requests)))
        self._check_failure("batch_edit")
        staged = copy.deepcopy(self._collections)
        replies = [self._apply(staged, request) for request in requests]
        self._collections = staged
        return replies

    def _apply(
        self, staged: dict[str, _Collection], request: StructuralRequest
    ) -> dict[str, Any]:
        if isinstance(request, AddCollection):
            if request.name in staged:
                raise PermanentRemoteError(
                    f"A collection named '{request.name}' already exists", 400
                )
            collection_id = max((c.collection_id for c in staged.values()), default=-1) + 1
            staged[request.name] = _Collection(
                collection_id=collection_id,
                row_count=DEFAULT_ROW_COUNT,
                column_count=DEFAULT_COLUMN_COUNT,
            )
            return {"collection_id": collection_id, "title": request.name}

        if isinstance(request, CopyBlock):
            source = self._get(staged, request.source_collection)
            destination = self._get(staged, request.destination_collection)
            last_row = request.destination_row + request.row_count - 1
            self._check_grid(
                request.destination_collection, destination, last_row, request.column_count
            )
            blocks = []
            for offset in range(request.row_count):
                source_row = request.source_row + offset
                values = source.rows[source_row - 1] if source_row <= len(source.rows) else []
                blocks.append((list(values) + [""] * request.column_count)[: request.column_count])
            for offset, values in enumerate(blocks):
                self._write_cells(destination, request.destination_row + offset, 1, values)
            return {}

        if isinstance(request, DeleteRows):
            sheet = self._get(staged, request.collection)
            if request.end_row < request.start_row or request.end_row > sheet.row_count:
                raise PermanentRemoteError(
                    f"Invalid row span {request.start_row}-{request.end_row} "
                    f"for '{request.collection}'",
                    400,
                )
            del sheet.rows[request.start_row - 1 : request.end_row]
            sheet.row_count -= request.end_row - request.start_row + 1
            return {}

        if isinstance(request, AppendDimension):
            sheet = self._get(staged, request.collection)
            if request.dimension == "ROWS":
                sheet.row_count += request.length
            else:
                sheet.column_count += request.length
            return {}

        if isinstance(request, SetCellValue):
            sheet = self._get(staged, request.collection)
            self._check_grid(request.collection, sheet, request.row, request.column)
            self._write_cells(sheet, request.row, request.column, [request.value])
            return {}

        raise PermanentRemoteError(f"Unsupported request: {request!r}", 400)

    @staticmethod
    def _get(collections: dict[str, _Collection], name: str) -> _Collection:
        try:
            return collections[name]
        except KeyError:
            raise PermanentRemoteError(f"Unable to parse range: '{name}'", 400) from None

    @staticmethod
    def _check_grid(name: str, sheet: _Collection, row: int, column: int) -> None:
        if row > sheet.row_count or column > sheet.column_count:
            raise PermanentRemoteError(
                f"Range exceeds grid limits of '{name}': row {row}, column {column} "
                f"(grid {sheet.row_count}x{sheet.column_count})",
                400,
            )

    @staticmethod
    def _write_cells(sheet: _Collection, row: int, start_col: int, values: list[str]) -> None:
        target = sheet.ensure_row(row)
        last_col = start_col + len(values) - 1
        if len(target) < last_col:
            target.extend([""] * (last_col - len(target)))
        target[start_col - 1 : last_col] = ["" if v is None else str(v) for v in values]

    @staticmethod
    def _trimmed(rows: list[list[str]]) -> list[list[str]]:
        result = [list(normalize_cells(row)) for row in rows]
        while result and not result[-1]:
            result.pop()
        return result
