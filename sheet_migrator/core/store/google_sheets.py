"""Google Sheets backend for the tabular store contract."""

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import gspread
import requests
from google.auth.exceptions import GoogleAuthError, TransportError
from gspread.exceptions import APIError

from ...constants import (
    METADATA_FIELDS,
    PASTE_NORMAL,
    RATE_LIMIT_REASONS,
    RATE_LIMIT_STATUS,
    RETRYABLE_STATUS_CODES,
    SHEETS_SCOPES,
    VALUE_INPUT_OPTION,
)
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
from ...utils import a1_range, normalize_cells
from ..config_loader import StoreConfig
from ..exceptions import (
    ConfigurationError,
    PermanentRemoteError,
    RateLimitedError,
    RemoteStoreError,
    TransientRemoteError,
)
from ..retry import RetryManager
from .base import BaseTabularStore

T = TypeVar("T")


def translate_error(error: Exception) -> RemoteStoreError:
    """Map a client library failure onto the transient/permanent taxonomy."""
    if isinstance(error, APIError):
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
        message = str(error)
        if status == RATE_LIMIT_STATUS or any(reason in message for reason in RATE_LIMIT_REASONS):
            return RateLimitedError(f"Rate limited: {message}", status)
        if status in RETRYABLE_STATUS_CODES:
            return TransientRemoteError(f"Server error {status}: {message}", status)
        return PermanentRemoteError(f"Request rejected ({status}): {message}", status)

    if isinstance(error, TransportError):
        return TransientRemoteError(f"Token refresh transport failed: {error}")
    if isinstance(error, GoogleAuthError):
        return PermanentRemoteError(f"Authorization failed: {error}")

    transient = (requests.ConnectionError, requests.Timeout, ConnectionError, TimeoutError)
    if isinstance(error, transient):
        return TransientRemoteError(f"Connection failed: {error}")

    return PermanentRemoteError(f"Remote call failed: {error}")


async def _in_thread(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking client call in a worker thread with error translation."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except (APIError, GoogleAuthError, requests.RequestException, OSError) as e:
        raise translate_error(e) from e


def _grid_range(
    sheet_id: int, start_row: int, end_row: int, start_col: int, end_col: int
) -> dict[str, int]:
    """1-based inclusive block to a zero-based, end-exclusive GridRange."""
    return {
        "sheetId": sheet_id,
        "startRowIndex": start_row - 1,
        "endRowIndex": end_row,
        "startColumnIndex": start_col - 1,
        "endColumnIndex": end_col,
    }


class GoogleSheetsStore(BaseTabularStore):
    """Spreadsheet-backed store: one worksheet per collection.

    Blocking ``gspread`` calls run in worker threads; every call goes through
    the retry manager.
    """

    def __init__(self, spreadsheet: gspread.Spreadsheet, retry: RetryManager | None = None):
        super().__init__()
        self.spreadsheet = spreadsheet
        self.retry = retry or RetryManager()
        self._grid: dict[str, CollectionMeta] = {}

    @staticmethod
    def authorize(store_config: StoreConfig) -> gspread.Client:
        """Build an authorized client from the configured service account."""
        info = store_config.service_account_info()
        try:
            if info is not None:
                return gspread.service_account_from_dict(info, scopes=SHEETS_SCOPES)
            if store_config.credentials_file:
                return gspread.service_account(
                    filename=store_config.credentials_file, scopes=SHEETS_SCOPES
                )
        except (OSError, ValueError, KeyError) as e:
            raise ConfigurationError(f"Service account credentials unusable: {e}") from e
        raise ConfigurationError(
            "No service account configured: set store.credentials_file, "
            "GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_SERVICE_ACCOUNT_JSON"
        )

    @classmethod
    async def connect(
        cls, store_config: StoreConfig, retry: RetryManager | None = None
    ) -> "GoogleSheetsStore":
        """Authorize and open the configured spreadsheet."""
        if not store_config.spreadsheet_id:
            raise ConfigurationError("store.spreadsheet_id (SPREADSHEET_ID) is required")

        retry = retry or RetryManager()
        client = cls.authorize(store_config)
        spreadsheet = await retry.call(
            lambda: _in_thread(client.open_by_key, store_config.spreadsheet_id),
            label="spreadsheets.open",
        )
        store = cls(spreadsheet, retry)
        store.logger.info("Spreadsheet opened", spreadsheet_id=store_config.spreadsheet_id)
        return store

    async def _call(
        self, label: str, func: Callable[..., T], *args: Any, idempotent: bool = True
    ) -> T:
        self.logger.debug("remote_call", label=label)
        return await self.retry.call(
            lambda: _in_thread(func, *args), label=label, idempotent=idempotent
        )

    async def _meta(self, collection: str) -> CollectionMeta:
        if collection not in self._grid:
            await self.get_metadata()
        try:
            return self._grid[collection]
        except KeyError:
            raise PermanentRemoteError(f"Collection '{collection}' does not exist", 400) from None

    async def get_metadata(self) -> list[CollectionMeta]:
        response = await self._call(
            "spreadsheets.get", self.spreadsheet.fetch_sheet_metadata, {"fields": METADATA_FIELDS}
        )
        metas = []
        for sheet in response.get("sheets", []):
            properties = sheet.get("properties", {})
            grid = properties.get("gridProperties", {})
            metas.append(
                CollectionMeta(
                    title=properties["title"],
                    collection_id=properties["sheetId"],
                    row_count=grid.get("rowCount", 0),
                    column_count=grid.get("columnCount", 0),
                )
            )
        self._grid = {meta.title: meta for meta in metas}
        return metas

    async def read_range(
        self,
        collection: str,
        start_row: int,
        end_row: int | None = None,
        start_col: int = 1,
        end_col: int | None = None,
    ) -> list[list[str]]:
        if end_col is None:
            # Column bound must stay inside the grid; rows may be open-ended
            end_col = max((await self._meta(collection)).column_count, start_col)
        range_name = a1_range(collection, start_row, end_row, start_col, end_col)
        response = await self._call(
            "values.get",
            self.spreadsheet.values_get,
            range_name,
            {"majorDimension": "ROWS", "valueRenderOption": "FORMATTED_VALUE"},
        )
        rows = [list(normalize_cells(row)) for row in response.get("values", [])]
        while rows and not rows[-1]:
            rows.pop()
        return rows

    async def batch_write_values(self, data: list[ValueRange]) -> None:
        if not data:
            return
        body = {
            "valueInputOption": VALUE_INPUT_OPTION,
            "data": [
                {
                    "range": a1_range(
                        block.collection,
                        block.start_row,
                        block.start_row + len(block.values) - 1,
                        block.start_col,
                        block.start_col + max(len(row) for row in block.values) - 1,
                    ),
                    "values": block.values,
                }
                for block in data
            ],
        }
        await self._call("values.batchUpdate", self.spreadsheet.values_batch_update, body)

    async def batch_edit(
        self, requests: list[StructuralRequest], idempotent: bool = True
    ) -> list[dict[str, Any]]:
        if not requests:
            return []
        if any(not isinstance(request, AddCollection) for request in requests):
            await self.get_metadata()
        body = {"requests": [self.to_api_request(request) for request in requests]}
        response = await self._call(
            "spreadsheets.batchUpdate",
            self.spreadsheet.batch_update,
            body,
            idempotent=idempotent,
        )
        # Grid sizes and collections may have changed
        self._grid = {}

        replies = response.get("replies") or [{} for _ in requests]
        results: list[dict[str, Any]] = []
        for request, reply in zip(requests, replies, strict=False):
            if isinstance(request, AddCollection) and "addSheet" in reply:
                properties = reply["addSheet"]["properties"]
                results.append(
                    {"collection_id": properties["sheetId"], "title": properties["title"]}
                )
            else:
                results.append({})
        return results

    def _sheet_id(self, collection: str) -> int:
        try:
            return self._grid[collection].collection_id
        except KeyError:
            raise PermanentRemoteError(f"Collection '{collection}' does not exist", 400) from None

    def to_api_request(self, request: StructuralRequest) -> dict[str, Any]:
        """Translate one structural request into its Sheets batchUpdate form."""
        if isinstance(request, AddCollection):
            return {"addSheet": {"properties": {"title": request.name}}}

        if isinstance(request, CopyBlock):
            source_id = self._sheet_id(request.source_collection)
            destination_id = self._sheet_id(request.destination_collection)
            return {
                "copyPaste": {
                    "source": _grid_range(
                        source_id,
                        request.source_row,
                        request.source_row + request.row_count - 1,
                        1,
                        request.column_count,
                    ),
                    "destination": _grid_range(
                        destination_id,
                        request.destination_row,
                        request.destination_row + request.row_count - 1,
                        1,
                        request.column_count,
                    ),
                    "pasteType": PASTE_NORMAL,
                    "pasteOrientation": "NORMAL",
                }
            }

        if isinstance(request, DeleteRows):
            return {
                "deleteDimension": {
                    "range": {
                        "sheetId": self._sheet_id(request.collection),
                        "dimension": "ROWS",
                        "startIndex": request.start_row - 1,
                        "endIndex": request.end_row,
                    }
                }
            }

        if isinstance(request, AppendDimension):
            return {
                "appendDimension": {
                    "sheetId": self._sheet_id(request.collection),
                    "dimension": request.dimension,
                    "length": request.length,
                }
            }

        if isinstance(request, SetCellValue):
            return {
                "updateCells": {
                    "range": _grid_range(
                        self._sheet_id(request.collection),
                        request.row,
                        request.row,
                        request.column,
                        request.column,
                    ),
                    "rows": [{"values": [{"userEnteredValue": {"stringValue": request.value}}]}],
                    "fields": "userEnteredValue",
                }
            }

        raise PermanentRemoteError(f"Unsupported request: {request!r}", 400)
