"""Record and collection models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..constants import CELL_SEPARATOR, CHECKSUM_MASK
from ..core.exceptions import IdentityConflictError
from ..utils import cell_at, normalize_cells


def row_checksum(cells: tuple[str, ...] | list[str]) -> str:
    """Cheap change detector over a row's cell text.

    32-bit rolling hash (h * 31 + codepoint) over the cells joined by the unit
    separator, trailing empty cells ignored. Not a security boundary.
    """
    text = CELL_SEPARATOR.join(normalize_cells(cells))
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & CHECKSUM_MASK
    return f"{value:08x}"


class Record(BaseModel):
    """One row of a collection at the moment it was read."""

    model_config = ConfigDict(frozen=True)

    collection: str
    position: int = Field(ge=1, description="1-based row index")
    cells: tuple[str, ...] = ()
    identity: str = ""

    @classmethod
    def from_values(
        cls, collection: str, position: int, values: list[Any], identity_column: int
    ) -> "Record":
        """Build a record from a raw value row, deriving identity from its column."""
        cells = normalize_cells(values)
        return cls(
            collection=collection,
            position=position,
            cells=cells,
            identity=cell_at(cells, identity_column).strip(),
        )

    @property
    def checksum(self) -> str:
        return row_checksum(self.cells)

    def with_identity(self, identity: str, identity_column: int) -> "Record":
        """Return a copy carrying ``identity`` in its identity column."""
        if self.identity and self.identity != identity:
            raise IdentityConflictError(
                f"Row {self.position} of '{self.collection}' already has identity "
                f"'{self.identity}'"
            )
        cells = list(self.cells)
        if len(cells) < identity_column:
            cells.extend([""] * (identity_column - len(cells)))
        cells[identity_column - 1] = identity
        return self.model_copy(update={"cells": normalize_cells(cells), "identity": identity})


class CollectionMeta(BaseModel):
    """Metadata for one collection (worksheet)."""

    model_config = ConfigDict(frozen=True)

    title: str
    collection_id: int
    row_count: int
    column_count: int


class MetadataSnapshot(BaseModel):
    """Collection metadata fetched once at a stage boundary."""

    collections: dict[str, CollectionMeta] = Field(default_factory=dict)

    @classmethod
    def from_list(cls, metas: list[CollectionMeta]) -> "MetadataSnapshot":
        return cls(collections={meta.title: meta for meta in metas})

    def __contains__(self, title: object) -> bool:
        return title in self.collections

    def get(self, title: str) -> CollectionMeta:
        try:
            return self.collections[title]
        except KeyError:
            raise KeyError(f"Collection '{title}' not found in metadata snapshot") from None

    def missing(self, titles: list[str]) -> list[str]:
        return [title for title in titles if title not in self.collections]


class DestinationState(BaseModel):
    """Identities already present in a destination and its next free row.

    ``identities`` maps each identity to the checksum of the row carrying it.
    """

    name: str
    identities: dict[str, str] = Field(default_factory=dict)
    next_free_row: int = Field(ge=1)
