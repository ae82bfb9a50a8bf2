"""Write and structural edit requests understood by every store backend."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .enums import Dimension


class ValueRange(BaseModel):
    """A block of values written at a 1-based top-left anchor."""

    model_config = ConfigDict(frozen=True)

    collection: str
    start_row: int = Field(ge=1)
    start_col: int = Field(default=1, ge=1)
    values: list[list[str]]


class AddCollection(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["add_collection"] = "add_collection"
    name: str


class CopyBlock(BaseModel):
    """Copy rows (content and formatting) between collections."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["copy_block"] = "copy_block"
    source_collection: str
    source_row: int = Field(ge=1)
    destination_collection: str
    destination_row: int = Field(ge=1)
    row_count: int = Field(default=1, ge=1)
    column_count: int = Field(ge=1)


class DeleteRows(BaseModel):
    """Delete the 1-based inclusive row span [start_row, end_row]."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["delete_rows"] = "delete_rows"
    collection: str
    start_row: int = Field(ge=1)
    end_row: int = Field(ge=1)


class AppendDimension(BaseModel):
    """Grow a collection's grid by ``length`` rows or columns."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["append_dimension"] = "append_dimension"
    collection: str
    dimension: Dimension = "ROWS"
    length: int = Field(ge=1)


class SetCellValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["set_cell_value"] = "set_cell_value"
    collection: str
    row: int = Field(ge=1)
    column: int = Field(ge=1)
    value: str


StructuralRequest = Annotated[
    AddCollection | CopyBlock | DeleteRows | AppendDimension | SetCellValue,
    Field(discriminator="kind"),
]
