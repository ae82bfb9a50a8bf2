"""Utility functions shared across the migrator.

Column/row addressing helpers and cell normalization used by both store
backends and the migration stages.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from .constants import TRUTHY_VALUES


def column_to_letter(column: int) -> str:
    """Convert a 1-based column index to its A1 letter form.

    Example:
        >>> column_to_letter(1), column_to_letter(26), column_to_letter(28)
        ('A', 'Z', 'AB')
    """
    if column < 1:
        raise ValueError(f"Column index must be >= 1, got {column}")

    letters = ""
    while column > 0:
        column, remainder = divmod(column - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def quote_collection(name: str) -> str:
    """Quote a collection name for A1 notation ('It''s' style escaping)."""
    return "'" + name.replace("'", "''") + "'"


def a1_range(
    collection: str,
    start_row: int,
    end_row: int | None = None,
    start_col: int = 1,
    end_col: int | None = None,
) -> str:
    """Build an A1 range for a 1-based inclusive block; None means open-ended."""
    start = f"{column_to_letter(start_col)}{start_row}"
    end_letter = column_to_letter(end_col) if end_col is not None else _last_column_letter()
    end = f"{end_letter}{end_row}" if end_row is not None else end_letter
    return f"{quote_collection(collection)}!{start}:{end}"


def _last_column_letter() -> str:
    # Sheets caps grids at 18278 columns (ZZZ)
    return "ZZZ"


def normalize_cells(values: Iterable[Any]) -> tuple[str, ...]:
    """Render cells as strings and drop trailing empties."""
    cells = ["" if value is None else str(value) for value in values]
    while cells and cells[-1] == "":
        cells.pop()
    return tuple(cells)


def cell_at(cells: Sequence[str], column: int) -> str:
    """Return the value at a 1-based column, or "" when the row is shorter."""
    index = column - 1
    return cells[index] if 0 <= index < len(cells) else ""


def is_truthy(value: str) -> bool:
    """Interpret a checkbox/flag cell."""
    return value.strip().lower() in TRUTHY_VALUES


def is_blank(cells: Sequence[str]) -> bool:
    """Check whether every cell of a row is empty or whitespace."""
    return all(not cell.strip() for cell in cells)
