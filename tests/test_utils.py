"""Tests for addressing and cell helpers."""

import pytest

from sheet_migrator.utils import (
    a1_range,
    column_to_letter,
    is_blank,
    is_truthy,
    normalize_cells,
)


class TestAddressing:
    """Test suite for A1 addressing."""

    @pytest.mark.parametrize(
        ("column", "letter"), [(1, "A"), (6, "F"), (26, "Z"), (27, "AA"), (28, "AB"), (702, "ZZ")]
    )
    def test_column_to_letter(self, column, letter):
        assert column_to_letter(column) == letter

    def test_column_must_be_positive(self):
        with pytest.raises(ValueError):
            column_to_letter(0)

    def test_bounded_range(self):
        assert a1_range("Leads", 2, 5, 1, 6) == "'Leads'!A2:F5"

    def test_open_ended_rows(self):
        assert a1_range("Meeting Set", 2, end_col=26) == "'Meeting Set'!A2:Z"

    def test_quotes_are_escaped(self):
        assert a1_range("Bob's", 1, 1, 1, 1) == "'Bob''s'!A1:A1"


class TestCells:
    """Test suite for cell normalization."""

    def test_normalize_cells(self):
        assert normalize_cells(["a", None, 3, "", None]) == ("a", "", "3")

    def test_is_blank(self):
        assert is_blank(("", "  "))
        assert not is_blank(("", "x"))

    def test_is_truthy(self):
        assert is_truthy(" ✓ ")
        assert not is_truthy("checked")
