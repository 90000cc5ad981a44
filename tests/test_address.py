"""Tests for extracell.address module."""

import pytest

from extracell.address import (
    CellCoordinate,
    RangeAddress,
    cell_address,
    cell_at_offset,
    column_index_to_letter,
    compute_range_address,
    letter_to_column_index,
    normalize_cell,
    parse_cell,
    parse_range,
    parse_range_ref,
    quote_sheet_name,
    qualified_address,
    range_start,
    unquote_sheet_name,
)
from extracell.exceptions import InvalidAddressError


class TestColumnConversion:
    """Tests for column index to letter conversion."""

    def test_single_letters(self) -> None:
        assert column_index_to_letter(0) == "A"
        assert column_index_to_letter(1) == "B"
        assert column_index_to_letter(25) == "Z"

    def test_double_letters(self) -> None:
        assert column_index_to_letter(26) == "AA"
        assert column_index_to_letter(27) == "AB"
        assert column_index_to_letter(51) == "AZ"
        assert column_index_to_letter(52) == "BA"
        assert column_index_to_letter(701) == "ZZ"

    def test_triple_letters(self) -> None:
        assert column_index_to_letter(702) == "AAA"

    def test_letter_to_index(self) -> None:
        assert letter_to_column_index("A") == 0
        assert letter_to_column_index("Z") == 25
        assert letter_to_column_index("AA") == 26
        assert letter_to_column_index("ZZ") == 701
        assert letter_to_column_index("AAA") == 702

    def test_letter_to_index_lowercase(self) -> None:
        assert letter_to_column_index("aa") == 26

    def test_roundtrip(self) -> None:
        for i in range(1001):
            letter = column_index_to_letter(i)
            assert letter_to_column_index(letter) == i

    def test_negative_index(self) -> None:
        with pytest.raises(InvalidAddressError):
            column_index_to_letter(-1)

    def test_invalid_letters(self) -> None:
        with pytest.raises(InvalidAddressError):
            letter_to_column_index("")
        with pytest.raises(InvalidAddressError):
            letter_to_column_index("A1")


class TestParseCell:
    def test_simple(self) -> None:
        assert parse_cell("B3") == CellCoordinate(col=1, row=3)

    def test_absolute_markers(self) -> None:
        assert parse_cell("$AA$10") == CellCoordinate(col=26, row=10)
        assert parse_cell("$C7") == CellCoordinate(col=2, row=7)

    def test_lowercase(self) -> None:
        assert parse_cell("b3") == CellCoordinate(col=1, row=3)

    def test_sheet_prefix_ignored(self) -> None:
        assert parse_cell("Sheet1!C5") == CellCoordinate(col=2, row=5)
        assert parse_cell("'My Sheet'!C5") == CellCoordinate(col=2, row=5)

    @pytest.mark.parametrize("ref", ["", "A0", "3A", "A", "12", "A1:B2", "A-1"])
    def test_invalid(self, ref: str) -> None:
        with pytest.raises(InvalidAddressError) as exc_info:
            parse_cell(ref)
        assert exc_info.value.address == ref

    def test_cell_address_inverse(self) -> None:
        assert cell_address(0, 1) == "A1"
        assert cell_address(2, 10) == "C10"
        assert normalize_cell("$c$10") == "C10"

    def test_coordinate_invariant(self) -> None:
        with pytest.raises(InvalidAddressError):
            CellCoordinate(col=-1, row=1)
        with pytest.raises(InvalidAddressError):
            CellCoordinate(col=0, row=0)


class TestParseRangeRef:
    def test_with_sheet(self) -> None:
        ref = parse_range_ref("Sheet1!A1:B5")
        assert ref.sheet == "Sheet1"
        assert ref.address == "A1:B5"

    def test_without_sheet(self) -> None:
        ref = parse_range_ref("A1:B5")
        assert ref.sheet is None
        assert ref.address == "A1:B5"

    def test_quoted_sheet(self) -> None:
        ref = parse_range_ref("'My Sheet'!C3")
        assert ref.sheet == "My Sheet"
        assert ref.address == "C3"

    def test_escaped_apostrophe(self) -> None:
        ref = parse_range_ref("'Bob''s Data'!A1")
        assert ref.sheet == "Bob's Data"

    def test_bang_inside_quotes(self) -> None:
        ref = parse_range_ref("'Wow!'!B2")
        assert ref.sheet == "Wow!"
        assert ref.address == "B2"

    def test_never_raises(self) -> None:
        assert parse_range_ref("").sheet is None
        assert parse_range_ref("'unterminated").sheet is None


class TestQualifiedAddress:
    def test_plain_sheet(self) -> None:
        assert qualified_address("Sheet1", "A1") == "Sheet1!A1"

    def test_sheet_with_space(self) -> None:
        assert qualified_address("My Sheet", "A1:B2") == "'My Sheet'!A1:B2"

    def test_sheet_with_apostrophe(self) -> None:
        assert qualified_address("Bob's", "A1") == "'Bob''s'!A1"

    def test_replaces_existing_prefix(self) -> None:
        assert qualified_address("Data", "Old!B2") == "Data!B2"
        assert qualified_address("Data", "'Old Sheet'!B2") == "Data!B2"

    @pytest.mark.parametrize(
        "sheet", ["Sheet1", "My Sheet", "Bob's", "Q1 '24 Plan", "tab\tname"]
    )
    def test_idempotent(self, sheet: str) -> None:
        once = qualified_address(sheet, "B2:C3")
        assert qualified_address(sheet, once.split("!")[1]) == once
        assert qualified_address(sheet, once) == once

    def test_quote_roundtrip(self) -> None:
        for name in ["Sheet1", "My Sheet", "Bob's", "''", "a ''b''"]:
            assert unquote_sheet_name(quote_sheet_name(name)) == name


class TestRangeArithmetic:
    def test_compute_range_address(self) -> None:
        assert compute_range_address("B2", 3, 4) == "B2:E4"
        assert compute_range_address("A1", 2, 1) == "A1:A2"
        assert compute_range_address("Z1", 1, 2) == "Z1:AA1"

    @pytest.mark.parametrize("cell", ["A1", "B7", "$C$3", "d12", "ZZ99", "AAA1"])
    def test_single_cell_range(self, cell: str) -> None:
        assert compute_range_address(cell, 1, 1) == f"{cell}:{cell}"

    def test_compute_range_address_empty_shape(self) -> None:
        with pytest.raises(InvalidAddressError):
            compute_range_address("A1", 0, 3)

    def test_cell_at_offset(self) -> None:
        assert cell_at_offset("B2", 1, 2) == "D3"
        assert cell_at_offset("Z5", 0, 1) == "AA5"

    def test_range_start(self) -> None:
        assert range_start("Sheet1!B2:D5") == "B2"
        assert range_start("C3") == "C3"


class TestParseRange:
    def test_range(self) -> None:
        rng = parse_range("Data!B2:D5")
        assert rng.sheet == "Data"
        assert rng.start == CellCoordinate(col=1, row=2)
        assert rng.end == CellCoordinate(col=3, row=5)
        assert rng.rows == 4
        assert rng.cols == 3
        assert rng.address == "B2:D5"

    def test_reversed_corners(self) -> None:
        rng = parse_range("B10:A1")
        assert rng.start == CellCoordinate(col=0, row=1)
        assert rng.end == CellCoordinate(col=1, row=10)

    def test_single_cell(self) -> None:
        rng = parse_range("$C$3")
        assert rng.is_single_cell()
        assert rng.address == "C3"
        assert rng.qualified("My Sheet") == "'My Sheet'!C3"

    def test_invalid(self) -> None:
        with pytest.raises(InvalidAddressError):
            parse_range("A1:B2:C3")
        with pytest.raises(InvalidAddressError):
            parse_range("Sheet1!")

    def test_range_invariant(self) -> None:
        with pytest.raises(InvalidAddressError):
            RangeAddress(
                sheet=None,
                start=CellCoordinate(col=2, row=1),
                end=CellCoordinate(col=1, row=1),
            )
