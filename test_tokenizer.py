#!/usr/bin/env python3
"""
Tests for the delimiter-aware row reader.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for testing
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from movilo.utils.errors import EmptyInputError, RowLengthMismatchError
from movilo.utils.tokenizer import (
    Row, decode_input, detect_delimiter, fit_row_width, has_accepted_extension,
    parse_number, read_rows, split_line
)


def test_tab_wins_over_comma():
    rows = read_rows("Time\tA,B\tC\n0.0\t1,5\t2\n")
    assert rows[0].fields == ["Time", "A,B", "C"]
    assert rows[1].fields == ["0.0", "1,5", "2"]


def test_comma_and_whitespace_delimiters():
    assert read_rows("a, b ,c\n")[0].fields == ["a", "b", "c"]
    assert read_rows("a   b\t\n", delimiter=None)[0].fields == ["a", "b"]
    assert read_rows("a   b  c\n1 2 3\n")[1].fields == ["1", "2", "3"]


def test_title_line_defers_detection():
    lines = ["walk_grf", "nRows=1", "time\tfx", "0\t1"]
    assert detect_delimiter(lines) == "\t"
    assert detect_delimiter(["a b", "c d"]) is None


def test_blank_lines_dropped_but_line_numbers_kept():
    rows = read_rows("a\tb\n\n   \n1\t2\n\n\n")
    assert [row.line_number for row in rows] == [1, 4]


def test_delimiter_only_line_is_row_of_empty_fields():
    rows = read_rows("a\tb\tc\n\t\t\n")
    assert len(rows) == 2
    assert rows[1].fields == ["", "", ""]
    assert rows[1].is_empty()


def test_line_endings_and_bom():
    rows = read_rows(b"\xef\xbb\xbfTime\tX\r\n0\t1\r2\t3")
    assert rows[0].fields == ["Time", "X"]
    assert [row.line_number for row in rows] == [1, 2, 3]


def test_latin1_fallback():
    assert decode_input("Caf\xe9".encode("latin-1")) == "Caf\xe9"


@pytest.mark.parametrize("data", ["", "   ", "\n\n  \n", b""])
def test_empty_input(data):
    with pytest.raises(EmptyInputError) as excinfo:
        read_rows(data, filename="empty.tsv")
    assert "empty.tsv" in str(excinfo.value)


def test_parse_number():
    assert parse_number("1.5") == 1.5
    assert parse_number("-2e-3") == -0.002
    assert parse_number("1,25") == 1.25
    assert parse_number("") is None
    assert parse_number("abc") is None
    assert parse_number("1,2,3") is None


def test_fit_row_width():
    row = Row(7, ["0.0", "1", "2", "", ""])
    assert fit_row_width(row, 3) == ["0.0", "1", "2"]

    with pytest.raises(RowLengthMismatchError) as excinfo:
        fit_row_width(Row(9, ["0.0", "1"]), 3)
    error = excinfo.value
    assert (error.row, error.expected, error.actual) == (9, 3, 2)

    with pytest.raises(RowLengthMismatchError):
        fit_row_width(Row(10, ["0.0", "1", "2", "3"]), 3)


def test_has_accepted_extension():
    assert has_accepted_extension("Walk01.TSV", (".tsv",))
    assert not has_accepted_extension("walk01.c3d", (".tsv", ".txt"))
    assert not has_accepted_extension(None, (".tsv",))


def test_split_line():
    assert split_line(" a \t b\t", "\t") == ["a", "b", ""]
    assert split_line("  a   b ", None) == ["a", "b"]
