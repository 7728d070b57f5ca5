"""
Delimiter-aware row reader for lab-exported text tables.

Splits raw file content into rows of trimmed string fields. The delimiter is
inferred once per file (tab, then comma, then runs of whitespace) and every
row keeps the 1-based line number it came from so parse errors can point at
the exact line in the original file.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from .errors import EmptyInputError, RowLengthMismatchError


TAB = "\t"
COMMA = ","
WHITESPACE = None  # str.split() semantics: runs of whitespace

_LINE_BREAK = re.compile(r"\r\n|\r")


@dataclass
class Row:
    """One non-blank line of the input, split into trimmed fields."""
    line_number: int
    fields: List[str]

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, index):
        return self.fields[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def is_empty(self) -> bool:
        """True when every field is blank (a delimiter-only line)."""
        return not any(self.fields)


def decode_input(data: Union[bytes, bytearray, str]) -> str:
    """
    Decode raw file bytes to text.

    UTF-8 is tried first (a byte-order mark is dropped); lab export tools on
    Windows frequently write Latin-1, which is used as the fallback since it
    can decode any byte sequence.
    """
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    try:
        return bytes(data).decode("utf-8-sig")
    except UnicodeDecodeError:
        return bytes(data).decode("latin-1")


def detect_delimiter(lines: List[str]) -> Optional[str]:
    """
    Infer the field delimiter from the first non-empty line.

    Tab wins over comma. A first line holding neither (a title line, say)
    defers to the first later line that does; whitespace splitting is used
    only when no line has a tab or comma.
    """
    for line in lines:
        if not line.strip():
            continue
        if TAB in line:
            return TAB
        if COMMA in line:
            return COMMA
    return WHITESPACE


def split_line(line: str, delimiter: Optional[str]) -> List[str]:
    """Split one line into trimmed fields (whitespace runs when delimiter is None)."""
    if delimiter is WHITESPACE:
        return line.split()
    return [field.strip() for field in line.split(delimiter)]


def read_rows(data: Union[bytes, bytearray, str], delimiter: Optional[str] = "auto",
              filename: Optional[str] = None) -> List[Row]:
    """
    Tokenize file content into rows.

    Args:
        data: Raw file bytes or already-decoded text
        delimiter: ``"auto"`` to infer, or an explicit delimiter
            (``None`` for whitespace runs)
        filename: Used only for error messages

    Returns:
        List[Row]: Non-blank rows in file order

    Raises:
        EmptyInputError: If the content has no non-blank line
    """
    text = _LINE_BREAK.sub("\n", decode_input(data))
    lines = text.split("\n")

    if not any(line.strip() for line in lines):
        raise EmptyInputError(filename)

    if delimiter == "auto":
        delimiter = detect_delimiter(lines)

    rows = []
    for number, line in enumerate(lines, start=1):
        # A line of only tabs/commas is a row of empty fields, which is how
        # exporters write "no sample" placeholders; pure whitespace is blank.
        if not line.strip() and (delimiter is WHITESPACE or delimiter not in line):
            continue
        rows.append(Row(number, split_line(line, delimiter)))
    return rows


def parse_number(text: str) -> Optional[float]:
    """
    Parse a numeric field, or return None if it is not a number.

    A decimal comma (``"1,25"``) is accepted, since comma-delimited files
    never reach here with commas inside a field.
    """
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        pass
    if text.count(",") == 1:
        try:
            return float(text.replace(",", "."))
        except ValueError:
            return None
    return None


def has_accepted_extension(filename: Optional[str], accepted) -> bool:
    """True when ``filename`` ends with one of ``accepted`` (case-insensitive)."""
    if not filename:
        return False
    lowered = filename.lower()
    return any(lowered.endswith(ext.lower()) for ext in accepted)


def fit_row_width(row: Row, expected: int, filename: Optional[str] = None) -> List[str]:
    """
    Return the row's fields, checked against the expected width.

    Blank fields past the expected width come from a trailing delimiter and
    are dropped; any other difference raises RowLengthMismatchError.
    """
    fields = row.fields
    if len(fields) > expected and not any(fields[expected:]):
        fields = fields[:expected]
    if len(fields) != expected:
        raise RowLengthMismatchError(row.line_number, expected, len(row.fields), filename)
    return fields
