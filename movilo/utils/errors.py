"""
Parse errors for marker and force-plate files.

Every error is terminal for the parse call that raised it: no partial dataset
is ever returned. Each error keeps the row/column/field context needed to show
the user a precise message, and ``str(error)`` is that message.
"""

from typing import Any, Optional, Sequence


class ParseError(ValueError):
    """Base class for all marker/force file parsing failures."""

    def __init__(self, message: str, filename: Optional[str] = None):
        self.message = message
        self.filename = filename
        super().__init__(self._format())

    def _format(self) -> str:
        if self.filename:
            return f"{self.filename}: {self.message}"
        return self.message


class EmptyInputError(ParseError):
    """The file has no non-blank lines."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__("File is empty (no non-blank lines)", filename)


class HeaderShapeError(ParseError):
    """Marker label header is missing or not aligned to X/Y/Z triplets."""


class RowLengthMismatchError(ParseError):
    """A row has a different number of fields than the header declares."""

    def __init__(self, row: int, expected: int, actual: int, filename: Optional[str] = None):
        self.row = row
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Row {row} has {actual} fields, expected {expected}", filename
        )


class NumericFieldError(ParseError):
    """A field that must be numeric could not be parsed."""

    def __init__(self, row: int, column: int, value: Any = None, filename: Optional[str] = None):
        self.row = row
        self.column = column
        self.value = value
        super().__init__(
            f"Row {row}, column {column}: expected a number, found {value!r}", filename
        )


class NonMonotonicTimeError(ParseError):
    """Sample time decreased relative to the previous data row."""

    def __init__(self, row: int, time: Optional[float] = None,
                 previous: Optional[float] = None, filename: Optional[str] = None):
        self.row = row
        self.time = time
        self.previous = previous
        detail = ""
        if time is not None and previous is not None:
            detail = f" ({time} < {previous})"
        super().__init__(f"Row {row}: time goes backwards{detail}", filename)


class MissingHeaderSentinelError(ParseError):
    """Force file metadata header is not terminated by the sentinel line."""

    def __init__(self, sentinel: str = "endheader", row: Optional[int] = None,
                 filename: Optional[str] = None):
        self.sentinel = sentinel
        self.row = row
        where = f" before row {row}" if row is not None else ""
        super().__init__(f"Missing '{sentinel}' header terminator{where}", filename)


class MetadataFieldError(ParseError):
    """A declared metadata count is missing or not a valid number."""

    def __init__(self, field: str, value: Any = None, filename: Optional[str] = None):
        self.field = field
        self.value = value
        if value is None:
            message = f"Metadata field '{field}' is missing"
        else:
            message = f"Metadata field '{field}' is not a valid count: {value!r}"
        super().__init__(message, filename)


class UnknownColumnLayoutError(ParseError):
    """Force columns could not be mapped onto plate point/force components."""

    def __init__(self, message: str, missing: Sequence[str] = (), filename: Optional[str] = None):
        self.missing = list(missing)
        if self.missing:
            message = f"{message} (missing: {', '.join(self.missing)})"
        super().__init__(message, filename)
