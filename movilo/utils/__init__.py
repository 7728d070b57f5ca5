"""
Parsers for marker-trajectory and force-plate files.
"""

from .errors import (
    ParseError,
    EmptyInputError,
    HeaderShapeError,
    RowLengthMismatchError,
    NumericFieldError,
    NonMonotonicTimeError,
    MissingHeaderSentinelError,
    MetadataFieldError,
    UnknownColumnLayoutError
)
from .tokenizer import Row, read_rows
from .marker_parser import MarkerFileParser, parse_marker_file, load_marker_file
from .force_parser import ForceFileParser, parse_force_file, load_force_file

__all__ = [
    "ParseError",
    "EmptyInputError",
    "HeaderShapeError",
    "RowLengthMismatchError",
    "NumericFieldError",
    "NonMonotonicTimeError",
    "MissingHeaderSentinelError",
    "MetadataFieldError",
    "UnknownColumnLayoutError",
    "Row",
    "read_rows",
    "MarkerFileParser",
    "parse_marker_file",
    "load_marker_file",
    "ForceFileParser",
    "parse_force_file",
    "load_force_file"
]
