"""
Marker-Trajectory File Parser

This module provides a MarkerFileParser class to parse lab-exported marker
tables (.txt/.tsv/.csv). The expected layout is one or more header rows, one of
which carries the marker labels aligned to X/Y/Z column triplets, followed by
one data row per sample whose first column is the sample time in seconds:

    Time    LASIS   LASIS   LASIS   LKJC    LKJC    LKJC
            X       Y       Z       X       Y       Z
    0.000   0.0706  -1.3196 0.9286  0.1032  -1.4740 0.4800
    0.010   0.0707  -1.3190 0.9284  0.000000 0.000000 0.000000

Labels may be written once per triplet (followed by two blank columns) or
repeated over all three columns. A triplet that holds a blank field, the
export tool's "no sample" sentinel or non-numeric text becomes a missing
position (None) for that frame.

Any structural problem aborts the whole parse with a ParseError; the parser
never returns a partial dataset.
"""

import logging
import math
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from ..config import DEFAULT_CONFIG, LOGGER_NAME, ParserConfig
from ..data.datasets import Marker, MarkerDataset, MarkerFrame, Point3D
from .errors import (
    HeaderShapeError,
    NonMonotonicTimeError,
    NumericFieldError,
)
from .tokenizer import Row, fit_row_width, has_accepted_extension, parse_number, read_rows


logger = logging.getLogger(f"{LOGGER_NAME}.marker_parser")

_AXIS_LABEL = re.compile(r"^[xyz]\d*$", re.IGNORECASE)


class MarkerFileParser:
    """
    A parser for marker-trajectory tables.

    The parser is stateless between calls: ``parse`` is a pure function of the
    input content, so one instance can be shared across worker threads.

    Attributes:
        config (ParserConfig): Missing-value sentinels and accepted extensions
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or DEFAULT_CONFIG.parser

    def parse(self, data: Union[bytes, str], filename: Optional[str] = None) -> MarkerDataset:
        """
        Parse marker file content into a MarkerDataset.

        Args:
            data: Raw file bytes or decoded text
            filename: Source file name, used for messages and extension check

        Returns:
            MarkerDataset: Markers in column order and one frame per data row

        Raises:
            EmptyInputError: No non-blank lines
            HeaderShapeError: Labels missing or not aligned to triplets
            RowLengthMismatchError: A data row width differs from the header
            NumericFieldError: A time field is not a number
            NonMonotonicTimeError: A time value decreases
        """
        if filename and not has_accepted_extension(filename, self.config.marker_extensions):
            logger.warning(f"Unrecognized marker file extension for {filename}; parsing content anyway")

        rows = read_rows(data, filename=filename)
        header_rows, data_rows = self._split_header(rows)
        labels = self._parse_marker_labels(header_rows, filename)
        markers = tuple(Marker(label, i) for i, label in enumerate(labels))

        frames = self._parse_frames(data_rows, len(markers), filename)
        dataset = MarkerDataset(markers=markers, frames=tuple(frames), source_name=filename)

        self._report(dataset)
        return dataset

    def _split_header(self, rows: List[Row]) -> Tuple[List[Row], List[Row]]:
        """Data starts at the first row whose first field is numeric."""
        for i, row in enumerate(rows):
            if parse_number(row[0]) is not None:
                return rows[:i], rows[i:]
        return rows, []

    def _parse_marker_labels(self, header_rows: List[Row], filename: Optional[str]) -> List[str]:
        """
        Locate the label row and recover one label per X/Y/Z triplet.

        The label row is the header row with the most non-empty fields after
        the time column, skipping coordinate-axis rows (``X Y Z ...``); on a
        tie the earliest row wins, since exporters put the label row above
        descriptive rows such as the signal type.
        """
        candidates = [row for row in header_rows if not _is_axis_row(row)]
        if not candidates:
            raise HeaderShapeError("No marker label header row found", filename)

        label_row = max(candidates, key=lambda row: sum(1 for f in row.fields[1:] if f))
        fields = list(label_row.fields[1:])
        while fields and not fields[-1]:
            fields.pop()
        if not fields:
            raise HeaderShapeError(f"Row {label_row.line_number} has no marker labels", filename)

        groups = [fields[start:start + 3] for start in range(0, len(fields), 3)]
        repeated = any(f for group in groups for f in group[1:])

        labels = []
        for k, group in enumerate(groups):
            column = 2 + 3 * k
            label = group[0]
            if not label:
                raise HeaderShapeError(
                    f"Row {label_row.line_number}, column {column}: "
                    f"marker triplet has no label", filename
                )
            if any(f and f != label for f in group[1:]):
                raise HeaderShapeError(
                    f"Row {label_row.line_number}, column {column}: labels {group} "
                    f"are not aligned to X/Y/Z triplets", filename
                )
            if len(group) < 3 and repeated:
                raise HeaderShapeError(
                    f"Row {label_row.line_number}: {len(fields)} label columns after the "
                    f"time column is not a multiple of 3", filename
                )
            labels.append(label)

        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            logger.warning(f"Duplicate marker labels {duplicates} in {filename or 'marker data'}")
        return labels

    def _parse_frames(self, data_rows: List[Row], n_markers: int,
                      filename: Optional[str]) -> List[MarkerFrame]:
        expected = 1 + 3 * n_markers
        frames = []
        previous_time = None

        for row in data_rows:
            fields = fit_row_width(row, expected, filename)

            time = parse_number(fields[0])
            if time is None or not math.isfinite(time):
                raise NumericFieldError(row.line_number, 1, fields[0], filename)
            if previous_time is not None and time < previous_time:
                raise NonMonotonicTimeError(row.line_number, time, previous_time, filename)
            previous_time = time

            positions = tuple(
                self._parse_position(fields[1 + 3 * m:4 + 3 * m])
                for m in range(n_markers)
            )
            frames.append(MarkerFrame(time=time, positions=positions))

        return frames

    def _parse_position(self, fields: Sequence[str]) -> Optional[Point3D]:
        """All three components valid, or the whole position is missing."""
        values = []
        for text in fields:
            if not text or text in self.config.missing_sentinels:
                return None
            value = parse_number(text)
            if value is None or not math.isfinite(value):
                return None
            values.append(value)
        return Point3D(*values)

    def _report(self, dataset: MarkerDataset) -> None:
        summary = dataset.get_summary()
        name = dataset.source_name or 'marker data'
        logger.info(
            f"Parsed {name}: {summary['num_markers']} markers, {summary['num_frames']} frames"
        )
        if summary['total_points'] and \
                summary['completeness_percent'] < self.config.completeness_warning_percent:
            logger.warning(
                f"Marker data completeness is {summary['completeness_percent']:.1f}% "
                f"({summary['missing_points']}/{summary['total_points']} missing points)"
            )


def _is_axis_row(row: Row) -> bool:
    values = [f for f in row.fields[1:] if f]
    return bool(values) and all(_AXIS_LABEL.match(f) for f in values)


def parse_marker_file(data: Union[bytes, str], filename: Optional[str] = None,
                      config: Optional[ParserConfig] = None) -> MarkerDataset:
    """Parse marker file content; see MarkerFileParser.parse."""
    return MarkerFileParser(config).parse(data, filename)


def load_marker_file(path: Union[str, Path], config: Optional[ParserConfig] = None) -> MarkerDataset:
    """Read and parse a marker file from disk."""
    path = Path(path)
    return parse_marker_file(path.read_bytes(), path.name, config)
