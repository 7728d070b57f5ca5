"""
Force-Plate File Parser

Parses force-plate exports in the OpenSim .mot layout: a short metadata
header of key/value lines terminated by ``endheader``, a column-name row and
then numeric data rows.

    walk_grf.mot
    version=1
    nRows=600
    nColumns=19
    inDegrees=no
    endheader
    time  ground_force_vx  ground_force_vy  ...  1_ground_force_pz

Columns are mapped onto plates by name. Matching is case-insensitive and the
plate is whatever prefix or suffix surrounds the component name, so
``ground_force_vx``/``1_ground_force_vx``, ``r_ground_force_vx``/``l_...``,
``FP1_Force_X``/``FP1_COP_X`` and ``Fx1``/``Px1`` all resolve.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..config import DEFAULT_CONFIG, LOGGER_NAME, ParserConfig
from ..data.datasets import ForceDataset, ForceFrame, ForcePlateSample, Point3D
from .errors import (
    MetadataFieldError,
    MissingHeaderSentinelError,
    UnknownColumnLayoutError,
)
from .tokenizer import Row, fit_row_width, has_accepted_extension, parse_number, read_rows


logger = logging.getLogger(f"{LOGGER_NAME}.force_parser")

ROW_COUNT_KEYS = ('nrows', 'datarows')
COLUMN_COUNT_KEYS = ('ncolumns', 'datacolumns')
TIME_COLUMNS = ('time', 't', 'time_s', 'seconds')

_SEP = r"[_. ]"

# (component kind, pattern); the first matching pattern wins
COLUMN_PATTERNS: List[Tuple[str, "re.Pattern"]] = [
    ('force', re.compile(r"^(?P<pre>.*?)ground_force_v(?P<axis>[xyz])(?P<post>.*)$")),
    ('point', re.compile(r"^(?P<pre>.*?)ground_force_p(?P<axis>[xyz])(?P<post>.*)$")),
    ('force', re.compile(r"^(?P<pre>.*?)force_v(?P<axis>[xyz])(?P<post>.*)$")),
    ('point', re.compile(r"^(?P<pre>.*?)force_p(?P<axis>[xyz])(?P<post>.*)$")),
    ('force', re.compile(rf"^(?P<pre>.*?)force{_SEP}?(?P<axis>[xyz])(?P<post>.*)$")),
    ('point', re.compile(rf"^(?P<pre>.*?)cop{_SEP}?(?P<axis>[xyz])(?P<post>.*)$")),
    ('force', re.compile(rf"^(?P<pre>(?:.*{_SEP})?)f(?P<axis>[xyz])(?P<post>\d*)$")),
    ('point', re.compile(rf"^(?P<pre>(?:.*{_SEP})?)p(?P<axis>[xyz])(?P<post>\d*)$")),
]


@dataclass
class PlateColumns:
    """Column indices for one plate's application point and force vector."""
    label: str
    point: Dict[str, int] = field(default_factory=dict)
    force: Dict[str, int] = field(default_factory=dict)

    def missing(self) -> List[str]:
        name = self.label or 'unnamed'
        missing = [f"plate '{name}' point {axis}" for axis in 'xyz' if axis not in self.point]
        missing += [f"plate '{name}' force {axis}" for axis in 'xyz' if axis not in self.force]
        return missing


@dataclass
class ColumnLayout:
    time: Optional[int]
    plates: List[PlateColumns]


def classify_column(name: str) -> Optional[Tuple[str, str, str]]:
    """
    Identify a force-file column.

    Returns:
        (kind, plate_label, axis) with kind 'force' or 'point', or None if the
        column is not a plate point/force component
    """
    normalized = name.strip().lower()
    for kind, pattern in COLUMN_PATTERNS:
        match = pattern.match(normalized)
        if match:
            plate = (match.group('pre').strip('_. ') + match.group('post').strip('_. '))
            return kind, plate, match.group('axis')
    return None


class ForceFileParser:
    """
    A parser for force-plate files.

    Like MarkerFileParser, ``parse`` is pure and keeps no state between calls.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or DEFAULT_CONFIG.parser

    def parse(self, data: Union[bytes, str], filename: Optional[str] = None) -> ForceDataset:
        """
        Parse force file content into a ForceDataset.

        Args:
            data: Raw file bytes or decoded text
            filename: Source file name, used for messages and extension check

        Returns:
            ForceDataset: One ForceFrame per data row (possibly none)

        Raises:
            EmptyInputError: No non-blank lines
            MissingHeaderSentinelError: No ``endheader`` before the data
            MetadataFieldError: Declared row/column count missing or invalid
            UnknownColumnLayoutError: Plate columns could not be resolved
            RowLengthMismatchError: A row width differs from the declared count
        """
        if filename and not has_accepted_extension(filename, self.config.force_extensions):
            logger.warning(f"Unrecognized force file extension for {filename}; parsing content anyway")

        rows = read_rows(data, filename=filename)
        metadata, body_start = self._parse_header(rows, filename)
        declared_rows = self._declared_count(metadata, ROW_COUNT_KEYS, filename)
        declared_columns = self._declared_count(metadata, COLUMN_COUNT_KEYS, filename)

        body = rows[body_start:]
        if not body:
            raise UnknownColumnLayoutError(
                f"No column-name row after '{self.config.header_sentinel}'", filename=filename
            )
        column_names = fit_row_width(body[0], declared_columns, filename)
        layout = self._resolve_layout(column_names, filename)

        frames = tuple(
            self._parse_frame(fit_row_width(row, declared_columns, filename), layout)
            for row in body[1:]
        )

        if declared_rows != len(frames):
            logger.warning(
                f"{filename or 'force data'} declares {declared_rows} rows but contains "
                f"{len(frames)}; using the rows present"
            )

        dataset = ForceDataset(
            frames=frames,
            plate_labels=tuple(plate.label for plate in layout.plates),
            metadata=metadata,
            source_name=filename,
        )
        logger.info(
            f"Parsed {filename or 'force data'}: {dataset.plate_count} plates, "
            f"{dataset.frame_count} frames"
        )
        return dataset

    def _parse_header(self, rows: List[Row], filename: Optional[str]) -> Tuple[Dict[str, str], int]:
        """Read key/value lines up to the sentinel; return metadata and body start index."""
        sentinel = self.config.header_sentinel.lower()
        metadata: Dict[str, str] = {}

        for i, row in enumerate(rows):
            if row[0].lower() == sentinel:
                return metadata, i + 1
            if _is_numeric_row(row):
                raise MissingHeaderSentinelError(self.config.header_sentinel, row.line_number, filename)

            key, value = _split_metadata(row)
            if key is None:
                # First free-text line is the file title (e.g. the trial name)
                metadata.setdefault('title', value)
            else:
                metadata[key] = value

        raise MissingHeaderSentinelError(self.config.header_sentinel, filename=filename)

    def _declared_count(self, metadata: Dict[str, str], keys: Sequence[str],
                        filename: Optional[str]) -> int:
        for key in keys:
            if key in metadata:
                value = metadata[key]
                try:
                    count = int(value)
                except ValueError:
                    raise MetadataFieldError(key, value, filename) from None
                if count < 0:
                    raise MetadataFieldError(key, value, filename)
                return count
        raise MetadataFieldError(keys[0], filename=filename)

    def _resolve_layout(self, column_names: Sequence[str], filename: Optional[str]) -> ColumnLayout:
        time_index = None
        plates: Dict[str, PlateColumns] = {}

        for index, name in enumerate(column_names):
            if time_index is None and name.strip().lower() in TIME_COLUMNS:
                time_index = index
                continue
            classified = classify_column(name)
            if classified is None:
                logger.debug(f"Ignoring force file column '{name}'")
                continue
            kind, label, axis = classified
            plate = plates.setdefault(label, PlateColumns(label))
            components = plate.force if kind == 'force' else plate.point
            if axis in components:
                raise UnknownColumnLayoutError(
                    f"Column '{name}' duplicates plate '{label or 'unnamed'}' {kind} {axis} "
                    f"(column {components[axis] + 1})", filename=filename
                )
            components[axis] = index

        if not plates:
            raise UnknownColumnLayoutError(
                "No force plate columns found",
                missing=['point x/y/z', 'force x/y/z'], filename=filename,
            )

        missing = [m for plate in plates.values() for m in plate.missing()]
        if missing:
            raise UnknownColumnLayoutError("Incomplete force plate columns", missing, filename)

        expected = self.config.plate_count
        if expected is not None and len(plates) != expected:
            raise UnknownColumnLayoutError(
                f"Found {len(plates)} force plates "
                f"({', '.join(repr(p) for p in plates)}), expected {expected}",
                filename=filename,
            )

        return ColumnLayout(time=time_index, plates=list(plates.values()))

    def _parse_frame(self, fields: Sequence[str], layout: ColumnLayout) -> ForceFrame:
        time = None
        if layout.time is not None:
            time = _finite(parse_number(fields[layout.time]))
        samples = tuple(
            ForcePlateSample(
                point=_vector(fields, plate.point),
                force=_vector(fields, plate.force),
            )
            for plate in layout.plates
        )
        return ForceFrame(plates=samples, time=time)


def _finite(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return value


def _vector(fields: Sequence[str], columns: Dict[str, int]) -> Optional[Point3D]:
    values = [_finite(parse_number(fields[columns[axis]])) for axis in 'xyz']
    if any(v is None for v in values):
        return None
    return Point3D(*values)


def _is_numeric_row(row: Row) -> bool:
    return len(row) >= 2 and all(parse_number(f) is not None for f in row)


def _split_metadata(row: Row) -> Tuple[Optional[str], str]:
    """
    Split a header line into (key, value).

    Handles ``key=value`` and ``key<delim>value``; anything else is free text
    and comes back as (None, text).
    """
    fields = [f for f in row.fields if f]
    text = ' '.join(fields)
    if '=' in text:
        key, value = text.split('=', 1)
        return key.strip().lower(), value.strip()
    if len(fields) == 2 and parse_number(fields[1]) is not None:
        return fields[0].lower(), fields[1]
    return None, text


def parse_force_file(data: Union[bytes, str], filename: Optional[str] = None,
                     config: Optional[ParserConfig] = None) -> ForceDataset:
    """Parse force file content; see ForceFileParser.parse."""
    return ForceFileParser(config).parse(data, filename)


def load_force_file(path: Union[str, Path], config: Optional[ParserConfig] = None) -> ForceDataset:
    """Read and parse a force file from disk."""
    path = Path(path)
    return parse_force_file(path.read_bytes(), path.name, config)
