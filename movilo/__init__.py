"""
Movilo: Motion-Capture Playback Core

Parses lab-exported marker-trajectory and force-plate tables into validated,
frame-indexed datasets and drives them through a frame-accurate playback
timeline that is independent of the display refresh rate.
"""

__version__ = "0.1.0"

from .config import MoviloConfig, ParserConfig, PlaybackConfig, configure_logging
from .data import (
    ForceDataset, ForceFrame, ForcePlateSample,
    Marker, MarkerDataset, MarkerFrame, Point3D
)
from .utils import (
    MarkerFileParser, ForceFileParser,
    parse_marker_file, parse_force_file, load_marker_file, load_force_file,
    ParseError, EmptyInputError, HeaderShapeError, RowLengthMismatchError,
    NumericFieldError, NonMonotonicTimeError, MissingHeaderSentinelError,
    MetadataFieldError, UnknownColumnLayoutError
)
from .playback import DatasetSlot, PlaybackSession, TimelineController, TimelineState

__all__ = [
    # Configuration
    'MoviloConfig', 'ParserConfig', 'PlaybackConfig', 'configure_logging',
    # Datasets
    'Point3D', 'Marker', 'MarkerFrame', 'MarkerDataset',
    'ForcePlateSample', 'ForceFrame', 'ForceDataset',
    # Parsers
    'MarkerFileParser', 'ForceFileParser',
    'parse_marker_file', 'parse_force_file', 'load_marker_file', 'load_force_file',
    # Errors
    'ParseError', 'EmptyInputError', 'HeaderShapeError', 'RowLengthMismatchError',
    'NumericFieldError', 'NonMonotonicTimeError', 'MissingHeaderSentinelError',
    'MetadataFieldError', 'UnknownColumnLayoutError',
    # Playback
    'TimelineController', 'TimelineState', 'DatasetSlot', 'PlaybackSession',
]
