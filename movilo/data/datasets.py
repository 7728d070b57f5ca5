"""
Frame-indexed datasets produced by the marker and force parsers.

Datasets are built once by a parse call and never mutated afterwards; a new
file replaces the whole dataset. Missing samples are represented by ``None``
in place of a Point3D so they can never be confused with a real origin point.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd


MILLIS_PER_SECOND = 1000.0


@dataclass(frozen=True)
class Point3D:
    """A 3D coordinate (marker position, application point or force vector)."""
    x: float
    y: float
    z: float

    def __iter__(self) -> Iterator[float]:
        return iter((self.x, self.y, self.z))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def is_zero(self) -> bool:
        return self.x == 0.0 and self.y == 0.0 and self.z == 0.0


@dataclass(frozen=True)
class Marker:
    """A tracked marker; ``index`` is its slot in every frame's positions."""
    label: str
    index: int


@dataclass(frozen=True)
class MarkerFrame:
    time: float
    positions: Tuple[Optional[Point3D], ...]

    def position(self, marker_index: int) -> Optional[Point3D]:
        return self.positions[marker_index]

    def valid_count(self) -> int:
        return sum(1 for p in self.positions if p is not None)


@dataclass(frozen=True)
class MarkerDataset:
    """
    Marker labels plus per-frame positions for one marker file.

    Attributes:
        markers: Markers in file column order
        frames: Frames in file row order, times non-decreasing
        source_name: File name the dataset was parsed from
    """
    markers: Tuple[Marker, ...] = ()
    frames: Tuple[MarkerFrame, ...] = ()
    source_name: Optional[str] = None

    def __post_init__(self):
        n_markers = len(self.markers)
        previous = None
        for i, frame in enumerate(self.frames):
            if len(frame.positions) != n_markers:
                raise ValueError(
                    f"Frame {i} has {len(frame.positions)} positions for {n_markers} markers"
                )
            if previous is not None and frame.time < previous:
                raise ValueError(f"Frame {i} time {frame.time} is before {previous}")
            previous = frame.time

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> MarkerFrame:
        return self.frames[index]

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def marker_labels(self) -> List[str]:
        return [m.label for m in self.markers]

    @property
    def is_empty(self) -> bool:
        return not self.frames

    @property
    def sequence_end(self) -> int:
        """
        Last frame index usable for playback.

        The lab export writes a final sample that is a sentinel/incomplete
        row, so the last usable index is ``frame_count - 2`` (never below 0).
        """
        return max(len(self.frames) - 2, 0)

    @property
    def step_duration_seconds(self) -> Optional[float]:
        """Native sample interval, from the first two frames."""
        if len(self.frames) < 2:
            return None
        return self.frames[1].time - self.frames[0].time

    @property
    def duration(self) -> float:
        if len(self.frames) < 2:
            return 0.0
        return self.frames[-1].time - self.frames[0].time

    def marker_index(self, label: str) -> int:
        """Index of the first marker with ``label``; raises KeyError if absent."""
        for marker in self.markers:
            if marker.label == label:
                return marker.index
        raise KeyError(f"Marker '{label}' not found. Available markers: {self.marker_labels}")

    def get_position_array(self) -> np.ndarray:
        """
        Positions as an array of shape (n_frames, n_markers, 3).

        Missing positions are NaN so downstream numpy code can mask them.
        """
        array = np.full((len(self.frames), len(self.markers), 3), np.nan)
        for i, frame in enumerate(self.frames):
            for j, pos in enumerate(frame.positions):
                if pos is not None:
                    array[i, j] = pos.as_tuple()
        return array

    def get_times(self) -> np.ndarray:
        return np.array([frame.time for frame in self.frames], dtype=float)

    def get_marker_trajectory(self, label: str) -> pd.DataFrame:
        """Time, X, Y, Z columns for one marker (NaN where missing)."""
        index = self.marker_index(label)
        positions = self.get_position_array()
        trajectory = pd.DataFrame(positions[:, index, :], columns=['X', 'Y', 'Z'])
        trajectory.insert(0, 'Time', self.get_times())
        return trajectory

    def to_dataframe(self) -> pd.DataFrame:
        """Wide table with a Time column and ``<label>_X/_Y/_Z`` per marker."""
        columns = []
        for marker in self.markers:
            columns.extend([f'{marker.label}_X', f'{marker.label}_Y', f'{marker.label}_Z'])
        positions = self.get_position_array().reshape(len(self.frames), len(self.markers) * 3)
        df = pd.DataFrame(positions, columns=columns)
        df.insert(0, 'Time', self.get_times())
        return df

    def get_summary(self) -> Dict:
        total_points = len(self.frames) * len(self.markers)
        valid_points = sum(frame.valid_count() for frame in self.frames)
        step = self.step_duration_seconds
        return {
            'source_name': self.source_name,
            'num_markers': len(self.markers),
            'num_frames': len(self.frames),
            'marker_names': self.marker_labels,
            'duration': self.duration,
            'sampling_rate': 1.0 / step if step else 0.0,
            'sequence_end': self.sequence_end,
            'missing_points': total_points - valid_points,
            'total_points': total_points,
            'completeness_percent': 100.0 * valid_points / total_points if total_points else 0.0,
        }

    def export_to_csv(self, output_path: Optional[str] = None) -> str:
        """Export the wide marker table to CSV and return the path written."""
        if output_path is None:
            base_name = os.path.splitext(os.path.basename(self.source_name or 'markers'))[0]
            output_path = f"{base_name}_marker_data.csv"
        self.to_dataframe().to_csv(output_path, index=False)
        return output_path


@dataclass(frozen=True)
class ForcePlateSample:
    """
    One plate's reading for one frame.

    ``point`` is the application point (centre of pressure) and ``force`` the
    ground reaction force vector; either is None when the file held a blank or
    non-numeric component for it.
    """
    point: Optional[Point3D]
    force: Optional[Point3D]

    @property
    def in_contact(self) -> bool:
        return self.force is not None and not self.force.is_zero()


@dataclass(frozen=True)
class ForceFrame:
    plates: Tuple[ForcePlateSample, ...]
    time: Optional[float] = None

    def __len__(self) -> int:
        return len(self.plates)

    def __getitem__(self, index: int) -> ForcePlateSample:
        return self.plates[index]


@dataclass(frozen=True)
class ForceDataset:
    """
    Force-plate frames for one force file.

    Frames line up with marker frames by index, but the two datasets need not
    be the same length; use ``frame_at`` to read past the end safely.
    """
    frames: Tuple[ForceFrame, ...] = ()
    plate_labels: Tuple[str, ...] = ()
    metadata: Dict[str, str] = field(default_factory=dict, compare=False)
    source_name: Optional[str] = None

    def __post_init__(self):
        for i, frame in enumerate(self.frames):
            if len(frame.plates) != len(self.plate_labels):
                raise ValueError(
                    f"Force frame {i} has {len(frame.plates)} plates, expected {len(self.plate_labels)}"
                )

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> ForceFrame:
        return self.frames[index]

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def plate_count(self) -> int:
        return len(self.plate_labels)

    @property
    def is_empty(self) -> bool:
        return not self.frames

    def frame_at(self, index: int) -> Optional[ForceFrame]:
        """Frame at ``index``, or None if the force data does not reach it."""
        if 0 <= index < len(self.frames):
            return self.frames[index]
        return None

    def _component_array(self, attribute: str) -> np.ndarray:
        array = np.full((len(self.frames), len(self.plate_labels), 3), np.nan)
        for i, frame in enumerate(self.frames):
            for j, sample in enumerate(frame.plates):
                value = getattr(sample, attribute)
                if value is not None:
                    array[i, j] = value.as_tuple()
        return array

    def get_force_array(self) -> np.ndarray:
        """Force vectors, shape (n_frames, n_plates, 3), NaN where invalid."""
        return self._component_array('force')

    def get_point_array(self) -> np.ndarray:
        """Application points, shape (n_frames, n_plates, 3), NaN where invalid."""
        return self._component_array('point')

    def to_dataframe(self) -> pd.DataFrame:
        forces = self.get_force_array()
        points = self.get_point_array()
        data = {'time': [f.time if f.time is not None else np.nan for f in self.frames]}
        for j, label in enumerate(self.plate_labels):
            name = label or f'plate{j + 1}'
            for k, axis in enumerate('xyz'):
                data[f'{name}_force_v{axis}'] = forces[:, j, k]
            for k, axis in enumerate('xyz'):
                data[f'{name}_force_p{axis}'] = points[:, j, k]
        return pd.DataFrame(data)

    def get_summary(self) -> Dict:
        contact_frames = [
            sum(1 for frame in self.frames if frame.plates[j].in_contact)
            for j in range(len(self.plate_labels))
        ]
        return {
            'source_name': self.source_name,
            'num_frames': len(self.frames),
            'num_plates': len(self.plate_labels),
            'plate_labels': list(self.plate_labels),
            'contact_frames': contact_frames,
            'declared_rows': self.metadata.get('nrows', self.metadata.get('datarows')),
        }

    def export_to_csv(self, output_path: Optional[str] = None) -> str:
        if output_path is None:
            base_name = os.path.splitext(os.path.basename(self.source_name or 'forces'))[0]
            output_path = f"{base_name}_force_data.csv"
        self.to_dataframe().to_csv(output_path, index=False)
        return output_path
