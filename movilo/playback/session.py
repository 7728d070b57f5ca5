"""
Playback session: marker and force slots wired to one timeline.

The session is what a viewer holds. File selections go to ``open_marker_file``
/ ``open_force_file`` (parsed on a worker thread), the display loop calls
``tick`` once per refresh, and the renderer reads ``snapshot()``.

The timeline is only ever touched from the thread that calls ``tick`` and
the other commands: a newly published marker dataset is picked up by
``sync``, which ``tick`` and ``snapshot`` call first.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..config import DEFAULT_CONFIG, LOGGER_NAME, MoviloConfig
from ..data.datasets import ForceDataset, ForceFrame, MarkerDataset, MarkerFrame
from ..utils.force_parser import ForceFileParser
from ..utils.marker_parser import MarkerFileParser
from .loader import DatasetSlot
from .timeline import TimelineController, TimelineState


logger = logging.getLogger(f"{LOGGER_NAME}.session")


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a renderer needs for one visual update."""
    timeline: TimelineState
    marker_frame: Optional[MarkerFrame]
    force_frame: Optional[ForceFrame]
    crop_start_time: float
    current_time: float
    crop_end_time: float
    error: Optional[Exception]


class PlaybackSession:
    """
    Holds the marker and force datasets and the playback timeline.

    Args:
        config: Parser and playback settings
        executor: Shared worker pool for parses; one is created (and owned)
            if not given
    """

    def __init__(self, config: Optional[MoviloConfig] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.config = config or DEFAULT_CONFIG
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(self.config.playback.parse_workers, 1),
            thread_name_prefix="movilo-parse",
        )
        self.markers: DatasetSlot[MarkerDataset] = DatasetSlot(
            MarkerFileParser(self.config.parser).parse, self._executor, name="marker"
        )
        self.forces: DatasetSlot[ForceDataset] = DatasetSlot(
            ForceFileParser(self.config.parser).parse, self._executor, name="force"
        )
        self.timeline = TimelineController(looping=self.config.playback.looping)
        self._marker_revision = 0

    # ------------------------------------------------------------ file input

    def open_marker_file(self, path: Union[str, Path]) -> Future:
        return self.markers.submit_path(path)

    def open_force_file(self, path: Union[str, Path]) -> Future:
        return self.forces.submit_path(path)

    def load_marker_data(self, data: Union[bytes, str], filename: Optional[str] = None) -> MarkerDataset:
        """Parse marker content on this thread and load it into the timeline."""
        dataset = self.markers.load(data, filename)
        self.sync()
        return dataset

    def load_force_data(self, data: Union[bytes, str], filename: Optional[str] = None) -> ForceDataset:
        return self.forces.load(data, filename)

    # ------------------------------------------------------------- datasets

    @property
    def marker_data(self) -> MarkerDataset:
        return self.markers.dataset or MarkerDataset()

    @property
    def force_data(self) -> ForceDataset:
        return self.forces.dataset or ForceDataset()

    @property
    def marker_file_name(self) -> Optional[str]:
        """Name to show for the marker file; None after a failed parse."""
        state = self.markers.state
        return None if state.error is not None else state.filename

    @property
    def force_file_name(self) -> Optional[str]:
        state = self.forces.state
        return None if state.error is not None else state.filename

    @property
    def error(self) -> Optional[Exception]:
        """
        Error to display: set by the most recent failed parse of either file
        and cleared by a later successful one.
        """
        latest = max((self.markers.state, self.forces.state), key=lambda s: s.event_id)
        return latest.error

    def sync(self) -> bool:
        """Load a newly published marker dataset into the timeline."""
        state = self.markers.state
        if state.revision == self._marker_revision:
            return False
        self._marker_revision = state.revision
        logger.debug(f"Timeline picking up marker file {state.filename} (revision {state.revision})")
        self.timeline.load(state.dataset)
        return True

    # -------------------------------------------------------------- playback

    def tick(self, timestamp_ms: float) -> int:
        self.sync()
        return self.timeline.tick(timestamp_ms)

    def current_marker_frame(self) -> Optional[MarkerFrame]:
        frames = self.timeline.dataset.frames
        index = self.timeline.current_frame
        return frames[index] if index < len(frames) else None

    def current_force_frame(self) -> Optional[ForceFrame]:
        return self.force_data.frame_at(self.timeline.current_frame)

    def snapshot(self) -> SessionSnapshot:
        self.sync()
        timeline = self.timeline.state

        def time_at(index: int) -> float:
            # An empty timeline shows zero for every readout
            if timeline.sequence_end <= 0:
                return 0.0
            value = self.timeline.frame_time(index)
            return value if value is not None else 0.0

        return SessionSnapshot(
            timeline=timeline,
            marker_frame=self.current_marker_frame(),
            force_frame=self.current_force_frame(),
            crop_start_time=time_at(timeline.crop_start),
            current_time=time_at(timeline.current_frame),
            crop_end_time=time_at(timeline.crop_end),
            error=self.error,
        )

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "PlaybackSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
