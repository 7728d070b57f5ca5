"""
Frame-accurate playback timeline.

TimelineController is a fixed-timestep scheduler: the display layer calls
``tick`` with a monotonic timestamp at whatever rate it refreshes, and the
controller converts elapsed wall-clock time into whole steps of the marker
file's native sample interval. Leftover time below one step is carried over to
the next tick, so playback speed does not drift with the refresh rate.

All commands are plain method calls from a single thread. Commands given
out-of-range values (from UI fields, typically) are ignored rather than
raised; the controller never leaves its invariants:

    0 <= crop_start <= crop_end <= sequence_end
    crop_start < crop_end          whenever sequence_end >= 1
    crop_start <= current_frame <= crop_end
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Optional

from ..config import LOGGER_NAME
from ..data.datasets import MILLIS_PER_SECOND, MarkerDataset


logger = logging.getLogger(f"{LOGGER_NAME}.timeline")


@dataclass(frozen=True)
class TimelineState:
    """Read-only snapshot of the playback state for one visual update."""
    current_frame: int = 0
    crop_start: int = 0
    crop_end: int = 0
    sequence_end: int = 0
    playing: bool = False
    looping: bool = True
    step_duration_ms: Optional[float] = None
    accumulated_ms: float = 0.0
    last_tick_ms: Optional[float] = None


def _as_frame(value) -> Optional[int]:
    """Integer frame index from a UI value, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real) and float(value).is_integer():
        return int(value)
    return None


class TimelineController:
    """
    Playback state machine over a MarkerDataset.

    Args:
        dataset: Initial marker dataset (None for an empty timeline)
        looping: Whether playback wraps from crop_end back to crop_start
    """

    def __init__(self, dataset: Optional[MarkerDataset] = None, looping: bool = True):
        self._dataset = MarkerDataset()
        self._current_frame = 0
        self._crop_start = 0
        self._crop_end = 0
        self._sequence_end = 0
        self._playing = False
        self._looping = looping
        self._step_duration_ms: Optional[float] = None
        self._accumulated_ms = 0.0
        self._last_tick_ms: Optional[float] = None

        if dataset is not None:
            self.load(dataset)

    # ------------------------------------------------------------------ state

    @property
    def current_frame(self) -> int:
        return self._current_frame

    @property
    def crop_start(self) -> int:
        return self._crop_start

    @property
    def crop_end(self) -> int:
        return self._crop_end

    @property
    def sequence_end(self) -> int:
        return self._sequence_end

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def looping(self) -> bool:
        return self._looping

    @property
    def step_duration_ms(self) -> Optional[float]:
        return self._step_duration_ms

    @property
    def dataset(self) -> MarkerDataset:
        return self._dataset

    @property
    def is_playable(self) -> bool:
        return self._step_duration_ms is not None

    @property
    def state(self) -> TimelineState:
        return TimelineState(
            current_frame=self._current_frame,
            crop_start=self._crop_start,
            crop_end=self._crop_end,
            sequence_end=self._sequence_end,
            playing=self._playing,
            looping=self._looping,
            step_duration_ms=self._step_duration_ms,
            accumulated_ms=self._accumulated_ms,
            last_tick_ms=self._last_tick_ms,
        )

    def frame_time(self, index: int) -> Optional[float]:
        """Sample time (seconds) of frame ``index``, or None if out of range."""
        if 0 <= index < len(self._dataset.frames):
            return self._dataset.frames[index].time
        return None

    # --------------------------------------------------------------- commands

    def load(self, dataset: Optional[MarkerDataset]) -> None:
        """Replace the dataset and reset the crop window to the full sequence."""
        self._dataset = dataset if dataset is not None else MarkerDataset()
        self._sequence_end = self._dataset.sequence_end
        self._crop_start = 0
        self._crop_end = self._sequence_end
        self._current_frame = min(max(self._current_frame, self._crop_start), self._crop_end)

        step = self._dataset.step_duration_seconds
        if step is None or step <= 0:
            # Fewer than two frames, or duplicate leading times: no native rate
            self._step_duration_ms = None
        else:
            self._step_duration_ms = step * MILLIS_PER_SECOND
        self._accumulated_ms = 0.0
        self._last_tick_ms = None

        if self._step_duration_ms is None:
            logger.info(
                f"Loaded {self._dataset.frame_count} frames; playback disabled (no sample interval)"
            )
        else:
            logger.info(
                f"Loaded {self._dataset.frame_count} frames, sequence end {self._sequence_end}, "
                f"step {self._step_duration_ms:.3f} ms"
            )

    def play(self) -> None:
        if not self._playing:
            self.toggle_playing()

    def pause(self) -> None:
        if self._playing:
            self.toggle_playing()

    def toggle_playing(self) -> bool:
        """Flip between playing and paused; returns the new ``playing`` flag."""
        if self._playing:
            self._playing = False
            # The paused interval must not count as elapsed time on resume
            self._last_tick_ms = None
        else:
            if self._current_frame >= self._crop_end:
                self._current_frame = self._crop_start
            self._playing = True
        return self._playing

    def set_looping(self, looping: bool) -> None:
        self._looping = bool(looping)

    def tick(self, timestamp_ms: float) -> int:
        """
        Advance playback to ``timestamp_ms``.

        Args:
            timestamp_ms: Monotonic display timestamp in milliseconds

        Returns:
            int: Number of frame steps taken (wraps included)
        """
        if self._step_duration_ms is None or not self._playing:
            return 0

        step = self._step_duration_ms
        elapsed = 0.0 if self._last_tick_ms is None else max(timestamp_ms - self._last_tick_ms, 0.0)
        self._accumulated_ms += elapsed

        advanced = 0
        while self._accumulated_ms > step:
            if self._current_frame + 1 <= self._crop_end:
                self._current_frame += 1
            elif self._looping:
                self._current_frame = self._crop_start
            else:
                self._stop_at_end()
                return advanced
            self._accumulated_ms -= step
            advanced += 1

        self._last_tick_ms = timestamp_ms
        return advanced

    def _stop_at_end(self) -> None:
        self._playing = False
        # Leftover time belongs to the finished run; a replay starts from zero
        self._accumulated_ms = 0.0
        self._last_tick_ms = None
        logger.debug(f"Playback stopped at crop end {self._crop_end}")

    def seek(self, target) -> bool:
        """
        Move the current frame toward ``target``.

        Inside the crop window the frame is set directly. Beyond a window
        boundary the frame moves one step toward that boundary if it can,
        which lets a scrub control creep up to the edge; otherwise the seek
        is ignored.

        Returns:
            bool: True if the current frame changed or was set
        """
        frame = _as_frame(target)
        if frame is None:
            return False
        if self._crop_start <= frame <= self._crop_end:
            self._current_frame = frame
            return True
        if frame < self._crop_start and self._current_frame - 1 >= self._crop_start:
            self._current_frame -= 1
            return True
        if frame > self._crop_end and self._current_frame + 1 <= self._crop_end:
            self._current_frame += 1
            return True
        return False

    def set_crop_start(self, value) -> bool:
        frame = _as_frame(value)
        if frame is None or not (0 <= frame < self._crop_end):
            logger.debug(f"Rejected crop start {value!r}")
            return False
        self._crop_start = frame
        if frame > self._current_frame:
            self._current_frame = frame
        return True

    def set_crop_end(self, value) -> bool:
        frame = _as_frame(value)
        if frame is None or not (self._crop_start < frame <= self._sequence_end):
            logger.debug(f"Rejected crop end {value!r}")
            return False
        self._crop_end = frame
        if frame < self._current_frame:
            self._current_frame = frame
        return True

    def reset_crop(self) -> None:
        self._crop_start = 0
        self._crop_end = self._sequence_end

    def __repr__(self) -> str:
        return (f"TimelineController(frame={self._current_frame}, "
                f"crop=[{self._crop_start}, {self._crop_end}], "
                f"end={self._sequence_end}, playing={self._playing})")
