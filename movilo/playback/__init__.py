"""
Playback timeline and dataset loading.
"""

from .timeline import TimelineController, TimelineState
from .loader import DatasetSlot, SlotState
from .session import PlaybackSession, SessionSnapshot

__all__ = [
    "TimelineController",
    "TimelineState",
    "DatasetSlot",
    "SlotState",
    "PlaybackSession",
    "SessionSnapshot"
]
