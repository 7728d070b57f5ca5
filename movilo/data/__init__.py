"""
Frame-indexed marker and force-plate datasets.
"""

from .datasets import (
    Point3D, Marker, MarkerFrame, MarkerDataset,
    ForcePlateSample, ForceFrame, ForceDataset
)

__all__ = [
    "Point3D",
    "Marker",
    "MarkerFrame",
    "MarkerDataset",
    "ForcePlateSample",
    "ForceFrame",
    "ForceDataset"
]
