"""
Axis-aligned bounding volume of a model entity or entity type.

Extent convention used throughout frame inference:
    width  = X extent
    depth  = Y extent
    height = Z extent
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
from numpy.typing import NDArray

from section_frames.geometry.vectors import Vector3, VectorLike, as_vector


@dataclass(frozen=True, eq=False)
class BoundingBox:
    """Axis-aligned box given by its minimum and maximum corners."""
    min_point: Vector3
    max_point: Vector3

    def __post_init__(self):
        lo = as_vector(self.min_point)
        hi = as_vector(self.max_point)
        if np.any(lo > hi):
            raise ValueError(f"Bounding box min {lo.tolist()} exceeds max {hi.tolist()}")
        object.__setattr__(self, 'min_point', lo)
        object.__setattr__(self, 'max_point', hi)

    @classmethod
    def from_points(cls, points: Iterable[VectorLike]) -> 'BoundingBox':
        pts = np.asarray(list(points), dtype=np.float64)
        if pts.ndim != 2 or pts.shape[0] == 0 or pts.shape[1] != 3:
            raise ValueError("from_points needs at least one 3D point")
        return cls(pts.min(axis=0), pts.max(axis=0))

    @property
    def dimensions(self) -> Vector3:
        return self.max_point - self.min_point

    @property
    def width(self) -> float:
        """X extent."""
        return float(self.dimensions[0])

    @property
    def depth(self) -> float:
        """Y extent."""
        return float(self.dimensions[1])

    @property
    def height(self) -> float:
        """Z extent."""
        return float(self.dimensions[2])

    @property
    def center(self) -> Vector3:
        return (self.min_point + self.max_point) / 2.0

    def x_axis_vector(self) -> Vector3:
        """Vector from min-X to max-X taken at mid-Y, min-Z."""
        mid_y = (self.min_point[1] + self.max_point[1]) / 2.0
        start = np.array([self.min_point[0], mid_y, self.min_point[2]])
        end = np.array([self.max_point[0], mid_y, self.min_point[2]])
        return end - start

    def corners(self) -> NDArray[np.float64]:
        """8x3 array of corner points."""
        lo, hi = self.min_point, self.max_point
        return np.array([
            [x, y, z]
            for x in (lo[0], hi[0])
            for y in (lo[1], hi[1])
            for z in (lo[2], hi[2])
        ])

    def to_dict(self) -> dict:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['BoundingBox']:
        if not data:
            return None
        return cls(as_vector(data['min']), as_vector(data['max']))
