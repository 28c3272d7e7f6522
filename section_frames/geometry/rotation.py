"""
Rigid rotations of model geometry.

Provides:
- Rotation3D, a 3x3 orthogonal matrix built from an axis and an angle
- LineRotation, rotation about an arbitrary line (pivot + direction), used
  by the in-memory model store to carry out `rotate` mutations
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from section_frames.geometry.bounding_box import BoundingBox
from section_frames.geometry.vectors import AxisLine, Vector3, VectorLike, as_vector


@dataclass(eq=False)
class Rotation3D:
    """3D rotation represented as a rotation matrix.

    Attributes:
        matrix: 3x3 orthogonal rotation matrix (det = +1)
    """
    matrix: NDArray[np.float64]

    def __post_init__(self):
        self.matrix = np.asarray(self.matrix, dtype=np.float64)
        if self.matrix.shape != (3, 3):
            raise ValueError(f"Rotation matrix must be 3x3, got {self.matrix.shape}")

    @classmethod
    def from_axis_angle(cls, axis: VectorLike, angle_rad: float) -> 'Rotation3D':
        """Right-handed rotation about `axis` (Rodrigues' formula).

        Args:
            axis: rotation axis, normalized here
            angle_rad: rotation angle in radians

        Raises:
            ValueError: zero-length axis
        """
        axis = as_vector(axis)
        norm = np.linalg.norm(axis)
        if norm < 1e-12:
            raise ValueError("Rotation axis has zero length")
        x, y, z = axis / norm

        c = np.cos(angle_rad)
        s = np.sin(angle_rad)
        t = 1 - c

        matrix = np.array([
            [t*x*x + c,   t*x*y - s*z, t*x*z + s*y],
            [t*x*y + s*z, t*y*y + c,   t*y*z - s*x],
            [t*x*z - s*y, t*y*z + s*x, t*z*z + c],
        ])
        return cls(matrix)

    def apply(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Rotate a single vector or an Nx3 array of vectors about the origin."""
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            return self.matrix @ points
        return points @ self.matrix.T


@dataclass(eq=False)
class LineRotation:
    """Rotation by `angle` about an axis line not necessarily through the origin."""
    axis: AxisLine
    angle: float

    def __post_init__(self):
        self.rotation = Rotation3D.from_axis_angle(self.axis.direction, self.angle)

    def apply_point(self, point: VectorLike) -> Vector3:
        p = as_vector(point)
        return self.rotation.apply(p - self.axis.origin) + self.axis.origin

    def apply_direction(self, vector: VectorLike) -> Vector3:
        return self.rotation.apply(as_vector(vector))

    def apply_box(self, box: BoundingBox) -> BoundingBox:
        """Axis-aligned box enclosing the rotated corners of `box`."""
        corners = box.corners() - self.axis.origin
        rotated = self.rotation.apply(corners) + self.axis.origin
        return BoundingBox.from_points(rotated)

    @property
    def planar_angle(self) -> float:
        """Signed rotation about +Z (0 when the axis is not vertical)."""
        direction = self.axis.direction
        if abs(abs(direction[2]) - 1.0) > 1e-9:
            return 0.0
        return self.angle if direction[2] > 0 else -self.angle
