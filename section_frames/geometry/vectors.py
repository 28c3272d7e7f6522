"""
Vector helpers shared by frame inference, section building and alignment.

All functions are pure and accept anything numpy can turn into a length-3
float vector; results are fresh float64 arrays.

Degenerate inputs never raise except in `normalize`:
- `angle_between` returns 0.0 for a zero-length input
- `are_parallel` reports True when either input is zero-length (the cross
  product vanishes), which is defined but not geometrically meaningful
- `rotation_axis` falls back to the world Z axis for a zero-length normal
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

Vector3 = NDArray[np.float64]
VectorLike = Union[Vector3, Sequence[float]]

# Below this length a vector has no usable direction.
ZERO_LENGTH = 1e-9

WORLD_UP: Vector3 = np.array([0.0, 0.0, 1.0])


def as_vector(value: VectorLike) -> Vector3:
    """Coerce a sequence to a length-3 float64 vector."""
    vec = np.asarray(value, dtype=np.float64)
    if vec.shape != (3,):
        raise ValueError(f"Expected a 3D vector, got shape {vec.shape}")
    return vec.copy()


def length(v: VectorLike) -> float:
    return float(np.linalg.norm(np.asarray(v, dtype=np.float64)))


def is_zero(v: VectorLike, tolerance: float = ZERO_LENGTH) -> bool:
    return length(v) < tolerance


def normalize(v: VectorLike) -> Vector3:
    """Unit vector along `v`.

    Raises:
        ValueError: if `v` has (near) zero length
    """
    vec = as_vector(v)
    norm = np.linalg.norm(vec)
    if norm < ZERO_LENGTH:
        raise ValueError("Cannot normalize a zero-length vector")
    return vec / norm


def rotate(v: VectorLike, angle_rad: float) -> Vector3:
    """Rotate `v` about the Z axis by `angle_rad`; Z is left unchanged."""
    x, y, z = as_vector(v)
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([x * c - y * s, x * s + y * c, z])


def angle_between(v1: VectorLike, v2: VectorLike) -> float:
    """Unsigned angle between two vectors in radians, in [0, pi].

    Returns 0.0 when either vector has zero length.
    """
    a = as_vector(v1)
    b = as_vector(v2)
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na < ZERO_LENGTH or nb < ZERO_LENGTH:
        logger.debug("angle_between called with a zero-length vector")
        return 0.0

    dot = float(np.dot(a / na, b / nb))
    # acos is undefined just outside [-1, 1]
    dot = max(-1.0, min(1.0, dot))
    return math.acos(dot)


def project_to_plane_xy(v: VectorLike) -> Vector3:
    """Drop the Z component."""
    x, y, _ = as_vector(v)
    return np.array([x, y, 0.0])


def are_parallel(v1: VectorLike, v2: VectorLike, tolerance: float = 1e-6) -> bool:
    """True when the cross product of `v1` and `v2` is shorter than `tolerance`.

    Anti-parallel vectors count as parallel. Note the test is on the raw
    cross product, so it scales with the input lengths.
    """
    magnitude = float(np.linalg.norm(np.cross(as_vector(v1), as_vector(v2))))
    # exact zero still counts when tolerance is 0
    return magnitude < tolerance or magnitude == 0.0


@dataclass(frozen=True, eq=False)
class AxisLine:
    """Unbounded line through `origin` along unit `direction`."""
    origin: Vector3
    direction: Vector3

    def point_at(self, t: float) -> Vector3:
        return self.origin + t * self.direction

    def to_dict(self) -> dict:
        return {
            'origin': self.origin.tolist(),
            'direction': self.direction.tolist(),
        }


def rotation_axis(origin: VectorLike, normal: VectorLike) -> AxisLine:
    """Line through `origin` along `normal`.

    A zero-length `normal` (parallel inputs to a cross product) gives the
    vertical axis through `origin`.
    """
    point = as_vector(origin)
    n = as_vector(normal)
    if np.linalg.norm(n) < ZERO_LENGTH:
        logger.debug("Zero-length rotation normal, using vertical axis")
        return AxisLine(origin=point, direction=WORLD_UP.copy())
    return AxisLine(origin=point, direction=normalize(n))


def closest_point_on_segment(point: VectorLike, start: VectorLike, end: VectorLike) -> Vector3:
    """Point of segment [start, end] nearest to `point` (start if degenerate)."""
    p = as_vector(point)
    a = as_vector(start)
    b = as_vector(end)
    ab = b - a
    denom = float(np.dot(ab, ab))
    if denom < ZERO_LENGTH ** 2:
        return a
    t = float(np.clip(np.dot(p - a, ab) / denom, 0.0, 1.0))
    return a + t * ab
