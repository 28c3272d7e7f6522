"""Geometric primitives: vectors, bounding boxes, rotations."""

from section_frames.geometry.bounding_box import BoundingBox
from section_frames.geometry.rotation import LineRotation, Rotation3D
from section_frames.geometry.vectors import (
    WORLD_UP,
    AxisLine,
    Vector3,
    angle_between,
    are_parallel,
    as_vector,
    normalize,
    project_to_plane_xy,
    rotate,
    rotation_axis,
)

__all__ = [
    "BoundingBox",
    "LineRotation",
    "Rotation3D",
    "WORLD_UP",
    "AxisLine",
    "Vector3",
    "angle_between",
    "are_parallel",
    "as_vector",
    "normalize",
    "project_to_plane_xy",
    "rotate",
    "rotation_axis",
]
