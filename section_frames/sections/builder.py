"""
Section frame building: from an entity frame to a section box and a
look-at transform.

Two orientations are produced from the frame direction d and world up Z:

    elevation       looks along d:      view = d, up = Z, right = view x up
    cross-section   looks across d:     right = d, view = Z x right, up = Z

In both cases (right, up, -view) is a right-handed basis, i.e. `right` is
the screen right of an observer looking along `view`.

The section box is expressed in the view's own axes (X = right,
Y = view/depth, Z = up) and centered on the local origin; the world
placement is carried separately by the look-at transform.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from section_frames.frames.inference import Frame
from section_frames.geometry.bounding_box import BoundingBox
from section_frames.geometry.vectors import WORLD_UP, Vector3, VectorLike, as_vector, normalize


@dataclass(frozen=True, eq=False)
class SectionSpec:
    """Orthonormal view basis plus section box half extents."""
    right_direction: Vector3
    up_direction: Vector3
    view_direction: Vector3
    half_width: float
    half_height: float
    half_depth: float

    def section_box(self) -> BoundingBox:
        """Box in local view axes: X = right, Y = view, Z = up."""
        return BoundingBox(
            np.array([-self.half_width, -self.half_depth, -self.half_height]),
            np.array([self.half_width, self.half_depth, self.half_height]),
        )

    def to_dict(self) -> dict:
        return {
            'right_direction': self.right_direction.tolist(),
            'up_direction': self.up_direction.tolist(),
            'view_direction': self.view_direction.tolist(),
            'half_width': self.half_width,
            'half_height': self.half_height,
            'half_depth': self.half_depth,
        }


@dataclass(frozen=True, eq=False)
class ViewTransform:
    """Look-at placement of a view: eye at `origin`, looking along `view_direction`."""
    origin: Vector3
    right: Vector3
    up: Vector3
    view_direction: Vector3

    @property
    def matrix(self) -> NDArray[np.float64]:
        """4x4 local-to-world matrix; columns are right, view, up, origin."""
        m = np.eye(4)
        m[:3, 0] = self.right
        m[:3, 1] = self.view_direction
        m[:3, 2] = self.up
        m[:3, 3] = self.origin
        return m

    def to_world(self, local_point: VectorLike) -> Vector3:
        p = as_vector(local_point)
        return self.origin + p[0] * self.right + p[1] * self.view_direction + p[2] * self.up


def look_at(origin: VectorLike, target: VectorLike, up: VectorLike = WORLD_UP) -> ViewTransform:
    """Transform with its eye at `origin` looking toward `target`.

    Raises:
        ValueError: target coincides with origin, or looks straight along `up`
    """
    eye = as_vector(origin)
    view = normalize(as_vector(target) - eye)
    right = normalize(np.cross(view, as_vector(up)))
    true_up = np.cross(right, view)
    return ViewTransform(origin=eye, right=right, up=true_up, view_direction=view)


def _checked_direction(frame: Frame) -> Vector3:
    if frame.is_degenerate():
        raise ValueError(
            f"Cannot build a section from an invalid or degenerate frame ({frame.reason or 'zero direction'})"
        )
    return normalize(frame.direction)


def _half_extents(frame: Frame, offset: float, depth_offset: float):
    return (
        frame.width / 2.0 + offset,
        frame.height / 2.0 + offset,
        frame.depth / 2.0 + depth_offset,
    )


def build_elevation_spec(frame: Frame, offset: float = 1.0, depth_offset: float = 1.0) -> SectionSpec:
    """Section looking along the frame direction.

    Raises:
        ValueError: frame is invalid or has no usable direction
    """
    view = _checked_direction(frame)
    up = WORLD_UP.copy()
    right = normalize(np.cross(view, up))
    half_width, half_height, half_depth = _half_extents(frame, offset, depth_offset)
    return SectionSpec(right, up, view, half_width, half_height, half_depth)


def build_cross_section_spec(frame: Frame, offset: float = 1.0, depth_offset: float = 1.0) -> SectionSpec:
    """Section looking across the frame direction.

    Raises:
        ValueError: frame is invalid or has no usable direction
    """
    right = _checked_direction(frame)
    up = WORLD_UP.copy()
    view = normalize(np.cross(up, right))
    half_width, half_height, half_depth = _half_extents(frame, offset, depth_offset)
    return SectionSpec(right, up, view, half_width, half_height, half_depth)


def section_transform(frame: Frame, spec: SectionSpec) -> ViewTransform:
    """Place `spec` at the frame origin, looking along its view direction."""
    if not frame.valid or frame.origin is None:
        raise ValueError("Frame has no origin")
    return look_at(frame.origin, frame.origin + spec.view_direction, spec.up_direction)
