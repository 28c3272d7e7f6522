"""
Frame inference: one canonical local frame per entity.

A frame is (origin, direction, width, height, depth). How it is measured
depends on the entity's placement kind:

    CURVE_BASED           origin = instance box center, direction = end - start,
                          width = |direction|, height = height parameter or default
    POINT_BASED           extents and X axis of the type box (instance box if the
                          type has none), X axis turned by the location rotation
    HOSTED_ON_CURVE_HOST  direction along the host curve (reversed when facing is
                          flipped), origin on the host curve next to the instance
    BOUNDED_VOLUME_ONLY   instance box center and X axis, type box extents
    DERIVED_VIEW_PROXY    measured like a bounded volume

Extents follow the box convention width = X, height = Z, depth = Y.

`infer_frame` never raises for a malformed entity; it returns an invalid
frame instead so batch callers can count and skip it.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from section_frames.geometry.bounding_box import BoundingBox
from section_frames.geometry.vectors import (
    ZERO_LENGTH,
    Vector3,
    closest_point_on_segment,
    rotate,
)
from section_frames.frames.placement import (
    BoundedVolumePlacement,
    CurvePlacement,
    HostedPlacement,
    Placement,
    PlacementKind,
    PointPlacement,
    ViewProxyPlacement,
    resolve_placement,
)
from section_frames.model.entities import EntityRef, LocationPoint
from section_frames.model.store import ModelStore, ModelStoreError
from section_frames.project_config import FramesConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Frame:
    """Local reference frame of an entity.

    When `valid` is False the geometric fields carry no meaning; `reason`
    says why the frame could not be measured.
    """
    origin: Optional[Vector3]
    direction: Optional[Vector3]
    width: float = 0.0
    height: float = 0.0
    depth: float = 0.0
    valid: bool = True
    kind: Optional[PlacementKind] = None
    reason: str = ""

    @classmethod
    def invalid(cls, reason: str, kind: Optional[PlacementKind] = None) -> 'Frame':
        return cls(origin=None, direction=None, valid=False, kind=kind, reason=reason)

    def is_degenerate(self, tolerance: float = ZERO_LENGTH) -> bool:
        """True for invalid frames and frames without a usable direction."""
        if not self.valid or self.direction is None:
            return True
        return float(np.linalg.norm(self.direction)) < tolerance

    def to_dict(self) -> dict:
        if not self.valid:
            return {'valid': False, 'reason': self.reason,
                    'kind': self.kind.value if self.kind else None}
        return {
            'valid': True,
            'kind': self.kind.value if self.kind else None,
            'origin': self.origin.tolist(),
            'direction': self.direction.tolist(),
            'width': self.width,
            'height': self.height,
            'depth': self.depth,
        }


def _extents_source(placement: Placement) -> BoundingBox:
    """Type box when the type has one, otherwise the instance box."""
    entity_type = placement.entity_type
    if entity_type is not None and entity_type.bounding_box is not None:
        return entity_type.bounding_box
    return placement.entity.bounding_box


def _height_parameter(placement: CurvePlacement, config: FramesConfig) -> float:
    name = config.height_parameter
    for owner in (placement.entity, placement.entity_type):
        if owner is None:
            continue
        value = owner.parameters.get(name)
        if value is not None:
            try:
                return float(value)
            except (TypeError, ValueError):
                logger.debug("Parameter %s of %s is not numeric: %r", name, owner.ref, value)
    return config.default_height


def _curve_frame(placement: CurvePlacement, box: BoundingBox, config: FramesConfig) -> Frame:
    direction = placement.curve.vector
    return Frame(
        origin=box.center,
        direction=direction,
        width=float(np.linalg.norm(direction)),
        height=_height_parameter(placement, config),
        depth=0.0,
        kind=placement.kind,
    )


def _point_frame(placement: PointPlacement, box: BoundingBox, config: FramesConfig) -> Frame:
    source = _extents_source(placement)
    direction = source.x_axis_vector()
    if placement.location is not None:
        direction = rotate(direction, placement.location.rotation)
    return Frame(
        origin=box.center,
        direction=direction,
        width=source.width,
        height=source.height,
        depth=source.depth,
        kind=placement.kind,
    )


def _hosted_frame(placement: HostedPlacement, box: BoundingBox, config: FramesConfig) -> Frame:
    curve = placement.host_curve
    direction = curve.vector
    if placement.entity.facing_flipped:
        direction = -direction

    center = box.center
    origin = closest_point_on_segment(center, curve.start, curve.end)
    origin[2] = center[2]

    source = _extents_source(placement)
    return Frame(
        origin=origin,
        direction=direction,
        width=source.width,
        height=source.height,
        depth=0.0,
        kind=placement.kind,
    )


def _bounded_frame(placement: Placement, box: BoundingBox, config: FramesConfig) -> Frame:
    source = _extents_source(placement)
    return Frame(
        origin=box.center,
        direction=box.x_axis_vector(),
        width=source.width,
        height=source.height,
        depth=source.depth,
        kind=placement.kind,
    )


_FRAME_BUILDERS: Dict[PlacementKind, Callable[..., Frame]] = {
    PlacementKind.CURVE_BASED: _curve_frame,
    PlacementKind.POINT_BASED: _point_frame,
    PlacementKind.HOSTED_ON_CURVE_HOST: _hosted_frame,
    PlacementKind.BOUNDED_VOLUME_ONLY: _bounded_frame,
    PlacementKind.DERIVED_VIEW_PROXY: _bounded_frame,
}


def frame_from_placement(placement: Placement, config: Optional[FramesConfig] = None) -> Frame:
    """Measure a classified entity.

    A kind-specific measurement that fails falls back to the bounded-volume
    measurement of the same entity.
    """
    config = config or FramesConfig()
    box = placement.entity.bounding_box
    if box is None:
        return Frame.invalid("no bounding box", kind=placement.kind)

    builder = _FRAME_BUILDERS[placement.kind]
    try:
        return builder(placement, box, config)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(
            "%s measurement failed for %s (%s), using bounding box",
            placement.kind.value, placement.entity.ref, e,
        )
        fallback = BoundedVolumePlacement(placement.entity, placement.entity_type)
        return _bounded_frame(fallback, box, config)


def infer_frame(
    entity_ref: EntityRef,
    context: ModelStore,
    config: Optional[FramesConfig] = None,
) -> Frame:
    """Infer the local frame of an entity.

    Args:
        entity_ref: entity to measure
        context: model store the entity lives in
        config: frame inference settings (defaults when None)

    Returns:
        Frame; `valid` is False when no bounding information exists or the
        entity cannot be read at all
    """
    try:
        placement = resolve_placement(entity_ref, context)
    except ModelStoreError as e:
        logger.warning("Cannot read entity %s: %s", entity_ref, e)
        return Frame.invalid(str(e))

    frame = frame_from_placement(placement, config)
    if frame.valid:
        logger.debug(
            "Frame for %s: kind=%s width=%.3f height=%.3f depth=%.3f",
            entity_ref, placement.kind.value, frame.width, frame.height, frame.depth,
        )
    else:
        logger.info("No frame for %s: %s", entity_ref, frame.reason)
    return frame


# ---------------------------------------------------------------------------
# Direction and origin used by alignment
# ---------------------------------------------------------------------------

def _nonzero(vector: Optional[Vector3]) -> Optional[Vector3]:
    if vector is None or float(np.linalg.norm(vector)) < ZERO_LENGTH:
        return None
    return np.asarray(vector, dtype=np.float64).copy()


def direction_from_placement(placement: Placement) -> Optional[Vector3]:
    """Principal direction of a classified entity, None when unobtainable.

    View proxies answer with the right direction of the view they stand
    for; instances that carry a facing orientation answer with it.
    """
    if isinstance(placement, ViewProxyPlacement):
        return _nonzero(placement.view.right)
    if isinstance(placement, CurvePlacement):
        return _nonzero(placement.curve.vector)
    if isinstance(placement, HostedPlacement):
        vector = placement.host_curve.vector
        return _nonzero(-vector if placement.entity.facing_flipped else vector)

    if placement.entity.facing_orientation is not None:
        return _nonzero(placement.entity.facing_orientation)

    if isinstance(placement, PointPlacement) and placement.entity.bounding_box is None:
        # no instance box: the type box alone still gives a direction
        source = placement.entity_type.bounding_box
        if source is None:
            return None
        direction = source.x_axis_vector()
        if placement.location is not None:
            direction = rotate(direction, placement.location.rotation)
        return _nonzero(direction)

    frame = frame_from_placement(placement)
    return None if frame.is_degenerate() else _nonzero(frame.direction)


def origin_from_placement(placement: Placement) -> Optional[Vector3]:
    """Rotation origin of a classified entity, None when unobtainable."""
    if isinstance(placement, ViewProxyPlacement):
        return placement.view.origin.copy()
    if isinstance(placement, CurvePlacement):
        return placement.curve.start.copy()
    location = placement.entity.location
    if isinstance(location, LocationPoint):
        return location.point.copy()
    box = placement.entity.bounding_box
    if box is not None:
        return box.center
    return None


def entity_direction(entity_ref: EntityRef, context: ModelStore) -> Optional[Vector3]:
    """Direction of an entity for alignment, or None."""
    try:
        return direction_from_placement(resolve_placement(entity_ref, context))
    except (ModelStoreError, ValueError) as e:
        logger.debug("No direction for %s: %s", entity_ref, e)
        return None


def entity_origin(entity_ref: EntityRef, context: ModelStore) -> Optional[Vector3]:
    """Origin of an entity for alignment, or None."""
    try:
        return origin_from_placement(resolve_placement(entity_ref, context))
    except (ModelStoreError, ValueError) as e:
        logger.debug("No origin for %s: %s", entity_ref, e)
        return None
