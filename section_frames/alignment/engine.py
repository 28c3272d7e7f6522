"""
Make-parallel alignment of a target entity to a reference entity.

Planning:
    1. directions of both entities (view proxies use their view's right direction)
    2. both projected onto the horizontal plane
    3. angle = angle between target and reference
    4. angle > pi/2 is replaced by angle - pi: turning the other way by the
       supplement also makes the two parallel, with less rotation
    5. rotation axis = target x reference through the target origin
    6. the entity that actually receives the rotation: the elevation marker
       owning the view when the target is an elevation view proxy, the
       target itself otherwise

Applying a plan is one `rotate` inside one store transaction.

No function here raises; failures come back as `AlignmentOutcome` values.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from section_frames.frames.inference import direction_from_placement, origin_from_placement
from section_frames.frames.placement import (
    Placement,
    ViewProxyPlacement,
    resolve_placement,
)
from section_frames.geometry.vectors import (
    Vector3,
    angle_between,
    project_to_plane_xy,
    rotation_axis,
)
from section_frames.model.entities import EntityRef, ViewType
from section_frames.model.store import ModelStore, ModelStoreError
from section_frames.project_config import AlignmentConfig

logger = logging.getLogger(__name__)


class AlignmentFailure(Enum):
    NO_DIRECTION = "no_direction"
    NO_ORIGIN = "no_origin"
    NOT_ROTATABLE = "not_rotatable"
    MUTATION_FAILED = "mutation_failed"


@dataclass(frozen=True, eq=False)
class AlignmentPlan:
    """Rotation that makes the target parallel to the reference."""
    axis_origin: Vector3
    axis_direction: Vector3
    rotation_angle_radians: float
    rotatable_proxy_ref: EntityRef

    @property
    def rotation_angle_degrees(self) -> float:
        return math.degrees(self.rotation_angle_radians)

    def to_dict(self) -> dict:
        return {
            'axis_origin': self.axis_origin.tolist(),
            'axis_direction': self.axis_direction.tolist(),
            'rotation_angle_radians': self.rotation_angle_radians,
            'rotation_angle_degrees': self.rotation_angle_degrees,
            'rotatable_proxy_ref': self.rotatable_proxy_ref,
        }


@dataclass(eq=False)
class AlignmentOutcome:
    """Plan or failure of one alignment request."""
    plan: Optional[AlignmentPlan] = None
    failure: Optional[AlignmentFailure] = None
    message: str = ""
    applied: bool = False

    @property
    def success(self) -> bool:
        return self.failure is None and self.plan is not None

    @property
    def status(self) -> str:
        return "OK" if self.success else f"FAILED ({self.failure.value})"

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'applied': self.applied,
            'failure': self.failure.value if self.failure else None,
            'message': self.message,
            'plan': self.plan.to_dict() if self.plan else None,
        }


def _failed(failure: AlignmentFailure, message: str) -> AlignmentOutcome:
    logger.warning("Alignment failed (%s): %s", failure.value, message)
    return AlignmentOutcome(failure=failure, message=message)


def minimal_rotation_angle(target_xy: Vector3, reference_xy: Vector3) -> float:
    """Angle to turn the target by; in (-pi/2, pi/2]."""
    angle = angle_between(target_xy, reference_xy)
    if angle > math.pi / 2:
        angle -= math.pi
    return angle


def find_owning_marker(view_ref: EntityRef, context: ModelStore) -> Optional[EntityRef]:
    """Marker listing `view_ref` among its view slots, if any."""
    for marker in context.markers():
        if marker.owns_view(view_ref):
            return marker.ref
    return None


def resolve_rotatable_proxy(placement: Placement, context: ModelStore) -> Optional[EntityRef]:
    """Entity that must receive the rotation for `placement`.

    Elevation views have no location of their own; their marker does.
    """
    if isinstance(placement, ViewProxyPlacement) and placement.view.view_type is ViewType.ELEVATION:
        marker_ref = find_owning_marker(placement.view.ref, context)
        if marker_ref is None:
            logger.debug("No marker owns elevation view %s", placement.view.ref)
        return marker_ref
    return placement.entity.ref


def plan_alignment(
    reference_ref: EntityRef,
    target_ref: EntityRef,
    context: ModelStore,
) -> AlignmentOutcome:
    """Compute the rotation that makes `target_ref` parallel to `reference_ref`."""
    try:
        reference = resolve_placement(reference_ref, context)
        target = resolve_placement(target_ref, context)
    except ModelStoreError as e:
        return _failed(AlignmentFailure.NO_DIRECTION, str(e))

    reference_direction = direction_from_placement(reference)
    target_direction = direction_from_placement(target)
    if reference_direction is None or target_direction is None:
        missing = reference_ref if reference_direction is None else target_ref
        return _failed(AlignmentFailure.NO_DIRECTION, f"No direction for {missing}")

    reference_xy = project_to_plane_xy(reference_direction)
    target_xy = project_to_plane_xy(target_direction)
    angle = minimal_rotation_angle(target_xy, reference_xy)
    normal = np.cross(target_xy, reference_xy)

    origin = origin_from_placement(target)
    if origin is None:
        return _failed(AlignmentFailure.NO_ORIGIN, f"No origin for {target_ref}")
    axis = rotation_axis(origin, normal)

    proxy_ref = resolve_rotatable_proxy(target, context)
    if proxy_ref is None or not context.has_location(proxy_ref):
        return _failed(
            AlignmentFailure.NOT_ROTATABLE,
            f"{target_ref} cannot be rotated (no location)",
        )

    plan = AlignmentPlan(
        axis_origin=axis.origin,
        axis_direction=normal,
        rotation_angle_radians=angle,
        rotatable_proxy_ref=proxy_ref,
    )
    logger.debug(
        "Alignment plan: rotate %s by %.2f deg about %s",
        proxy_ref, plan.rotation_angle_degrees, axis.direction.tolist(),
    )
    return AlignmentOutcome(plan=plan)


def apply_alignment(plan: AlignmentPlan, context: ModelStore) -> AlignmentOutcome:
    """Rotate the plan's proxy in one transaction.

    A store failure rolls the transaction back and is reported as
    MUTATION_FAILED.
    """
    axis = rotation_axis(plan.axis_origin, plan.axis_direction)
    try:
        with context.transaction("Make Parallel"):
            context.rotate(plan.rotatable_proxy_ref, axis, plan.rotation_angle_radians)
    except ModelStoreError as e:
        outcome = _failed(AlignmentFailure.MUTATION_FAILED, str(e))
        outcome.plan = plan
        return outcome

    logger.info(
        "Rotated %s by %.1f degrees",
        plan.rotatable_proxy_ref, abs(plan.rotation_angle_degrees),
    )
    return AlignmentOutcome(plan=plan, applied=True,
                            message=f"Rotated by {abs(plan.rotation_angle_degrees):.1f} degrees")


def make_parallel(
    reference_ref: EntityRef,
    target_ref: EntityRef,
    context: ModelStore,
    config: Optional[AlignmentConfig] = None,
) -> AlignmentOutcome:
    """Plan and apply one alignment.

    When the two entities are already parallel within the configured
    tolerance and `skip_if_parallel` is set, nothing is rotated.
    """
    config = config or AlignmentConfig()
    outcome = plan_alignment(reference_ref, target_ref, context)
    if not outcome.success:
        return outcome

    plan = outcome.plan
    if config.skip_if_parallel and abs(plan.rotation_angle_radians) < config.parallel_tolerance:
        logger.info("%s is already parallel to %s", target_ref, reference_ref)
        return AlignmentOutcome(plan=plan, message="Already parallel")

    return apply_alignment(plan, context)
