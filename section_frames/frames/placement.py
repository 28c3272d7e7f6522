"""
Placement classification.

Every entity is classified once into exactly one placement kind; the
payload of each kind holds everything the frame and direction extractors
need, so the extractors themselves never go back to the store.

Classification order (first match wins):
    DERIVED_VIEW_PROXY    the entity stands for a view (owner view resolvable)
    CURVE_BASED           location is a bounded curve
    POINT_BASED           type placement is one-level, two-level or work-plane
    HOSTED_ON_CURVE_HOST  host resolves and is itself curve based
    BOUNDED_VOLUME_ONLY   everything else
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from section_frames.model.entities import (
    Entity,
    EntityRef,
    EntityType,
    LocationCurve,
    LocationPoint,
    ViewRecord,
)
from section_frames.model.store import ModelStore, ModelStoreError

logger = logging.getLogger(__name__)


class PlacementKind(Enum):
    CURVE_BASED = "curve_based"
    POINT_BASED = "point_based"
    HOSTED_ON_CURVE_HOST = "hosted_on_curve_host"
    BOUNDED_VOLUME_ONLY = "bounded_volume_only"
    DERIVED_VIEW_PROXY = "derived_view_proxy"


@dataclass(frozen=True, eq=False)
class CurvePlacement:
    kind: ClassVar[PlacementKind] = PlacementKind.CURVE_BASED
    entity: Entity
    entity_type: Optional[EntityType]
    curve: LocationCurve


@dataclass(frozen=True, eq=False)
class PointPlacement:
    kind: ClassVar[PlacementKind] = PlacementKind.POINT_BASED
    entity: Entity
    entity_type: EntityType
    location: Optional[LocationPoint]


@dataclass(frozen=True, eq=False)
class HostedPlacement:
    kind: ClassVar[PlacementKind] = PlacementKind.HOSTED_ON_CURVE_HOST
    entity: Entity
    entity_type: Optional[EntityType]
    host: Entity
    host_curve: LocationCurve


@dataclass(frozen=True, eq=False)
class BoundedVolumePlacement:
    kind: ClassVar[PlacementKind] = PlacementKind.BOUNDED_VOLUME_ONLY
    entity: Entity
    entity_type: Optional[EntityType]


@dataclass(frozen=True, eq=False)
class ViewProxyPlacement:
    kind: ClassVar[PlacementKind] = PlacementKind.DERIVED_VIEW_PROXY
    entity: Entity
    entity_type: Optional[EntityType]
    view: ViewRecord


Placement = Union[
    CurvePlacement,
    PointPlacement,
    HostedPlacement,
    BoundedVolumePlacement,
    ViewProxyPlacement,
]


def _optional_type(entity: Entity, context: ModelStore) -> Optional[EntityType]:
    if entity.type_ref is None:
        return None
    try:
        return context.entity_type(entity.type_ref)
    except ModelStoreError as e:
        logger.debug("Type of %s unavailable: %s", entity.ref, e)
        return None


def _owner_view(entity: Entity, context: ModelStore) -> Optional[ViewRecord]:
    if entity.owner_view is None:
        return None
    try:
        return context.view(entity.owner_view)
    except ModelStoreError as e:
        logger.debug("Owner view of %s unavailable: %s", entity.ref, e)
        return None


def _curve_host(entity: Entity, context: ModelStore) -> Optional[Entity]:
    if entity.host_ref is None:
        return None
    try:
        host = context.entity(entity.host_ref)
    except ModelStoreError as e:
        logger.debug("Host of %s unavailable: %s", entity.ref, e)
        return None
    if not isinstance(host.location, LocationCurve):
        logger.debug("Host %s of %s is not curve based", host.ref, entity.ref)
        return None
    return host


def classify(entity: Entity, context: ModelStore) -> Placement:
    """Classify an already fetched entity."""
    entity_type = _optional_type(entity, context)

    view = _owner_view(entity, context)
    if view is not None:
        return ViewProxyPlacement(entity, entity_type, view)

    if isinstance(entity.location, LocationCurve):
        return CurvePlacement(entity, entity_type, entity.location)

    if (entity_type is not None and entity_type.placement is not None
            and entity_type.placement.is_point_based):
        location = entity.location if isinstance(entity.location, LocationPoint) else None
        return PointPlacement(entity, entity_type, location)

    host = _curve_host(entity, context)
    if host is not None:
        return HostedPlacement(entity, entity_type, host, host.location)

    return BoundedVolumePlacement(entity, entity_type)


def resolve_placement(entity_ref: EntityRef, context: ModelStore) -> Placement:
    """Fetch and classify an entity.

    Raises:
        ModelStoreError: the entity itself cannot be fetched
    """
    placement = classify(context.entity(entity_ref), context)
    logger.debug("Entity %s classified as %s", entity_ref, placement.kind.value)
    return placement
