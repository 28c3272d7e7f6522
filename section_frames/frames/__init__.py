"""Frame inference: placement classification and frame measurement."""

from section_frames.frames.inference import (
    Frame,
    entity_direction,
    entity_origin,
    infer_frame,
)
from section_frames.frames.placement import (
    Placement,
    PlacementKind,
    classify,
    resolve_placement,
)

__all__ = [
    "Frame",
    "entity_direction",
    "entity_origin",
    "infer_frame",
    "Placement",
    "PlacementKind",
    "classify",
    "resolve_placement",
]
