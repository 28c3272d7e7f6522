"""
Plain records describing the building model as seen by the core.

The records are what a Model Store hands out; they carry geometry and
relations (type, host, owner view) by reference, never by object link, so a
store can hand out copies freely.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from section_frames.geometry.bounding_box import BoundingBox
from section_frames.geometry.vectors import Vector3, as_vector

EntityRef = str


class PlacementStrategy(Enum):
    """How instances of a type are placed (family placement type)."""
    ONE_LEVEL = "one_level"
    TWO_LEVELS = "two_levels"
    WORK_PLANE = "work_plane"
    CURVE = "curve"
    CURVE_DRIVEN_STRUCTURAL = "curve_driven_structural"
    ONE_LEVEL_HOSTED = "one_level_hosted"
    OTHER = "other"

    @property
    def is_point_based(self) -> bool:
        return self in (
            PlacementStrategy.ONE_LEVEL,
            PlacementStrategy.TWO_LEVELS,
            PlacementStrategy.WORK_PLANE,
        )


class ViewType(Enum):
    SECTION = "section"
    ELEVATION = "elevation"
    FLOOR_PLAN = "floor_plan"
    DETAIL = "detail"


@dataclass(eq=False)
class LocationCurve:
    """Bounded straight location curve."""
    start: Vector3
    end: Vector3

    def __post_init__(self):
        self.start = as_vector(self.start)
        self.end = as_vector(self.end)

    @property
    def vector(self) -> Vector3:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {'start': self.start.tolist(), 'end': self.end.tolist()}


@dataclass(eq=False)
class LocationPoint:
    """Insertion point plus planar rotation about Z (radians)."""
    point: Vector3
    rotation: float = 0.0

    def __post_init__(self):
        self.point = as_vector(self.point)
        self.rotation = float(self.rotation)

    def to_dict(self) -> dict:
        return {'point': self.point.tolist(), 'rotation': self.rotation}


Location = Union[LocationCurve, LocationPoint]


@dataclass(eq=False)
class EntityType:
    """Type (family symbol) shared by many instances."""
    ref: EntityRef
    name: str
    placement: Optional[PlacementStrategy] = None
    bounding_box: Optional[BoundingBox] = None
    parameters: Dict[str, float] = field(default_factory=dict)
    category: Optional[str] = None


@dataclass(eq=False)
class Entity:
    """An addressable spatial object: wall, instance, view proxy, ...

    Attributes:
        owner_view: for derived view proxies, the view the proxy stands for
        view_specific: drawn only in one view (annotations, view proxies)
    """
    ref: EntityRef
    category: Optional[str] = None
    type_ref: Optional[EntityRef] = None
    location: Optional[Location] = None
    bounding_box: Optional[BoundingBox] = None
    parameters: Dict[str, float] = field(default_factory=dict)
    host_ref: Optional[EntityRef] = None
    facing_flipped: bool = False
    facing_orientation: Optional[Vector3] = None
    owner_view: Optional[EntityRef] = None
    view_specific: bool = False
    name: str = ""

    def __post_init__(self):
        if self.facing_orientation is not None:
            self.facing_orientation = as_vector(self.facing_orientation)


@dataclass(eq=False)
class ViewRecord:
    """A section, elevation or plan view.

    `right`, `up` and `view_direction` form the view basis; the section box
    is expressed in that basis (X = right, Y = view, Z = up).
    """
    ref: EntityRef
    name: str
    view_type: ViewType
    origin: Vector3 = field(default_factory=lambda: np.zeros(3))
    right: Vector3 = field(default_factory=lambda: np.array([1.0, 0.0, 0.0]))
    up: Vector3 = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    view_direction: Vector3 = field(default_factory=lambda: np.array([0.0, 1.0, 0.0]))
    section_box: Optional[BoundingBox] = None
    template_ref: Optional[EntityRef] = None
    is_template: bool = False
    level_ref: Optional[EntityRef] = None

    def __post_init__(self):
        self.origin = as_vector(self.origin)
        self.right = as_vector(self.right)
        self.up = as_vector(self.up)
        self.view_direction = as_vector(self.view_direction)


@dataclass(eq=False)
class MarkerRecord:
    """Elevation marker owning up to four elevation views."""
    ref: EntityRef
    location: LocationPoint
    view_slots: Tuple[Optional[EntityRef], ...] = (None, None, None, None)

    MAX_SLOTS = 4

    def __post_init__(self):
        slots = tuple(self.view_slots)
        if len(slots) > self.MAX_SLOTS:
            raise ValueError(f"Marker {self.ref} has more than {self.MAX_SLOTS} views")
        self.view_slots = slots + (None,) * (self.MAX_SLOTS - len(slots))

    def view_at(self, index: int) -> Optional[EntityRef]:
        return self.view_slots[index]

    def owns_view(self, view_ref: EntityRef) -> bool:
        return any(self.view_at(i) == view_ref for i in range(self.MAX_SLOTS))


@dataclass(eq=False)
class Level:
    ref: EntityRef
    name: str
    elevation: float = 0.0


@dataclass(eq=False)
class Viewport:
    view_ref: EntityRef
    position: Tuple[float, float]


@dataclass(eq=False)
class SheetRecord:
    ref: EntityRef
    number: str
    name: str = ""
    title_block: Optional[str] = None
    viewports: List[Viewport] = field(default_factory=list)
