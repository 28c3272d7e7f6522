"""Building model records and the Model Store interface."""

from section_frames.model.entities import (
    Entity,
    EntityRef,
    EntityType,
    Level,
    LocationCurve,
    LocationPoint,
    MarkerRecord,
    PlacementStrategy,
    SheetRecord,
    ViewRecord,
    ViewType,
    Viewport,
)
from section_frames.model.store import (
    DuplicateNameError,
    EntityNotFoundError,
    InMemoryModelStore,
    ModelStore,
    ModelStoreError,
    NotRotatableError,
    TransactionError,
)

__all__ = [
    "Entity",
    "EntityRef",
    "EntityType",
    "Level",
    "LocationCurve",
    "LocationPoint",
    "MarkerRecord",
    "PlacementStrategy",
    "SheetRecord",
    "ViewRecord",
    "ViewType",
    "Viewport",
    "DuplicateNameError",
    "EntityNotFoundError",
    "InMemoryModelStore",
    "ModelStore",
    "ModelStoreError",
    "NotRotatableError",
    "TransactionError",
]
