"""
Model Store: read access to the building model plus transactional mutations.

`ModelStore` is the interface the core consumes; every core entry point
receives one explicitly as its model context. `InMemoryModelStore` is the
implementation used by the command line and the tests.

Store methods signal failure by raising `ModelStoreError` subclasses.
Mutations are only allowed inside `transaction()`; leaving the `with`
block through an exception restores the model to its state at entry.
`sub_transaction()` is a savepoint within the open transaction, used to
undo one failed item of a batch without abandoning the rest.
"""

import copy
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ContextManager, Dict, Iterator, List, Optional, Protocol, Tuple

import numpy as np

from section_frames.geometry.rotation import LineRotation
from section_frames.geometry.vectors import AxisLine
from section_frames.model.entities import (
    Entity,
    EntityRef,
    EntityType,
    Level,
    LocationCurve,
    LocationPoint,
    MarkerRecord,
    SheetRecord,
    ViewRecord,
    ViewType,
    Viewport,
)

if TYPE_CHECKING:
    from section_frames.sections.builder import SectionSpec, ViewTransform

logger = logging.getLogger(__name__)


class ModelStoreError(Exception):
    """Base class for errors raised by a model store."""


class EntityNotFoundError(ModelStoreError, KeyError):
    """No entity, type, view, marker or sheet with the given reference."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class DuplicateNameError(ModelStoreError):
    """A view name or sheet number is already in use."""


class TransactionError(ModelStoreError):
    """Mutation outside a transaction, or nested transaction."""


class NotRotatableError(ModelStoreError):
    """The entity has no location that could be rotated."""


class ModelStore(Protocol):
    """What the core needs from the hosting model."""

    def entity(self, ref: EntityRef) -> Entity: ...
    def entity_type(self, ref: EntityRef) -> EntityType: ...
    def view(self, ref: EntityRef) -> ViewRecord: ...
    def markers(self) -> List[MarkerRecord]: ...
    def levels(self) -> List[Level]: ...
    def has_location(self, ref: EntityRef) -> bool: ...
    def default_title_block(self) -> Optional[str]: ...

    def transaction(self, name: str) -> ContextManager[Any]: ...
    def sub_transaction(self, name: str) -> ContextManager[Any]: ...
    def rotate(self, ref: EntityRef, axis: AxisLine, angle: float) -> None: ...
    def create_section_view(self, spec: 'SectionSpec', transform: 'ViewTransform') -> ViewRecord: ...
    def create_plan_view(self, level_ref: EntityRef) -> ViewRecord: ...
    def rename_view(self, ref: EntityRef, name: str) -> None: ...
    def set_view_template(self, view_ref: EntityRef, template_ref: EntityRef) -> None: ...
    def create_sheet(self, title_block: Optional[str]) -> SheetRecord: ...
    def can_place_view_on_sheet(self, sheet_ref: EntityRef, view_ref: EntityRef) -> bool: ...
    def place_view_on_sheet(self, sheet_ref: EntityRef, view_ref: EntityRef,
                            position: Tuple[float, float]) -> Viewport: ...
    def set_sheet_identity(self, sheet_ref: EntityRef, number: str, name: str) -> None: ...


class InMemoryModelStore:
    """Dictionary-backed model with snapshot/rollback transactions."""

    def __init__(self) -> None:
        self._entities: Dict[EntityRef, Entity] = {}
        self._types: Dict[EntityRef, EntityType] = {}
        self._views: Dict[EntityRef, ViewRecord] = {}
        self._markers: Dict[EntityRef, MarkerRecord] = {}
        self._levels: Dict[EntityRef, Level] = {}
        self._sheets: Dict[EntityRef, SheetRecord] = {}
        self._title_blocks: List[str] = []
        self._counter = 0
        self._active_transaction: Optional[str] = None

    # ------------------------------------------------------------------
    # Population (model loading, tests)
    # ------------------------------------------------------------------

    def add_entity(self, entity: Entity) -> Entity:
        self._entities[entity.ref] = entity
        return entity

    def add_type(self, entity_type: EntityType) -> EntityType:
        self._types[entity_type.ref] = entity_type
        return entity_type

    def add_view(self, view: ViewRecord) -> ViewRecord:
        self._ensure_unique_view_name(view.name, exclude=view.ref)
        self._views[view.ref] = view
        return view

    def add_marker(self, marker: MarkerRecord) -> MarkerRecord:
        self._markers[marker.ref] = marker
        return marker

    def add_level(self, level: Level) -> Level:
        self._levels[level.ref] = level
        return level

    def add_sheet(self, sheet: SheetRecord) -> SheetRecord:
        self._sheets[sheet.ref] = sheet
        return sheet

    def add_title_block(self, name: str) -> None:
        self._title_blocks.append(name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def _lookup(table: dict, ref: Optional[EntityRef], what: str):
        if ref is None or ref not in table:
            raise EntityNotFoundError(f"No {what} with reference {ref!r}")
        return table[ref]

    def entity(self, ref: EntityRef) -> Entity:
        return self._lookup(self._entities, ref, "entity")

    def entity_type(self, ref: EntityRef) -> EntityType:
        return self._lookup(self._types, ref, "entity type")

    def view(self, ref: EntityRef) -> ViewRecord:
        return self._lookup(self._views, ref, "view")

    def marker(self, ref: EntityRef) -> MarkerRecord:
        return self._lookup(self._markers, ref, "marker")

    def sheet(self, ref: EntityRef) -> SheetRecord:
        return self._lookup(self._sheets, ref, "sheet")

    def entities(self) -> List[Entity]:
        return list(self._entities.values())

    def types(self) -> List[EntityType]:
        return list(self._types.values())

    def views(self) -> List[ViewRecord]:
        return list(self._views.values())

    def view_templates(self) -> List[ViewRecord]:
        return [v for v in self._views.values() if v.is_template]

    def find_view_by_name(self, name: str) -> Optional[ViewRecord]:
        for view in self._views.values():
            if view.name == name:
                return view
        return None

    def markers(self) -> List[MarkerRecord]:
        return list(self._markers.values())

    def levels(self) -> List[Level]:
        return list(self._levels.values())

    def sheets(self) -> List[SheetRecord]:
        return list(self._sheets.values())

    def title_blocks(self) -> List[str]:
        return list(self._title_blocks)

    def default_title_block(self) -> Optional[str]:
        return self._title_blocks[0] if self._title_blocks else None

    def has_location(self, ref: EntityRef) -> bool:
        if ref in self._markers:
            return True
        entity = self._entities.get(ref)
        return entity is not None and entity.location is not None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._active_transaction is not None

    def _snapshot(self) -> dict:
        return copy.deepcopy({
            'entities': self._entities,
            'types': self._types,
            'views': self._views,
            'markers': self._markers,
            'levels': self._levels,
            'sheets': self._sheets,
            'title_blocks': self._title_blocks,
            'counter': self._counter,
        })

    def _restore(self, snapshot: dict) -> None:
        self._entities = snapshot['entities']
        self._types = snapshot['types']
        self._views = snapshot['views']
        self._markers = snapshot['markers']
        self._levels = snapshot['levels']
        self._sheets = snapshot['sheets']
        self._title_blocks = snapshot['title_blocks']
        self._counter = snapshot['counter']

    @contextmanager
    def transaction(self, name: str) -> Iterator['InMemoryModelStore']:
        """Atomic unit of work: commit on normal exit, roll back on exception."""
        if self._active_transaction is not None:
            raise TransactionError(
                f"Transaction {self._active_transaction!r} already active, cannot start {name!r}"
            )
        snapshot = self._snapshot()
        self._active_transaction = name
        logger.debug("Transaction started: %s", name)
        try:
            yield self
        except Exception:
            self._restore(snapshot)
            logger.warning("Transaction rolled back: %s", name)
            raise
        else:
            logger.debug("Transaction committed: %s", name)
        finally:
            self._active_transaction = None

    @contextmanager
    def sub_transaction(self, name: str) -> Iterator['InMemoryModelStore']:
        """Savepoint inside the open transaction, rolled back on exception."""
        self._require_transaction(f"sub-transaction {name!r}")
        snapshot = self._snapshot()
        try:
            yield self
        except Exception:
            self._restore(snapshot)
            logger.debug("Sub-transaction rolled back: %s", name)
            raise

    def _require_transaction(self, operation: str) -> None:
        if self._active_transaction is None:
            raise TransactionError(f"{operation} requires an open transaction")

    def _next_ref(self, prefix: str) -> EntityRef:
        self._counter += 1
        ref = f"{prefix}-{self._counter}"
        while ref in self._entities or ref in self._views or ref in self._sheets:
            self._counter += 1
            ref = f"{prefix}-{self._counter}"
        return ref

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def rotate(self, ref: EntityRef, axis: AxisLine, angle: float) -> None:
        """Rotate an entity or marker (and the views it carries) about `axis`."""
        self._require_transaction("rotate")
        rotation = LineRotation(axis, angle)

        if ref in self._markers:
            marker = self._markers[ref]
            self._rotate_point_location(marker.location, rotation)
            owned = {v for v in marker.view_slots if v is not None and v in self._views}
            for view_ref in owned:
                self._rotate_view(self._views[view_ref], rotation)
            # view proxies travel with their marker
            for proxy in self._entities.values():
                if proxy.owner_view in owned and proxy.bounding_box is not None:
                    proxy.bounding_box = rotation.apply_box(proxy.bounding_box)
            logger.debug("Rotated marker %s by %.4f rad", ref, angle)
            return

        entity = self.entity(ref)
        if entity.location is None:
            raise NotRotatableError(f"Entity {ref!r} has no location")

        if isinstance(entity.location, LocationCurve):
            entity.location.start = rotation.apply_point(entity.location.start)
            entity.location.end = rotation.apply_point(entity.location.end)
        else:
            self._rotate_point_location(entity.location, rotation)

        if entity.bounding_box is not None:
            entity.bounding_box = rotation.apply_box(entity.bounding_box)
        if entity.facing_orientation is not None:
            entity.facing_orientation = rotation.apply_direction(entity.facing_orientation)
        if entity.owner_view is not None and entity.owner_view in self._views:
            self._rotate_view(self._views[entity.owner_view], rotation)

        logger.debug("Rotated entity %s by %.4f rad", ref, angle)

    @staticmethod
    def _rotate_point_location(location: LocationPoint, rotation: LineRotation) -> None:
        location.point = rotation.apply_point(location.point)
        location.rotation += rotation.planar_angle

    @staticmethod
    def _rotate_view(view: ViewRecord, rotation: LineRotation) -> None:
        view.origin = rotation.apply_point(view.origin)
        view.right = rotation.apply_direction(view.right)
        view.up = rotation.apply_direction(view.up)
        view.view_direction = rotation.apply_direction(view.view_direction)

    def _ensure_unique_view_name(self, name: str, exclude: Optional[EntityRef] = None) -> None:
        for other in self._views.values():
            if other.name == name and other.ref != exclude:
                raise DuplicateNameError(f"View name {name!r} is already in use")

    def _provisional_view_name(self, stem: str) -> str:
        n = 1
        while self.find_view_by_name(f"{stem} {n}") is not None:
            n += 1
        return f"{stem} {n}"

    def create_section_view(self, spec: 'SectionSpec', transform: 'ViewTransform') -> ViewRecord:
        self._require_transaction("create_section_view")
        if not np.allclose(transform.view_direction, spec.view_direction):
            raise ModelStoreError("Section transform does not match section basis")
        view = ViewRecord(
            ref=self._next_ref("view"),
            name=self._provisional_view_name("Section"),
            view_type=ViewType.SECTION,
            origin=transform.origin,
            right=spec.right_direction,
            up=spec.up_direction,
            view_direction=spec.view_direction,
            section_box=spec.section_box(),
        )
        self._views[view.ref] = view
        return view

    def create_plan_view(self, level_ref: EntityRef) -> ViewRecord:
        self._require_transaction("create_plan_view")
        level = self._lookup(self._levels, level_ref, "level")
        view = ViewRecord(
            ref=self._next_ref("view"),
            name=self._provisional_view_name(level.name),
            view_type=ViewType.FLOOR_PLAN,
            origin=np.array([0.0, 0.0, level.elevation]),
            right=np.array([1.0, 0.0, 0.0]),
            up=np.array([0.0, 1.0, 0.0]),
            view_direction=np.array([0.0, 0.0, -1.0]),
            level_ref=level.ref,
        )
        self._views[view.ref] = view
        return view

    def rename_view(self, ref: EntityRef, name: str) -> None:
        self._require_transaction("rename_view")
        view = self.view(ref)
        self._ensure_unique_view_name(name, exclude=ref)
        view.name = name

    def set_view_template(self, view_ref: EntityRef, template_ref: EntityRef) -> None:
        self._require_transaction("set_view_template")
        view = self.view(view_ref)
        template = self.view(template_ref)
        if not template.is_template:
            raise ModelStoreError(f"View {template_ref!r} is not a view template")
        view.template_ref = template.ref

    def create_sheet(self, title_block: Optional[str]) -> SheetRecord:
        self._require_transaction("create_sheet")
        if title_block is not None and title_block not in self._title_blocks:
            raise EntityNotFoundError(f"No title block named {title_block!r}")
        ref = self._next_ref("sheet")
        n = len(self._sheets) + 1
        number = f"S{n:03d}"
        while any(s.number == number for s in self._sheets.values()):
            n += 1
            number = f"S{n:03d}"
        sheet = SheetRecord(ref=ref, number=number, name="Unnamed", title_block=title_block)
        self._sheets[ref] = sheet
        return sheet

    def can_place_view_on_sheet(self, sheet_ref: EntityRef, view_ref: EntityRef) -> bool:
        if sheet_ref not in self._sheets or view_ref not in self._views:
            return False
        if self._views[view_ref].is_template:
            return False
        return not any(
            vp.view_ref == view_ref
            for sheet in self._sheets.values()
            for vp in sheet.viewports
        )

    def place_view_on_sheet(self, sheet_ref: EntityRef, view_ref: EntityRef,
                            position: Tuple[float, float]) -> Viewport:
        self._require_transaction("place_view_on_sheet")
        if not self.can_place_view_on_sheet(sheet_ref, view_ref):
            raise ModelStoreError(f"View {view_ref!r} cannot be placed on sheet {sheet_ref!r}")
        viewport = Viewport(view_ref=view_ref, position=(float(position[0]), float(position[1])))
        self._sheets[sheet_ref].viewports.append(viewport)
        return viewport

    def set_sheet_identity(self, sheet_ref: EntityRef, number: str, name: str) -> None:
        self._require_transaction("set_sheet_identity")
        sheet = self.sheet(sheet_ref)
        for other in self._sheets.values():
            if other.number == number and other.ref != sheet_ref:
                raise DuplicateNameError(f"Sheet number {number!r} is already in use")
        sheet.number = number
        sheet.name = name
