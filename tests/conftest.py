"""
Pytest configuration and fixtures for section_frames.

Provides:
- A small building model in an InMemoryModelStore (walls, a hosted door,
  a point-placed column, a generic box, view proxies, an elevation marker)
- Frame fixtures for the section builder
- Model file fixtures for the loader and the CLI
"""

import logging
import math
from pathlib import Path

import numpy as np
import pytest

from section_frames.frames.inference import Frame
from section_frames.geometry.bounding_box import BoundingBox
from section_frames.io.model_loader import save_model
from section_frames.logging_config import PACKAGE_LOGGER
from section_frames.model.entities import (
    Entity,
    EntityType,
    Level,
    LocationCurve,
    LocationPoint,
    MarkerRecord,
    PlacementStrategy,
    ViewRecord,
    ViewType,
)
from section_frames.model.store import InMemoryModelStore


# ============================================================================
# Logging isolation
# ============================================================================

@pytest.fixture(autouse=True)
def _reset_package_logger():
    """setup_logging() detaches the package logger; undo it between tests."""
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.filters.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


# ============================================================================
# Model helpers
# ============================================================================

def box(lo, hi) -> BoundingBox:
    return BoundingBox(np.array(lo, dtype=float), np.array(hi, dtype=float))


def add_wall(store: InMemoryModelStore, ref: str, start, end, height: float = 3.0,
             thickness: float = 0.2, **kwargs) -> Entity:
    """Straight wall with a box enclosing its curve."""
    start = np.array(start, dtype=float)
    end = np.array(end, dtype=float)
    half = thickness / 2.0
    lo = np.minimum(start, end) - np.array([half, half, 0.0])
    hi = np.maximum(start, end) + np.array([half, half, 0.0])
    hi[2] = lo[2] + height
    if abs(end[0] - start[0]) > abs(end[1] - start[1]):
        lo[0], hi[0] = min(start[0], end[0]), max(start[0], end[0])
    else:
        lo[1], hi[1] = min(start[1], end[1]), max(start[1], end[1])
    return store.add_entity(Entity(
        ref=ref,
        category=kwargs.pop('category', "Walls"),
        location=LocationCurve(start, end),
        bounding_box=BoundingBox(lo, hi),
        parameters=kwargs.pop('parameters', {"height": height}),
        **kwargs,
    ))


def build_store() -> InMemoryModelStore:
    store = InMemoryModelStore()
    store.add_title_block("A1 Landscape")
    store.add_level(Level("L2", "Level 2", elevation=3.0))
    store.add_level(Level("L1", "Level 1", elevation=0.0))

    store.add_type(EntityType(
        ref="T-door", name="Door 900", placement=PlacementStrategy.ONE_LEVEL_HOSTED,
        bounding_box=box((0, 0, 0), (0.9, 0.1, 2.1)), category="Doors",
    ))
    store.add_type(EntityType(
        ref="T-column", name="Column 400", placement=PlacementStrategy.ONE_LEVEL,
        bounding_box=box((-0.2, -0.1, 0), (0.2, 0.1, 3.0)), category="Columns",
    ))

    # (0,0,0)-(10,0,0), 8 high, box centered at z=4
    store.add_entity(Entity(
        ref="wall-1", category="Walls",
        location=LocationCurve([0, 0, 0], [10, 0, 0]),
        bounding_box=box((0, -0.1, 0), (10, 0.1, 8)),
        parameters={"height": 8.0},
    ))
    store.add_entity(Entity(
        ref="door-7", category="Doors", type_ref="T-door", host_ref="wall-1",
        location=LocationPoint([5, 0, 0]),
        bounding_box=box((4.55, -0.1, 0), (5.45, 0.1, 2.1)),
    ))
    store.add_entity(Entity(
        ref="column-3", category="Columns", type_ref="T-column",
        location=LocationPoint([20, 5, 0], rotation=math.pi / 2),
        bounding_box=box((19.9, 4.8, 0), (20.1, 5.2, 3.0)),
    ))
    store.add_entity(Entity(
        ref="generic-9", category="Generic Models",
        bounding_box=box((0, 0, 0), (2, 1, 1)),
    ))
    store.add_entity(Entity(ref="ghost-1", category="Generic Models"))

    # Elevation looking north, owned by marker m-1
    store.add_view(ViewRecord(
        ref="v-elev", name="North Elevation", view_type=ViewType.ELEVATION,
        origin=[0, -5, 0], right=[1, 0, 0], up=[0, 0, 1], view_direction=[0, 1, 0],
    ))
    store.add_marker(MarkerRecord("m-1", LocationPoint([0, -5, 0]), ("v-elev",)))
    store.add_entity(Entity(
        ref="proxy-elev", category="Views", owner_view="v-elev", view_specific=True,
        bounding_box=box((-0.5, -5.5, 0), (0.5, -4.5, 0.1)),
    ))

    # Section looking west; its proxy has no location
    store.add_view(ViewRecord(
        ref="v-sec", name="Section A", view_type=ViewType.SECTION,
        origin=[3, 3, 0], right=[0, 1, 0], up=[0, 0, 1], view_direction=[-1, 0, 0],
    ))
    store.add_entity(Entity(
        ref="proxy-sec", category="Views", owner_view="v-sec", view_specific=True,
        bounding_box=box((2.5, 2.5, 0), (3.5, 3.5, 0.1)),
    ))

    store.add_view(ViewRecord(
        ref="v-template", name="Elevation Template", view_type=ViewType.ELEVATION,
        is_template=True,
    ))
    return store


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store() -> InMemoryModelStore:
    """Sample building model."""
    return build_store()


@pytest.fixture
def empty_store() -> InMemoryModelStore:
    return InMemoryModelStore()


@pytest.fixture
def unit_frame() -> Frame:
    """Frame along +X, 4 wide, 3 high, no depth."""
    return Frame(
        origin=np.array([0.0, 0.0, 0.0]),
        direction=np.array([1.0, 0.0, 0.0]),
        width=4.0,
        height=3.0,
        depth=0.0,
    )


@pytest.fixture
def model_path(tmp_path: Path, store: InMemoryModelStore) -> Path:
    """The sample model written as a JSON document."""
    path = tmp_path / "model.json"
    save_model(store, path)
    return path


# ============================================================================
# Assertion Helpers
# ============================================================================

def assert_vec(actual, expected, atol: float = 1e-9) -> None:
    """Assert that a vector matches component-wise."""
    assert actual is not None
    assert np.allclose(actual, expected, atol=atol), f"expected {expected}, got {actual}"


def assert_unit(v, atol: float = 1e-9) -> None:
    assert abs(np.linalg.norm(v) - 1.0) < atol
