"""
Unit tests for section_frames.model.store module.

Tests:
- Lookups and EntityNotFoundError
- Transactions: commit, rollback, nesting, mutations outside a transaction
- Rotation of entities, markers and the views they carry
- View names, templates, sheets and viewports
"""

import math

import numpy as np
import pytest

from section_frames.geometry.vectors import rotation_axis
from section_frames.model.entities import LocationPoint, MarkerRecord, ViewRecord, ViewType
from section_frames.model.store import (
    DuplicateNameError,
    EntityNotFoundError,
    ModelStoreError,
    NotRotatableError,
    TransactionError,
)
from section_frames.sections.builder import (
    build_cross_section_spec,
    build_elevation_spec,
    section_transform,
)
from tests.conftest import assert_vec


UP = np.array([0.0, 0.0, 1.0])


class TestLookups:
    """Tests for read access."""

    def test_entity(self, store):
        assert store.entity("wall-1").category == "Walls"

    @pytest.mark.parametrize("method", ["entity", "entity_type", "view", "marker", "sheet"])
    def test_missing_reference(self, store, method):
        with pytest.raises(EntityNotFoundError):
            getattr(store, method)("missing")

    def test_not_found_is_key_error(self, store):
        with pytest.raises(KeyError):
            store.entity("missing")

    def test_has_location(self, store):
        assert store.has_location("wall-1")
        assert store.has_location("m-1")
        assert not store.has_location("generic-9")
        assert not store.has_location("missing")

    def test_view_templates(self, store):
        assert [v.ref for v in store.view_templates()] == ["v-template"]

    def test_default_title_block(self, store, empty_store):
        assert store.default_title_block() == "A1 Landscape"
        assert empty_store.default_title_block() is None

    def test_duplicate_view_name_on_add(self, store):
        with pytest.raises(DuplicateNameError):
            store.add_view(ViewRecord("v-other", "Section A", ViewType.SECTION))


class TestTransactions:
    """Tests for transaction()."""

    def test_commit(self, store):
        with store.transaction("Rotate"):
            store.rotate("wall-1", rotation_axis([0, 0, 0], UP), math.pi / 2)
        assert_vec(store.entity("wall-1").location.end, [0.0, 10.0, 0.0])
        assert not store.in_transaction

    def test_rollback_on_exception(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction("Rotate"):
                store.rotate("wall-1", rotation_axis([0, 0, 0], UP), math.pi / 2)
                raise RuntimeError("boom")
        assert_vec(store.entity("wall-1").location.end, [10.0, 0.0, 0.0])
        assert not store.in_transaction

    def test_rollback_removes_created_sheets(self, store):
        with pytest.raises(ModelStoreError):
            with store.transaction("Sheets"):
                store.create_sheet("A1 Landscape")
                raise ModelStoreError("abort")
        assert store.sheets() == []

    def test_nested_transaction_rejected(self, store):
        with store.transaction("Outer"):
            with pytest.raises(TransactionError):
                with store.transaction("Inner"):
                    pass
            assert store.in_transaction
        assert not store.in_transaction

    def test_sub_transaction_rolls_back_only_itself(self, store):
        with store.transaction("Sheets"):
            kept = store.create_sheet(None)
            with pytest.raises(ModelStoreError):
                with store.sub_transaction("Second sheet"):
                    store.create_sheet(None)
                    raise ModelStoreError("abort")
            assert store.in_transaction
        assert [s.ref for s in store.sheets()] == [kept.ref]

    def test_sub_transaction_commit(self, store):
        with store.transaction("Sheets"):
            with store.sub_transaction("Sheet"):
                store.create_sheet(None)
        assert len(store.sheets()) == 1

    def test_sub_transaction_requires_transaction(self, store):
        with pytest.raises(TransactionError):
            with store.sub_transaction("Alone"):
                pass

    @pytest.mark.parametrize("mutation", [
        lambda s: s.rotate("wall-1", rotation_axis([0, 0, 0], UP), 1.0),
        lambda s: s.create_plan_view("L1"),
        lambda s: s.rename_view("v-sec", "Section B"),
        lambda s: s.set_view_template("v-sec", "v-template"),
        lambda s: s.create_sheet(None),
    ])
    def test_mutation_outside_transaction(self, store, mutation):
        with pytest.raises(TransactionError):
            mutation(store)


class TestRotate:
    """Tests for rotate()."""

    def test_point_instance(self, store):
        with store.transaction("Rotate"):
            store.rotate("column-3", rotation_axis([20, 5, 0], UP), -math.pi / 2)
        column = store.entity("column-3")
        assert_vec(column.location.point, [20.0, 5.0, 0.0])
        assert column.location.rotation == pytest.approx(0.0)
        assert_vec(column.bounding_box.min_point, [19.8, 4.9, 0.0])

    def test_downward_axis_negates_planar_angle(self, store):
        with store.transaction("Rotate"):
            store.rotate("column-3", rotation_axis([20, 5, 0], -UP), math.pi / 2)
        assert store.entity("column-3").location.rotation == pytest.approx(0.0)

    def test_facing_orientation_rotated(self, store):
        store.entity("door-7").facing_orientation = np.array([0.0, 1.0, 0.0])
        with store.transaction("Rotate"):
            store.rotate("door-7", rotation_axis([5, 0, 0], UP), math.pi / 2)
        assert_vec(store.entity("door-7").facing_orientation, [-1.0, 0.0, 0.0])

    def test_entity_without_location(self, store):
        with store.transaction("Rotate"):
            with pytest.raises(NotRotatableError):
                store.rotate("generic-9", rotation_axis([0, 0, 0], UP), 1.0)

    def test_marker_carries_views_and_proxies(self, store):
        with store.transaction("Rotate"):
            store.rotate("m-1", rotation_axis([0, -5, 0], UP), math.pi)
        view = store.view("v-elev")
        assert_vec(view.right, [-1.0, 0.0, 0.0])
        assert_vec(view.view_direction, [0.0, -1.0, 0.0])
        assert_vec(view.origin, [0.0, -5.0, 0.0])
        assert store.marker("m-1").location.rotation == pytest.approx(math.pi)
        proxy_box = store.entity("proxy-elev").bounding_box
        assert_vec(proxy_box.center, [0.0, -5.0, 0.05])

    def test_marker_leaves_other_views(self, store):
        with store.transaction("Rotate"):
            store.rotate("m-1", rotation_axis([0, -5, 0], UP), math.pi / 2)
        assert_vec(store.view("v-sec").right, [0.0, 1.0, 0.0])

    def test_empty_marker_slots(self, store):
        store.add_marker(MarkerRecord("m-2", LocationPoint([1, 1, 0])))
        with store.transaction("Rotate"):
            store.rotate("m-2", rotation_axis([0, 0, 0], UP), math.pi / 2)
        assert_vec(store.marker("m-2").location.point, [-1.0, 1.0, 0.0])

    def test_marker_slot_limit(self):
        with pytest.raises(ValueError):
            MarkerRecord("m-x", LocationPoint([0, 0, 0]), ("a", "b", "c", "d", "e"))


class TestViews:
    """Tests for view creation, naming and templates."""

    def _section(self, store, unit_frame):
        spec = build_elevation_spec(unit_frame)
        return store.create_section_view(spec, section_transform(unit_frame, spec))

    def test_section_view(self, store, unit_frame):
        with store.transaction("Views"):
            view = self._section(store, unit_frame)
        assert view.view_type is ViewType.SECTION
        assert view.name == "Section 1"
        assert_vec(view.right, [0.0, -1.0, 0.0])
        assert store.view(view.ref) is view

    def test_provisional_names_unique(self, store, unit_frame):
        with store.transaction("Views"):
            first = self._section(store, unit_frame)
            second = self._section(store, unit_frame)
        assert first.name != second.name
        assert first.ref != second.ref

    def test_mismatched_transform(self, store, unit_frame):
        spec = build_elevation_spec(unit_frame)
        transform = section_transform(unit_frame, build_cross_section_spec(unit_frame))
        with store.transaction("Views"):
            with pytest.raises(ModelStoreError):
                store.create_section_view(spec, transform)

    def test_plan_view(self, store):
        with store.transaction("Views"):
            plan = store.create_plan_view("L2")
        assert plan.view_type is ViewType.FLOOR_PLAN
        assert plan.level_ref == "L2"
        assert plan.origin[2] == pytest.approx(3.0)
        assert plan.name == "Level 2 1"

    def test_plan_view_unknown_level(self, store):
        with store.transaction("Views"):
            with pytest.raises(EntityNotFoundError):
                store.create_plan_view("L9")

    def test_rename_collision(self, store):
        with store.transaction("Views"):
            with pytest.raises(DuplicateNameError):
                store.rename_view("v-sec", "North Elevation")
            store.rename_view("v-sec", "Section A")
        assert store.view("v-sec").name == "Section A"

    def test_template(self, store):
        with store.transaction("Views"):
            store.set_view_template("v-sec", "v-template")
        assert store.view("v-sec").template_ref == "v-template"

    def test_non_template_rejected(self, store):
        with store.transaction("Views"):
            with pytest.raises(ModelStoreError):
                store.set_view_template("v-sec", "v-elev")


class TestSheets:
    """Tests for sheets and viewports."""

    def test_sequential_numbers(self, store):
        with store.transaction("Sheets"):
            first = store.create_sheet("A1 Landscape")
            second = store.create_sheet(None)
        assert (first.number, second.number) == ("S001", "S002")
        assert first.title_block == "A1 Landscape"
        assert second.title_block is None

    def test_unknown_title_block(self, store):
        with store.transaction("Sheets"):
            with pytest.raises(EntityNotFoundError):
                store.create_sheet("A0 Portrait")

    def test_place_view(self, store):
        with store.transaction("Sheets"):
            sheet = store.create_sheet(None)
            viewport = store.place_view_on_sheet(sheet.ref, "v-sec", (0.1, 0.2))
        assert viewport.view_ref == "v-sec"
        assert store.sheet(sheet.ref).viewports == [viewport]

    def test_view_placed_once(self, store):
        with store.transaction("Sheets"):
            first = store.create_sheet(None)
            second = store.create_sheet(None)
            store.place_view_on_sheet(first.ref, "v-sec", (0.0, 0.0))
            assert not store.can_place_view_on_sheet(second.ref, "v-sec")
            with pytest.raises(ModelStoreError):
                store.place_view_on_sheet(second.ref, "v-sec", (0.0, 0.0))

    def test_template_not_placeable(self, store):
        with store.transaction("Sheets"):
            sheet = store.create_sheet(None)
        assert not store.can_place_view_on_sheet(sheet.ref, "v-template")
        assert not store.can_place_view_on_sheet(sheet.ref, "missing")

    def test_sheet_identity(self, store):
        with store.transaction("Sheets"):
            sheet = store.create_sheet(None)
            store.set_sheet_identity(sheet.ref, "SF_Walls_wall-1", "Walls - Elevation")
        assert store.sheet(sheet.ref).number == "SF_Walls_wall-1"
        assert store.sheet(sheet.ref).name == "Walls - Elevation"

    def test_duplicate_sheet_number(self, store):
        with store.transaction("Sheets"):
            first = store.create_sheet(None)
            second = store.create_sheet(None)
            with pytest.raises(DuplicateNameError):
                store.set_sheet_identity(second.ref, first.number, "Copy")
            # renumbering a sheet to its own number is fine
            store.set_sheet_identity(first.ref, first.number, "Same")
