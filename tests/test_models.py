"""Tests for model elements and the document transaction model."""

import logging

import pytest

from storey_builder.errors import ArgumentError, GeometryError, TransactionError
from storey_builder.models import (
    Document,
    ElementType,
    FloorType,
    Level,
    Polygon2D,
    ShapeGeometry,
    ShapeKind,
    generate_ifc_id,
)
from storey_builder.models.ifc_id import is_valid_ifc_id


def _square(x0: float, y0: float, size: float) -> Polygon2D:
    return Polygon2D.from_tuples(
        [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)]
    )


class TestIfcId:
    def test_generate(self):
        gid = generate_ifc_id()
        assert len(gid) == 22
        assert is_valid_ifc_id(gid)

    def test_unique(self):
        assert len({generate_ifc_id() for _ in range(100)}) == 100

    def test_invalid(self):
        assert not is_valid_ifc_id("short")
        assert not is_valid_ifc_id("!" * 22)


class TestElements:
    def test_level_requires_name(self):
        with pytest.raises(ValueError):
            Level(name="", elevation=0)

    def test_floor_type_category(self):
        ft = FloorType(name="Concrete 8\"", thickness=0.67)
        assert ft.category == "Floors"
        with pytest.raises(ValueError, match="Floors"):
            FloorType(name="Wall", category="Walls")

    def test_floor_type_positive_thickness(self):
        with pytest.raises(ValueError):
            FloorType(name="Bad", thickness=0)

    def test_element_type_other_category(self):
        wt = ElementType(name="Basic Wall", category="Walls")
        assert not isinstance(wt, FloorType)


class TestDocumentCreate:
    def test_default_floor_type(self):
        doc = Document.create(name="Test")
        assert doc.default_floor_type is not None
        assert doc.default_floor_type.name == 'Generic 12"'
        assert not doc.in_transaction
        assert [r.name for r in doc.history] == ["Load floor types"]

    def test_floor_types_loaded_through_commit_scope(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="storey_builder.creation.transactions"):
            doc = Document.create(name="Test")
        assert "Committed 'Load floor types'" in caplog.text
        assert not doc.in_transaction
        assert doc.is_committed(doc.default_floor_type_id)

    def test_units_feet_only(self):
        with pytest.raises(ValueError, match="feet"):
            Document(units="metres")


class TestTransactions:
    def test_mutation_requires_transaction(self):
        doc = Document.create()
        with pytest.raises(TransactionError, match="outside a transaction"):
            doc.create_level(0.0, "L 1")

    def test_not_reentrant(self):
        doc = Document.create()
        doc.start_transaction("A")
        with pytest.raises(TransactionError, match="still open"):
            doc.start_transaction("B")
        doc.commit_transaction()

    def test_commit_without_transaction(self):
        with pytest.raises(TransactionError):
            Document().commit_transaction()

    def test_commit_records_created(self):
        doc = Document.create()
        doc.start_transaction("Levels")
        level = doc.create_level(10.0, "L 1")
        assert not doc.is_committed(level.global_id)
        record = doc.commit_transaction()
        assert record.committed
        assert record.created == [level.global_id]
        assert doc.is_committed(level.global_id)

    def test_save_refused_in_transaction(self, tmp_path):
        doc = Document.create()
        doc.start_transaction("Open")
        with pytest.raises(TransactionError):
            doc.save(tmp_path / "doc.json")


class TestLevels:
    def test_duplicate_name_rejected(self):
        doc = Document.create()
        doc.start_transaction("Levels")
        doc.create_level(0.0, "L 1")
        with pytest.raises(ArgumentError, match="already exists"):
            doc.create_level(5.0, "L 1")
        doc.commit_transaction()

    def test_set_elevation_in_place(self):
        doc = Document.create()
        doc.start_transaction("Levels")
        level = doc.create_level(0.0, "L 1")
        doc.commit_transaction()
        doc.start_transaction("Move")
        doc.set_level_elevation(level, 12.5)
        record = doc.commit_transaction()
        assert doc.get_level("L 1").elevation == 12.5
        assert record.modified == [level.global_id]

    def test_foreign_level_rejected(self):
        doc = Document.create()
        doc.start_transaction("Move")
        with pytest.raises(ArgumentError):
            doc.set_level_elevation(Level(name="Elsewhere"), 1.0)
        doc.commit_transaction()


class TestFloorsAndOpenings:
    def _doc_with_level(self):
        doc = Document.create()
        doc.start_transaction("Level")
        level = doc.create_level(10.0, "L 1")
        doc.commit_transaction()
        return doc, level

    def test_new_floor(self):
        doc, level = self._doc_with_level()
        doc.start_transaction("Floor")
        floor = doc.new_floor(_square(0, 0, 20), doc.default_floor_type, level, name="Slab")
        doc.commit_transaction()
        assert floor.level_id == level.global_id
        assert floor.area == pytest.approx(400.0)
        assert doc.floors_on_level(level) == [floor]

    def test_floor_type_not_loaded(self):
        doc, level = self._doc_with_level()
        doc.start_transaction("Floor")
        with pytest.raises(ArgumentError, match="not loaded"):
            doc.new_floor(_square(0, 0, 20), FloorType(name="Foreign"), level)
        doc.commit_transaction()

    def test_self_intersecting_outline(self):
        doc, level = self._doc_with_level()
        bowtie = Polygon2D.from_tuples([(0, 0), (10, 10), (10, 0), (0, 10)])
        doc.start_transaction("Floor")
        with pytest.raises(GeometryError):
            doc.new_floor(bowtie, doc.default_floor_type, level)
        doc.commit_transaction()

    def test_opening_needs_committed_host(self):
        doc, level = self._doc_with_level()
        doc.start_transaction("Floor")
        floor = doc.new_floor(_square(0, 0, 20), doc.default_floor_type, level)
        with pytest.raises(TransactionError, match="committed"):
            doc.new_opening(floor, _square(5, 5, 2))
        doc.commit_transaction()

        doc.start_transaction("Opening")
        opening = doc.new_opening(floor, _square(5, 5, 2))
        doc.commit_transaction()
        assert opening.host_id == floor.global_id
        assert floor.area == pytest.approx(396.0)
        assert floor.gross_area == pytest.approx(400.0)

    def test_opening_outside_floor(self):
        doc, level = self._doc_with_level()
        doc.start_transaction("Floor")
        floor = doc.new_floor(_square(0, 0, 20), doc.default_floor_type, level)
        doc.commit_transaction()
        doc.start_transaction("Opening")
        with pytest.raises(GeometryError, match="inside"):
            doc.new_opening(floor, _square(18, 18, 5))
        doc.commit_transaction()
        assert floor.openings == []


class TestDirectShapes:
    def test_unknown_category(self):
        doc = Document.create()
        doc.start_transaction("Shape")
        with pytest.raises(ArgumentError, match="Unknown category"):
            doc.create_direct_shape("Spaceships", ShapeGeometry(kind=ShapeKind.MESH))
        doc.commit_transaction()

    def test_category_case_insensitive(self):
        doc = Document.create()
        doc.start_transaction("Shape")
        shape = doc.create_direct_shape("mass", ShapeGeometry(kind=ShapeKind.MESH))
        doc.commit_transaction()
        assert shape.category == "Mass"


class TestPersistence:
    def test_roundtrip_keeps_committed_state(self, tmp_path):
        doc = Document.create(name="Roundtrip")
        doc.start_transaction("Floor")
        level = doc.create_level(10.0, "L 1")
        floor = doc.new_floor(_square(0, 0, 20), doc.default_floor_type, level)
        doc.commit_transaction()
        path = doc.save(tmp_path / "doc.json")

        loaded = Document.load(path)
        assert loaded.name == "Roundtrip"
        assert loaded.get_level("L 1").elevation == 10.0
        assert loaded.is_committed(floor.global_id)
        assert loaded.history == []
        assert loaded.default_floor_type_id == doc.default_floor_type_id

    def test_summary(self):
        doc = Document.create(name="Summary")
        assert "Summary" in doc.summary()
        assert "Levels: 0" in doc.summary()
