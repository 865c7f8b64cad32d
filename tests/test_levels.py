"""Tests for level naming, elevation and find-or-create."""

import pytest

from storey_builder.config import MM_PER_FOOT
from storey_builder.creation.levels import LevelDirectory, level_name, requested_elevation
from storey_builder.creation.transactions import TransactionCoordinator
from storey_builder.errors import ArgumentError
from storey_builder.models import Curve, Document, Point3D, Surface


class TestNaming:
    def test_one_based(self):
        assert level_name("Dynamo Level", 0) == "Dynamo Level 1"
        assert level_name("L", 1) == "L 2"


class TestRequestedElevation:
    def test_highest_point_in_feet(self):
        floor = [
            Surface.rectangle(0, 0, 1000, 1000, z=3048),
            Surface.from_polygon([(0, 0, 3000), (1000, 0, 3000), (1000, 1000, 6096)]),
        ]
        assert requested_elevation(floor) == pytest.approx(6096 / MM_PER_FOOT)
        assert requested_elevation(floor) == pytest.approx(20.0)

    def test_empty_surfaces_ignored(self):
        floor = [Surface(), Surface.rectangle(0, 0, 1, 1, z=304.8)]
        assert requested_elevation(floor) == pytest.approx(1.0)

    def test_no_geometry(self):
        with pytest.raises(ArgumentError):
            requested_elevation([])
        with pytest.raises(ArgumentError):
            requested_elevation([Surface()])

    def test_non_finite_coordinates(self):
        nan = Point3D.model_construct(x=0.0, y=0.0, z=float("nan"))
        surface = Surface(edges=[Curve(start=Point3D(x=0, y=0, z=0), end=nan)])
        with pytest.raises(ArgumentError, match="finite"):
            requested_elevation([surface])


class TestLevelDirectory:
    def test_creates_once_then_reuses(self):
        doc = Document.create()
        directory = LevelDirectory(doc)
        with TransactionCoordinator(doc).scope("First"):
            first = directory.find_or_create("L 1", 10.0)
        with TransactionCoordinator(doc).scope("Second"):
            again = directory.find_or_create("L 1", 12.0)
        assert again is first
        assert len(doc.levels) == 1
        assert first.elevation == 12.0
        assert doc.history[-1].modified == [first.global_id]

    def test_find_missing(self):
        assert LevelDirectory(Document.create()).find("Nope") is None
