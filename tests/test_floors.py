"""Tests for single-surface floor building and floor type resolution."""

import pytest

from storey_builder.creation.floors import FloorBuilder, resolve_floor_type
from storey_builder.creation.loops import LoopSet
from storey_builder.creation.transactions import TransactionCoordinator
from storey_builder.errors import ArgumentError, GeometryError
from storey_builder.models import BoundaryLoop, Document, ElementType, FloorType, LoopKind, Surface

OUTER = [(0, 0, 3048), (6096, 0, 3048), (6096, 6096, 3048), (0, 6096, 3048)]
HOLE_A = [(610, 610, 3048), (1219, 610, 3048), (1219, 1219, 3048), (610, 1219, 3048)]
HOLE_B = [(3048, 3048, 3048), (3658, 3048, 3048), (3658, 3658, 3048), (3048, 3658, 3048)]


def _doc_and_level():
    doc = Document.create()
    with TransactionCoordinator(doc).scope("Level"):
        level = doc.create_level(10.0, "L 1")
    return doc, level


class TestResolveFloorType:
    def test_default(self):
        doc = Document.create()
        assert resolve_floor_type(doc, None) is doc.default_floor_type

    def test_by_name(self):
        doc = Document.create(floor_type_name="Concrete")
        assert resolve_floor_type(doc, "concrete").name == "Concrete"

    def test_unknown_name(self):
        with pytest.raises(ArgumentError, match="Unknown floor type"):
            resolve_floor_type(Document.create(), "Timber")

    def test_wrong_category(self):
        wall_type = ElementType(name="Basic Wall", category="Walls")
        with pytest.raises(ArgumentError, match="Walls"):
            resolve_floor_type(Document.create(), wall_type)

    def test_not_loaded(self):
        with pytest.raises(ArgumentError, match="not loaded"):
            resolve_floor_type(Document.create(), FloorType(name="Foreign"))

    def test_no_default(self):
        with pytest.raises(ArgumentError, match="no default"):
            resolve_floor_type(Document(), None)


class TestFloorBuilder:
    def test_floor_in_feet(self):
        doc, level = _doc_and_level()
        coordinator = TransactionCoordinator(doc)
        with coordinator.scope("Floors"):
            result = FloorBuilder(coordinator).build_floor(
                Surface.from_polygon(OUTER, name="Deck"), level, doc.default_floor_type
            )
        assert result.ok
        assert result.errors == []
        assert result.floor.name == "Deck"
        assert result.floor.gross_area == pytest.approx(400.0, rel=1e-4)
        assert result.floor.level_id == level.global_id

    def test_two_openings_after_commit(self):
        doc, level = _doc_and_level()
        coordinator = TransactionCoordinator(doc)
        with coordinator.scope("Floors"):
            result = FloorBuilder(coordinator).build_floor(
                Surface.from_polygon(OUTER, holes=[HOLE_A, HOLE_B]), level, doc.default_floor_type
            )
        floor = result.floor
        assert len(floor.openings) == 2
        assert all(o.host_id == floor.global_id for o in floor.openings)

        # Floor is committed in one transaction, openings land in the next
        floor_record = next(r for r in doc.history if floor.global_id in r.created)
        later = doc.history[doc.history.index(floor_record) + 1:]
        opening_ids = {o.global_id for o in floor.openings}
        assert not opening_ids & set(floor_record.created)
        assert opening_ids <= {gid for r in later for gid in r.created}

    def test_undecomposable_surface(self):
        doc, level = _doc_and_level()
        coordinator = TransactionCoordinator(doc)
        with coordinator.scope("Floors"):
            result = FloorBuilder(coordinator).build_floor(Surface(), level, doc.default_floor_type)
        assert not result.ok
        assert len(result.errors) == 1
        assert doc.floors == []


def _loop(kind: LoopKind, ring) -> BoundaryLoop:
    return BoundaryLoop(kind=kind, curves=Surface.from_polygon(ring).edges)


class _FixedExtractor:
    """Hands back prepared loops, skipping the checks a real extraction makes."""

    def __init__(self, loops: list[BoundaryLoop]):
        self.loops = loops

    def extract(self, surface: Surface) -> LoopSet:
        return LoopSet(self.loops)


class TestFloorBuilderRecovery:
    def test_bad_opening_skipped_others_kept(self):
        doc, level = _doc_and_level()
        outside = [(9000, 9000, 3048), (9500, 9000, 3048), (9500, 9500, 3048), (9000, 9500, 3048)]
        loops = [
            _loop(LoopKind.OUTER, OUTER),
            _loop(LoopKind.OPENING, HOLE_A),
            _loop(LoopKind.OPENING, outside),
            _loop(LoopKind.OPENING, HOLE_B),
        ]
        coordinator = TransactionCoordinator(doc)
        with coordinator.scope("Floors"):
            result = FloorBuilder(coordinator, _FixedExtractor(loops)).build_floor(
                Surface.from_polygon(OUTER), level, doc.default_floor_type
            )
        assert result.ok
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], GeometryError)
        assert result.errors[0].loop_index == 2
        assert len(result.floor.openings) == 2
        assert all(loop.released for loop in loops)

    def test_rejected_outline_releases_loops(self):
        doc, level = _doc_and_level()
        bowtie = [(0, 0, 3048), (3000, 1000, 3048), (3000, 0, 3048), (0, 2000, 3048)]
        loops = [_loop(LoopKind.OUTER, bowtie), _loop(LoopKind.OPENING, HOLE_A)]
        coordinator = TransactionCoordinator(doc)
        with coordinator.scope("Floors"):
            result = FloorBuilder(coordinator, _FixedExtractor(loops)).build_floor(
                Surface.from_polygon(OUTER), level, doc.default_floor_type
            )
        assert not result.ok
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], GeometryError)
        assert all(loop.released for loop in loops)
        assert doc.floors == []
