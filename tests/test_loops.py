"""Tests for boundary loop extraction."""

import random

import pytest

from storey_builder.creation.loops import LoopExtractor, VertexIndex, chain_edges, plane_deviation
from storey_builder.errors import ArgumentError, GeometryError
from storey_builder.models import Curve, LoopKind, Point3D, Surface

OUTER = [(0, 0, 3000), (10000, 0, 3000), (10000, 8000, 3000), (0, 8000, 3000)]
HOLE_A = [(1000, 1000, 3000), (3000, 1000, 3000), (3000, 3000, 3000), (1000, 3000, 3000)]
HOLE_B = [(5000, 5000, 3000), (7000, 5000, 3000), (7000, 7000, 3000), (5000, 7000, 3000)]


def _plan_signed_area(curves: list[Curve]) -> float:
    pts = [(c.start.x, c.start.y) for c in curves]
    n = len(pts)
    return sum(pts[i][0] * pts[(i + 1) % n][1] - pts[(i + 1) % n][0] * pts[i][1] for i in range(n)) / 2


class TestChainEdges:
    def test_shuffled_and_flipped_edges(self):
        edges = Surface.from_polygon(OUTER).edges
        rng = random.Random(7)
        scrambled = [e.reversed() if rng.random() < 0.5 else e for e in edges]
        rng.shuffle(scrambled)
        chains = chain_edges(scrambled)
        assert len(chains) == 1
        chain = chains[0]
        assert len(chain) == 4
        for a, b in zip(chain, chain[1:] + chain[:1]):
            assert a.end.distance_to(b.start) < 1e-9

    def test_open_boundary(self):
        edges = Surface.from_polygon(OUTER).edges[:-1]
        with pytest.raises(GeometryError, match="not closed"):
            chain_edges(edges)

    def test_zero_length_edge(self):
        p = Point3D(x=0, y=0, z=0)
        with pytest.raises(GeometryError, match="zero-length"):
            chain_edges([Curve(start=p, end=p)])

    def test_two_loops(self):
        edges = Surface.from_polygon(OUTER, holes=[HOLE_A]).edges
        assert len(chain_edges(edges)) == 2


class TestPlaneDeviation:
    def test_flat(self):
        pts = Surface.from_polygon(OUTER).points
        assert plane_deviation(pts) == pytest.approx(0.0, abs=1e-9)

    def test_sloped_plane_is_planar(self):
        sloped = [(0, 0, 0), (1000, 0, 0), (1000, 1000, 500), (0, 1000, 500)]
        assert plane_deviation(Surface.from_polygon(sloped).points) == pytest.approx(0.0, abs=1e-6)

    def test_warped(self):
        warped = [(0, 0, 0), (1000, 0, 0), (1000, 1000, 0), (0, 1000, 200)]
        assert plane_deviation(Surface.from_polygon(warped).points) > 1.0


class TestLoopExtractor:
    def test_single_outer(self):
        loops = LoopExtractor().extract(Surface.from_polygon(OUTER))
        assert len(loops) == 1
        assert loops.outer.kind == LoopKind.OUTER
        assert loops.openings == []

    def test_outer_first_regardless_of_edge_order(self):
        surface = Surface.from_polygon(HOLE_A)
        surface.edges += Surface.from_polygon(OUTER).edges
        loops = LoopExtractor().extract(surface)
        assert len(loops) == 2
        assert loops.outer.plan_polygon().area == pytest.approx(80_000_000)
        assert loops[1].kind == LoopKind.OPENING

    def test_orientation(self):
        cw_outer = list(reversed(OUTER))
        loops = LoopExtractor().extract(Surface.from_polygon(cw_outer, holes=[HOLE_A, HOLE_B]))
        assert _plan_signed_area(loops.outer.curves) > 0
        for opening in loops.openings:
            assert _plan_signed_area(opening.curves) < 0

    def test_release_on_exit(self):
        with LoopExtractor().extract(Surface.from_polygon(OUTER, holes=[HOLE_A])) as loops:
            assert not loops.outer.released
        assert all(loop.released for loop in loops)

    def test_none_surface(self):
        with pytest.raises(ArgumentError):
            LoopExtractor().extract(None)

    def test_empty_surface(self):
        with pytest.raises(GeometryError, match="no boundary edges"):
            LoopExtractor().extract(Surface())

    def test_non_planar(self):
        warped = [(0, 0, 0), (1000, 0, 0), (1000, 1000, 0), (0, 1000, 200)]
        with pytest.raises(GeometryError, match="not planar"):
            LoopExtractor().extract(Surface.from_polygon(warped))

    def test_vertical_surface_has_no_plan_area(self):
        wall = [(0, 0, 0), (1000, 0, 0), (1000, 0, 3000), (0, 0, 3000)]
        with pytest.raises(GeometryError, match="no plan area"):
            LoopExtractor().extract(Surface.from_polygon(wall))

    def test_self_intersecting(self):
        bowtie = [(0, 0, 0), (3000, 1000, 0), (3000, 0, 0), (0, 2000, 0)]
        with pytest.raises(GeometryError, match="intersects itself"):
            LoopExtractor().extract(Surface.from_polygon(bowtie))

    def test_hole_outside_outer(self):
        outside = [(20000, 0, 3000), (21000, 0, 3000), (21000, 1000, 3000)]
        with pytest.raises(GeometryError, match="not inside"):
            LoopExtractor().extract(Surface.from_polygon(OUTER, holes=[outside]))

    def test_overlapping_holes(self):
        shifted = [(x + 500, y + 500, z) for x, y, z in HOLE_A]
        with pytest.raises(GeometryError, match="overlap"):
            LoopExtractor().extract(Surface.from_polygon(OUTER, holes=[HOLE_A, shifted]))

    def test_loose_planarity_tolerance(self):
        warped = [(0, 0, 0), (1000, 0, 0), (1000, 1000, 0), (0, 1000, 2)]
        loops = LoopExtractor(planarity_tolerance=5.0).extract(Surface.from_polygon(warped))
        assert len(loops) == 1


def _corner_split_rectangle(a: float, b: float) -> list[Curve]:
    """Rectangle whose corner at x≈1000 is given as ``a`` on one edge and ``b`` on the next."""
    def p(x: float, y: float) -> Point3D:
        return Point3D(x=x, y=y, z=0)

    return [
        Curve(start=p(0, 0), end=p(a, 0)),
        Curve(start=p(b, 0), end=p(1000, 500)),
        Curve(start=p(1000, 500), end=p(0, 500)),
        Curve(start=p(0, 500), end=p(0, 0)),
    ]


class TestVertexMerging:
    def test_endpoints_straddling_half_cell(self):
        chains = chain_edges(_corner_split_rectangle(1000.0015, 1000.00149))
        assert len(chains) == 1
        assert len(chains[0]) == 4

    def test_endpoints_straddling_cell_edge(self):
        chains = chain_edges(_corner_split_rectangle(1000.0019999, 1000.0020001))
        assert len(chains) == 1

    def test_points_beyond_tolerance_stay_apart(self):
        with pytest.raises(GeometryError, match="not closed"):
            chain_edges(_corner_split_rectangle(1000.0, 1000.5))

    def test_vertex_index(self):
        index = VertexIndex(tolerance=1e-3)
        a = index.add(Point3D(x=0.0009999, y=0, z=0))
        b = index.add(Point3D(x=0.0010001, y=0, z=0))
        c = index.add(Point3D(x=0.01, y=0, z=0))
        assert a == b
        assert c != a
        assert len(index.points) == 2

    def test_extractor_accepts_straddling_surface(self):
        loops = LoopExtractor().extract(Surface(edges=_corner_split_rectangle(1000.0015, 1000.00149)))
        assert len(loops) == 1


class TestNonFiniteBoundary:
    def test_plane_deviation_raises_geometry_error(self):
        points = [
            Point3D(x=0, y=0, z=0),
            Point3D(x=1000, y=0, z=0),
            Point3D.model_construct(x=1000, y=1000, z=float("nan")),
        ]
        with pytest.raises(GeometryError, match="non-finite"):
            plane_deviation(points)
