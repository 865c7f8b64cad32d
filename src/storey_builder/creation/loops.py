"""Boundary loop extraction.

Decomposes a planar surface into closed boundary loops:
- the outer boundary first (counter-clockwise seen from +Z)
- then one loop per hole (clockwise), in the order they were found

Loops come back in a LoopSet, a context manager that releases every loop on
exit so curve data never outlives the surface iteration that used it.
"""

from __future__ import annotations

import itertools
import logging
import math
from collections import defaultdict
from collections.abc import Sequence

import numpy as np
from shapely.geometry import Polygon

from storey_builder.config import (
    MIN_LOOP_AREA_MM2,
    PLANARITY_TOLERANCE_MM,
    POINT_TOLERANCE_MM,
)
from storey_builder.errors import ArgumentError, GeometryError
from storey_builder.models.geometry import Curve, Point3D
from storey_builder.models.surfaces import BoundaryLoop, LoopKind, Surface

logger = logging.getLogger(__name__)


class VertexIndex:
    """Merges points closer than ``tolerance`` into one vertex id.

    Points are bucketed on a grid of cell size ``tolerance``; a lookup scans
    the 27 cells around the point, so two points within tolerance always
    meet, whichever side of a cell boundary they fall on.
    """

    def __init__(self, tolerance: float = POINT_TOLERANCE_MM):
        self.tolerance = tolerance
        self.points: list[Point3D] = []
        self._cells: dict[tuple[int, int, int], list[int]] = defaultdict(list)

    def _cell(self, p: Point3D) -> tuple[int, int, int]:
        t = self.tolerance
        return (math.floor(p.x / t), math.floor(p.y / t), math.floor(p.z / t))

    def add(self, p: Point3D) -> int:
        """Id of the vertex within tolerance of ``p``, creating one if none."""
        cx, cy, cz = self._cell(p)
        for dx, dy, dz in itertools.product((-1, 0, 1), repeat=3):
            for vid in self._cells.get((cx + dx, cy + dy, cz + dz), ()):
                if self.points[vid].distance_to(p) <= self.tolerance:
                    return vid
        vid = len(self.points)
        self.points.append(p)
        self._cells[(cx, cy, cz)].append(vid)
        return vid


def chain_edges(edges: list[Curve], tolerance: float = POINT_TOLERANCE_MM) -> list[list[Curve]]:
    """Chain unordered edges into closed loops by shared endpoints.

    Edges are flipped where needed so each loop runs head-to-tail. Every
    vertex must join exactly two edges, otherwise the boundary is open or
    non-manifold and GeometryError is raised.
    """
    index = VertexIndex(tolerance)
    ends: list[tuple[int, int]] = []
    incident: dict[int, list[int]] = defaultdict(list)
    for i, edge in enumerate(edges):
        a, b = index.add(edge.start), index.add(edge.end)
        if edge.length <= tolerance or a == b:
            raise GeometryError("Boundary has a zero-length edge")
        ends.append((a, b))
        incident[a].append(i)
        incident[b].append(i)

    for vid, joined in incident.items():
        if len(joined) != 2:
            p = index.points[vid]
            raise GeometryError(
                f"Boundary is not closed: vertex ({p.x:.1f}, {p.y:.1f}, {p.z:.1f}) "
                f"joins {len(joined)} edges"
            )

    used = [False] * len(edges)
    loops: list[list[Curve]] = []
    for first in range(len(edges)):
        if used[first]:
            continue
        used[first] = True
        loop = [edges[first]]
        start, current = ends[first]
        while current != start:
            nxt = next(i for i in incident[current] if not used[i])
            used[nxt] = True
            a, b = ends[nxt]
            if a == current:
                loop.append(edges[nxt])
                current = b
            else:
                loop.append(edges[nxt].reversed())
                current = a
        loops.append(loop)
    return loops


def plane_deviation(points: list[Point3D]) -> float:
    """Largest distance of any point from the best-fit plane (SVD)."""
    coords = np.array([p.as_tuple() for p in points], dtype=float)
    if not np.isfinite(coords).all():
        raise GeometryError("Boundary has non-finite coordinates")
    centered = coords - coords.mean(axis=0)
    try:
        _, _, vt = np.linalg.svd(centered, full_matrices=False)
    except np.linalg.LinAlgError as e:
        raise GeometryError(f"Cannot fit a plane to the boundary: {e}") from e
    normal = vt[-1]
    return float(np.abs(centered @ normal).max())


def _plan_ring(chain: list[Curve]) -> Polygon:
    return Polygon([(c.start.x, c.start.y) for c in chain])


def _orient(chain: list[Curve], ccw: bool) -> list[Curve]:
    """Return the chain running counter-clockwise (or clockwise) in plan."""
    if _plan_ring(chain).exterior.is_ccw == ccw:
        return list(chain)
    return [c.reversed() for c in reversed(chain)]


class LoopSet(Sequence):
    """Ordered boundary loops of one surface; index 0 is the outer loop."""

    def __init__(self, loops: list[BoundaryLoop]):
        if not loops:
            raise GeometryError("A loop set needs at least the outer loop")
        self._loops = list(loops)

    def __getitem__(self, index):
        return self._loops[index]

    def __len__(self) -> int:
        return len(self._loops)

    @property
    def outer(self) -> BoundaryLoop:
        return self._loops[0]

    @property
    def openings(self) -> list[BoundaryLoop]:
        return self._loops[1:]

    def release(self) -> None:
        for loop in self._loops:
            loop.release()

    def __enter__(self) -> LoopSet:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class LoopExtractor:
    """Turns a Surface into an outer loop plus opening loops."""

    def __init__(
        self,
        point_tolerance: float = POINT_TOLERANCE_MM,
        planarity_tolerance: float = PLANARITY_TOLERANCE_MM,
    ):
        self.point_tolerance = point_tolerance
        self.planarity_tolerance = planarity_tolerance

    def extract(self, surface: Surface) -> LoopSet:
        """Decompose a surface into oriented boundary loops.

        Raises:
            ArgumentError: surface is None.
            GeometryError: the boundary is empty, non-planar, open, degenerate,
                or has holes outside the outer loop or overlapping each other.
        """
        if surface is None:
            raise ArgumentError("surface is required")
        if not surface.edges:
            raise GeometryError("Surface has no boundary edges")

        deviation = plane_deviation(surface.points)
        if deviation > self.planarity_tolerance:
            raise GeometryError(
                f"Surface boundary is not planar (deviation {deviation:.2f} mm)"
            )

        chains = chain_edges(surface.edges, self.point_tolerance)

        rings: list[Polygon] = []
        for chain in chains:
            ring = _plan_ring(chain) if len(chain) >= 3 else None
            if ring is None or ring.area <= MIN_LOOP_AREA_MM2:
                raise GeometryError("Boundary loop has no plan area")
            if not ring.is_valid:
                raise GeometryError("Boundary loop intersects itself")
            rings.append(ring)

        outer_idx = max(range(len(rings)), key=lambda i: rings[i].area)
        outer_ring = rings[outer_idx]
        hole_idxs = [i for i in range(len(chains)) if i != outer_idx]
        for n, i in enumerate(hole_idxs):
            if not outer_ring.contains(rings[i]):
                raise GeometryError("Inner loop is not inside the outer boundary")
            for j in hole_idxs[n + 1:]:
                if rings[i].intersects(rings[j]):
                    raise GeometryError("Inner loops overlap")

        loops = [BoundaryLoop(kind=LoopKind.OUTER, curves=_orient(chains[outer_idx], ccw=True))]
        loops.extend(
            BoundaryLoop(kind=LoopKind.OPENING, curves=_orient(chains[i], ccw=False))
            for i in hole_idxs
        )
        logger.debug(
            "Surface %r: outer loop with %d curves, %d openings",
            surface.name, len(loops[0].curves), len(loops) - 1,
        )
        return LoopSet(loops)
