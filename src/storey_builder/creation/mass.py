"""Mass creation: solid → direct shape.

Conversion is an ordered list of strategies; the first one that succeeds
wins. By default a closed boundary representation is tried first and a plain
polygon mesh second. If every strategy fails, one ConversionError is raised
carrying the first (primary) failure as its cause and the full attempt log.
"""

from __future__ import annotations

import abc
import logging
from collections import Counter
from dataclasses import dataclass, field

import numpy as np

from storey_builder.config import MM_PER_FOOT, PLANARITY_TOLERANCE_MM, POINT_TOLERANCE_MM
from storey_builder.creation.loops import VertexIndex, chain_edges, plane_deviation
from storey_builder.creation.transactions import TransactionCoordinator
from storey_builder.errors import ArgumentError, ConversionError, GeometryError
from storey_builder.models.document import Document
from storey_builder.models.elements import DirectShape, ShapeFace, ShapeGeometry, ShapeKind
from storey_builder.models.geometry import Curve, Point3D
from storey_builder.models.surfaces import Solid, Surface

logger = logging.getLogger(__name__)


class _VertexTable:
    """Shared vertex list in feet; points within tolerance share one index."""

    def __init__(self, tolerance: float = POINT_TOLERANCE_MM):
        self._merge = VertexIndex(tolerance)
        self.vertices: list[Point3D] = []

    def index(self, p: Point3D) -> int:
        vid = self._merge.add(p)
        if vid == len(self.vertices):
            self.vertices.append(
                Point3D(x=p.x / MM_PER_FOOT, y=p.y / MM_PER_FOOT, z=p.z / MM_PER_FOOT)
            )
        return vid


def _loop_area(chain: list[Curve]) -> float:
    """Area of a planar loop in 3D (half the norm of the summed cross products)."""
    pts = np.array([c.start.as_tuple() for c in chain], dtype=float)
    total = np.cross(pts, np.roll(pts, -1, axis=0)).sum(axis=0)
    return float(np.linalg.norm(total)) / 2.0


def _face_chains(face: Surface, number: int) -> list[list[Curve]]:
    """Closed loops of a planar face, largest first."""
    if not face.edges:
        raise GeometryError(f"Face {number} has no edges")
    if plane_deviation(face.points) > PLANARITY_TOLERANCE_MM:
        raise GeometryError(f"Face {number} is not planar")
    chains = chain_edges(face.edges)
    return sorted(chains, key=_loop_area, reverse=True)


class ConversionStrategy(abc.ABC):
    """One way of turning a solid into shape geometry."""

    name: str = ""

    @abc.abstractmethod
    def convert(self, solid: Solid) -> ShapeGeometry:
        """Return geometry, or raise GeometryError/ValueError."""


class BRepConversion(ConversionStrategy):
    """Closed boundary representation: faces keep their holes, no open edges."""

    name = "brep"

    def convert(self, solid: Solid) -> ShapeGeometry:
        if not solid.faces:
            raise GeometryError("Solid has no faces")
        table = _VertexTable()
        edge_use: Counter = Counter()
        faces = []
        for n, face in enumerate(solid.faces, start=1):
            loops = []
            for chain in _face_chains(face, n):
                loops.append([table.index(c.start) for c in chain])
                for c in chain:
                    edge_use[frozenset((table.index(c.start), table.index(c.end)))] += 1
            faces.append(ShapeFace(loops=loops))

        open_edges = sum(1 for uses in edge_use.values() if uses != 2)
        if open_edges:
            raise GeometryError(
                f"Solid is not closed: {open_edges} edges are not shared by exactly two faces"
            )
        return ShapeGeometry(kind=ShapeKind.BREP, vertices=table.vertices, faces=faces)


class MeshConversion(ConversionStrategy):
    """Polygon mesh: one loop per face, open shells allowed."""

    name = "mesh"

    def convert(self, solid: Solid) -> ShapeGeometry:
        if not solid.faces:
            raise GeometryError("Solid has no faces")
        table = _VertexTable()
        faces = []
        for n, face in enumerate(solid.faces, start=1):
            chains = _face_chains(face, n)
            if len(chains) != 1:
                raise GeometryError(f"Face {n} has holes, mesh faces must be a single loop")
            faces.append(ShapeFace(loops=[[table.index(c.start) for c in chains[0]]]))
        return ShapeGeometry(kind=ShapeKind.MESH, vertices=table.vertices, faces=faces)


DEFAULT_STRATEGIES: tuple[ConversionStrategy, ...] = (BRepConversion(), MeshConversion())


@dataclass
class ConversionResult:
    """Geometry from the winning strategy, plus the strategies that failed first."""

    geometry: ShapeGeometry
    strategy: str
    failed_attempts: list[tuple[str, Exception]] = field(default_factory=list)


def convert_solid(
    solid: Solid,
    strategies: tuple[ConversionStrategy, ...] | list[ConversionStrategy] = DEFAULT_STRATEGIES,
) -> ConversionResult:
    """Try each strategy in order; first success wins."""
    if not strategies:
        raise ArgumentError("At least one conversion strategy is required")
    attempts: list[tuple[str, Exception]] = []
    for strategy in strategies:
        try:
            geometry = strategy.convert(solid)
        except ValueError as e:
            logger.debug("Conversion '%s' failed: %s", strategy.name, e)
            attempts.append((strategy.name, e))
            continue
        return ConversionResult(geometry=geometry, strategy=strategy.name, failed_attempts=attempts)

    _, primary = attempts[0]
    raise ConversionError(
        f"Could not convert solid: {primary}", attempts=attempts
    ) from primary


def create_mass(
    document: Document,
    solid: Solid | None,
    category: str | None,
    name: str = "",
    strategies: tuple[ConversionStrategy, ...] | list[ConversionStrategy] = DEFAULT_STRATEGIES,
) -> DirectShape:
    """Create a direct shape for a building volume.

    The solid is converted before the document is touched, so a failed
    conversion leaves no empty shape behind.

    Raises:
        ArgumentError: solid or category missing, or category unknown.
        ConversionError: every strategy failed.
    """
    if document is None:
        raise ArgumentError("document is required")
    if solid is None:
        raise ArgumentError("solid is required")
    if not category or document.get_category(category) is None:
        raise ArgumentError(f"Unknown category '{category}'. Available: {document.categories}")

    result = convert_solid(solid, strategies)
    if result.failed_attempts:
        failed = ", ".join(f"{n}: {e}" for n, e in result.failed_attempts)
        logger.warning("Fell back to '%s' conversion (%s)", result.strategy, failed)

    with TransactionCoordinator(document).scope("Create mass"):
        shape = document.create_direct_shape(category, result.geometry, name=name or solid.name)
    return shape
