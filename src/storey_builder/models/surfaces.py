"""Input geometry: surfaces, boundary loops and solids (millimetres).

A Surface is a planar face described by its boundary edges. Edges may come
in any order and direction; the loop extractor chains and orients them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, PrivateAttr

from storey_builder.models.geometry import Curve, Point2D, Point3D, Polygon2D


def _ring(points: list[tuple[float, float, float]]) -> list[Curve]:
    """Closed chain of curves through the given points."""
    pts = [Point3D(x=p[0], y=p[1], z=p[2]) for p in points]
    return [Curve(start=pts[i], end=pts[(i + 1) % len(pts)]) for i in range(len(pts))]


class Surface(BaseModel):
    """A planar roof/floor face bounded by straight edges."""

    name: str = ""
    edges: list[Curve] = Field(default_factory=list)

    @classmethod
    def from_polygon(
        cls,
        outer: list[tuple[float, float, float]],
        holes: list[list[tuple[float, float, float]]] | None = None,
        name: str = "",
    ) -> Surface:
        """Build a surface from an outer ring and optional hole rings (x, y, z tuples)."""
        edges = _ring(outer)
        for hole in holes or []:
            edges.extend(_ring(hole))
        return cls(name=name, edges=edges)

    @classmethod
    def rectangle(
        cls,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        z: float,
        name: str = "",
    ) -> Surface:
        """Horizontal rectangular surface at height z."""
        return cls.from_polygon([(x0, y0, z), (x1, y0, z), (x1, y1, z), (x0, y1, z)], name=name)

    @property
    def points(self) -> list[Point3D]:
        """All edge endpoints (with repeats)."""
        return [p for edge in self.edges for p in (edge.start, edge.end)]

    @property
    def max_z(self) -> float:
        if not self.edges:
            raise ValueError("Surface has no edges")
        return max(p.z for p in self.points)


# One physical story's worth of surfaces, all anchored to the same level.
BuildingFloor = list[Surface]


class LoopKind(str, Enum):
    """Role of a boundary loop within its surface."""

    OUTER = "outer"
    OPENING = "opening"


class BoundaryLoop(BaseModel):
    """A closed, oriented chain of curves.

    Loops are owned by the surface-processing step that extracted them and
    are released once the floor or opening they describe has been created.
    """

    kind: LoopKind
    curves: list[Curve]
    _released: bool = PrivateAttr(default=False)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Drop the curves. Safe to call more than once."""
        self.curves = []
        self._released = True

    @property
    def vertices(self) -> list[Point3D]:
        """Loop vertices in order (start point of each curve)."""
        if self._released:
            raise ValueError("Boundary loop has been released")
        return [c.start for c in self.curves]

    def plan_polygon(self, scale: float = 1.0) -> Polygon2D:
        """Project onto the XY plane, dividing coordinates by ``scale``."""
        return Polygon2D(
            vertices=[Point2D(x=v.x / scale, y=v.y / scale) for v in self.vertices]
        )


class Solid(BaseModel):
    """A volume bounded by planar faces (millimetres)."""

    name: str = ""
    faces: list[Surface] = Field(default_factory=list)

    @classmethod
    def extrude(
        cls,
        outline: list[tuple[float, float]],
        base_z: float,
        height: float,
        name: str = "",
    ) -> Solid:
        """Prism from a plan outline: bottom, top and one side face per edge."""
        if height <= 0:
            raise ValueError("Extrusion height must be positive")
        top_z = base_z + height
        bottom = Surface.from_polygon([(x, y, base_z) for x, y in reversed(outline)], name="Bottom")
        top = Surface.from_polygon([(x, y, top_z) for x, y in outline], name="Top")
        sides = []
        n = len(outline)
        for i in range(n):
            (ax, ay), (bx, by) = outline[i], outline[(i + 1) % n]
            sides.append(
                Surface.from_polygon(
                    [(ax, ay, base_z), (bx, by, base_z), (bx, by, top_z), (ax, ay, top_z)],
                    name=f"Side {i + 1}",
                )
            )
        return cls(name=name, faces=[bottom, top, *sides])
