"""Geometric primitives for surfaces, loops and floor outlines."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, field_validator
from shapely.geometry import Polygon

# Coordinates closer than this compare equal (model units)
_EPS = 1e-6


class Point2D(BaseModel):
    """Plan point (model units). Compares equal within a small tolerance."""

    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float

    def distance_to(self, other: Point2D) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point2D):
            return NotImplemented
        return abs(self.x - other.x) <= _EPS and abs(self.y - other.y) <= _EPS

    def __hash__(self) -> int:
        return hash((round(self.x, 6), round(self.y, 6)))


class Point3D(BaseModel):
    """Space point (millimetres for input geometry, feet once converted)."""

    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    z: float

    def distance_to(self, other: Point3D) -> float:
        return math.dist(self.as_tuple(), other.as_tuple())

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class Curve(BaseModel):
    """A straight boundary edge between two 3D points."""

    start: Point3D
    end: Point3D

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    def reversed(self) -> Curve:
        """Same edge, opposite direction."""
        return Curve(start=self.end, end=self.start)


class Polygon2D(BaseModel):
    """Closed plan polygon, implicitly closed (first vertex is not repeated)."""

    vertices: list[Point2D]

    @field_validator("vertices")
    @classmethod
    def closed_ring(cls, v: list[Point2D]) -> list[Point2D]:
        if len(v) < 3:
            raise ValueError("Polygon needs at least 3 vertices")
        return v

    @classmethod
    def from_tuples(cls, vertices: list[tuple[float, float]]) -> Polygon2D:
        return cls(vertices=[Point2D(x=x, y=y) for x, y in vertices])

    def _edges(self):
        return zip(self.vertices, self.vertices[1:] + self.vertices[:1])

    @property
    def signed_area(self) -> float:
        """Shoelace area, positive for counter-clockwise vertex order."""
        return sum(a.x * b.y - b.x * a.y for a, b in self._edges()) / 2.0

    @property
    def area(self) -> float:
        return abs(self.signed_area)

    @property
    def perimeter(self) -> float:
        return sum(a.distance_to(b) for a, b in self._edges())

    @property
    def is_ccw(self) -> bool:
        return self.signed_area > 0

    def to_shapely(self) -> Polygon:
        """Shapely polygon for containment and validity checks."""
        return Polygon([(v.x, v.y) for v in self.vertices])
