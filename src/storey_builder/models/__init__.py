"""Document and geometry models."""

from storey_builder.models.ifc_id import generate_ifc_id
from storey_builder.models.geometry import Curve, Point2D, Point3D, Polygon2D
from storey_builder.models.surfaces import (
    BoundaryLoop,
    BuildingFloor,
    LoopKind,
    Solid,
    Surface,
)
from storey_builder.models.elements import (
    DirectShape,
    ElementType,
    Floor,
    FloorType,
    Level,
    Opening,
    ShapeFace,
    ShapeGeometry,
    ShapeKind,
)
from storey_builder.models.document import Document, TransactionRecord

__all__ = [
    "generate_ifc_id",
    "Curve",
    "Point2D",
    "Point3D",
    "Polygon2D",
    "BoundaryLoop",
    "BuildingFloor",
    "LoopKind",
    "Solid",
    "Surface",
    "DirectShape",
    "ElementType",
    "Floor",
    "FloorType",
    "Level",
    "Opening",
    "ShapeFace",
    "ShapeGeometry",
    "ShapeKind",
    "Document",
    "TransactionRecord",
]
