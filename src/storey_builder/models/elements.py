"""Model elements: levels, floor types, floors, openings, direct shapes.

All lengths are in model units (feet). Element IDs use IFC-compatible
GlobalIds so the same ID appears in the JSON document and the IFC export.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from storey_builder.models.geometry import Point3D, Polygon2D
from storey_builder.models.ifc_id import generate_ifc_id


class Level(BaseModel):
    """A named horizontal elevation reference (maps to IfcBuildingStorey).

    Elevation is absolute, in feet. The name is unique within a document.
    """

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = Field(min_length=1, description="Level name, e.g. 'Dynamo Level 1'")
    elevation: float = Field(default=0.0, description="Absolute elevation in feet")


class ElementType(BaseModel):
    """A read-only type template loaded in the document.

    The category tells which kind of element the template builds. Only the
    'Floors' variant (FloorType) can be used to create floors.
    """

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = Field(min_length=1)
    category: str = Field(description="Revit-style category name, e.g. 'Floors', 'Walls'")


class FloorType(ElementType):
    """Construction template applied to created floors."""

    category: str = "Floors"
    thickness: float = Field(default=1.0, gt=0, description="Floor thickness in feet")
    is_structural: bool = Field(default=True, description="Pset_SlabCommon.LoadBearing")

    @model_validator(mode="after")
    def floors_category(self) -> FloorType:
        if self.category != "Floors":
            raise ValueError(f"FloorType must have category 'Floors', got '{self.category}'")
        return self


class Opening(BaseModel):
    """A hole cut into a committed floor (maps to IfcOpeningElement)."""

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = ""
    host_id: str = Field(description="GlobalId of the host floor")
    outline: Polygon2D

    @property
    def area(self) -> float:
        return self.outline.area


class Floor(BaseModel):
    """A floor slab anchored to a level, with zero or more openings."""

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = ""
    level_id: str = Field(description="GlobalId of the owning level")
    floor_type_id: str = Field(description="GlobalId of the floor type")
    outline: Polygon2D
    structural: bool = True
    openings: list[Opening] = Field(default_factory=list)

    @property
    def gross_area(self) -> float:
        """Outline area, openings not deducted."""
        return self.outline.area

    @property
    def area(self) -> float:
        """Net area: outline minus openings."""
        return self.outline.area - sum(o.area for o in self.openings)


class ShapeKind(str, Enum):
    """How a direct shape's geometry was built.

    BREP: closed boundary representation (every edge shared by two faces)
    MESH: polygon mesh, may be open, faces without holes
    """

    BREP = "brep"
    MESH = "mesh"


class ShapeFace(BaseModel):
    """A face as vertex-index loops; the first loop is the outer boundary."""

    loops: list[list[int]] = Field(min_length=1)


class ShapeGeometry(BaseModel):
    """Converted geometry of a direct shape (feet)."""

    kind: ShapeKind
    vertices: list[Point3D] = Field(default_factory=list)
    faces: list[ShapeFace] = Field(default_factory=list)


class DirectShape(BaseModel):
    """A free-form element built from a solid (maps to IfcBuildingElementProxy)."""

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = ""
    category: str
    geometry: ShapeGeometry | None = None
