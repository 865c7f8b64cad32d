"""IFC export via ifcopenshell.

Writes a Document as IFC 2x3:
- levels → IfcBuildingStorey
- floors → IfcSlab (FLOOR), top face at the level elevation
- openings → IfcOpeningElement voiding their slab
- direct shapes → IfcBuildingElementProxy with faceted geometry

The document is in feet; the IFC file is in metres. Storeys, slabs, openings
and proxies reuse the document GlobalIds.
"""

from __future__ import annotations

from pathlib import Path

import ifcopenshell

from storey_builder.config import METRES_PER_FOOT
from storey_builder.models.document import Document
from storey_builder.models.elements import DirectShape, Floor, Level, Opening, ShapeKind
from storey_builder.models.geometry import Polygon2D
from storey_builder.models.ifc_id import generate_ifc_id

# Openings overshoot the slab by this much (metres) for a clean boolean cut
_OPENING_OVERSHOOT = 0.01

_ORIGIN = (0.0, 0.0, 0.0)
_UP = (0.0, 0.0, 1.0)


def _m(feet: float) -> float:
    return feet * METRES_PER_FOOT


class IFCExporter:
    """Export a Document to an IFC file."""

    def __init__(self, document: Document):
        self.document = document
        self.file = ifcopenshell.file(schema="IFC2X3")
        header = self.file.wrapped_data.header()
        file_name = header.file_name_py()
        file_name.name = f"{document.name}.ifc"
        file_name.author = ("Storey Builder",)
        file_name.organization = ("",)
        self._body: ifcopenshell.entity_instance | None = None

    def export(self, output_path: str | Path) -> Path:
        """Write the document to ``output_path``. Returns the path."""
        output_path = Path(output_path)
        building = self._spatial_root()

        for level in sorted(self.document.levels, key=lambda lv: lv.elevation):
            storey = self.file.createIfcBuildingStorey(
                GlobalId=level.global_id,
                Name=level.name,
                CompositionType="ELEMENT",
                Elevation=_m(level.elevation),
            )
            self._aggregate(building, [storey])
            self._contain(storey, self._level_slabs(level))

        self._contain(building, [self._add_proxy(s) for s in self.document.direct_shapes])

        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.file.write(str(output_path))
        return output_path

    # ── Spatial structure ─────────────────────────────────────────────

    def _spatial_root(self) -> ifcopenshell.entity_instance:
        """Contexts, units, and the project → site → building chain."""
        world = self.file.createIfcGeometricRepresentationContext(
            ContextIdentifier="3D",
            ContextType="Model",
            CoordinateSpaceDimension=3,
            Precision=1e-5,
            WorldCoordinateSystem=self._axis(),
            TrueNorth=self.file.createIfcDirection((0.0, 1.0)),
        )
        self._body = self.file.createIfcGeometricRepresentationSubContext(
            ContextIdentifier="Body",
            ContextType="Model",
            ParentContext=world,
            TargetView="MODEL_VIEW",
        )
        units = self.file.createIfcUnitAssignment(
            Units=[
                self.file.createIfcSIUnit(UnitType=unit, Name=name)
                for unit, name in (
                    ("LENGTHUNIT", "METRE"),
                    ("AREAUNIT", "SQUARE_METRE"),
                    ("VOLUMEUNIT", "CUBIC_METRE"),
                    ("PLANEANGLEUNIT", "RADIAN"),
                )
            ]
        )
        project = self.file.createIfcProject(
            GlobalId=self.document.global_id,
            Name=self.document.name,
            UnitsInContext=units,
            RepresentationContexts=[world],
        )
        site = self.file.createIfcSite(
            GlobalId=generate_ifc_id(), Name="Default Site", CompositionType="ELEMENT"
        )
        building = self.file.createIfcBuilding(
            GlobalId=generate_ifc_id(), Name=self.document.name, CompositionType="ELEMENT"
        )
        self._aggregate(project, [site])
        self._aggregate(site, [building])
        return building

    def _aggregate(self, whole, parts: list) -> None:
        self.file.createIfcRelAggregates(
            GlobalId=generate_ifc_id(), RelatingObject=whole, RelatedObjects=parts
        )

    def _contain(self, structure, elements: list) -> None:
        if elements:
            self.file.createIfcRelContainedInSpatialStructure(
                GlobalId=generate_ifc_id(), RelatingStructure=structure, RelatedElements=elements
            )

    # ── Floors and openings ───────────────────────────────────────────

    def _level_slabs(self, level: Level) -> list[ifcopenshell.entity_instance]:
        """One slab per floor on the level. Openings void their slab only."""
        slabs = []
        for floor in self.document.floors_on_level(level):
            floor_type = self.document.get_floor_type_by_id(floor.floor_type_id)
            depth = _m(floor_type.thickness if floor_type else 1.0)
            bottom = _m(level.elevation) - depth

            slab = self._add_slab(floor, bottom, depth)
            for opening in floor.openings:
                self.file.createIfcRelVoidsElement(
                    GlobalId=generate_ifc_id(),
                    RelatingBuildingElement=slab,
                    RelatedOpeningElement=self._add_opening(opening, bottom, depth),
                )
            slabs.append(slab)
        return slabs

    def _prism(self, outline: Polygon2D, z: float, depth: float) -> dict:
        """Placement and body for a plan outline extruded up from z (metres)."""
        points = [self.file.createIfcCartesianPoint((_m(v.x), _m(v.y))) for v in outline.vertices]
        profile = self.file.createIfcArbitraryClosedProfileDef(
            ProfileType="AREA",
            OuterCurve=self.file.createIfcPolyline(Points=points + points[:1]),
        )
        body = self.file.createIfcExtrudedAreaSolid(
            SweptArea=profile,
            Position=self._axis(),
            ExtrudedDirection=self.file.createIfcDirection(_UP),
            Depth=depth,
        )
        return {
            "ObjectPlacement": self._placement((0.0, 0.0, z)),
            "Representation": self._product_shape("SweptSolid", body),
        }

    def _add_slab(self, floor: Floor, bottom: float, depth: float) -> ifcopenshell.entity_instance:
        slab = self.file.createIfcSlab(
            GlobalId=floor.global_id,
            Name=floor.name or "Floor",
            PredefinedType="FLOOR",
            **self._prism(floor.outline, bottom, depth),
        )
        load_bearing = self.file.createIfcPropertySingleValue(
            Name="LoadBearing",
            NominalValue=self.file.create_entity("IfcBoolean", floor.structural),
        )
        self.file.createIfcRelDefinesByProperties(
            GlobalId=generate_ifc_id(),
            RelatedObjects=[slab],
            RelatingPropertyDefinition=self.file.createIfcPropertySet(
                GlobalId=generate_ifc_id(), Name="Pset_SlabCommon", HasProperties=[load_bearing]
            ),
        )
        return slab

    def _add_opening(
        self, opening: Opening, bottom: float, depth: float
    ) -> ifcopenshell.entity_instance:
        """Opening cutting through the full slab depth."""
        return self.file.createIfcOpeningElement(
            GlobalId=opening.global_id,
            Name=opening.name or "Floor Opening",
            **self._prism(
                opening.outline, bottom - _OPENING_OVERSHOOT, depth + 2 * _OPENING_OVERSHOOT
            ),
        )

    # ── Direct shapes ─────────────────────────────────────────────────

    def _add_proxy(self, shape: DirectShape) -> ifcopenshell.entity_instance:
        """Proxy element with a faceted B-rep (closed) or a surface model (mesh)."""
        representation = None
        geometry = shape.geometry
        if geometry is not None and geometry.faces:
            points = [
                self.file.createIfcCartesianPoint((_m(v.x), _m(v.y), _m(v.z)))
                for v in geometry.vertices
            ]

            def bound(loop: list[int], outer: bool):
                poly = self.file.createIfcPolyLoop(Polygon=[points[i] for i in loop])
                if outer:
                    return self.file.createIfcFaceOuterBound(Bound=poly, Orientation=True)
                return self.file.createIfcFaceBound(Bound=poly, Orientation=True)

            faces = [
                self.file.createIfcFace(
                    Bounds=[bound(loop, n == 0) for n, loop in enumerate(face.loops)]
                )
                for face in geometry.faces
            ]
            if geometry.kind == ShapeKind.BREP:
                item = self.file.createIfcFacetedBrep(
                    Outer=self.file.createIfcClosedShell(CfsFaces=faces)
                )
                representation = self._product_shape("Brep", item)
            else:
                item = self.file.createIfcFaceBasedSurfaceModel(
                    FbsmFaces=[self.file.createIfcConnectedFaceSet(CfsFaces=faces)]
                )
                representation = self._product_shape("SurfaceModel", item)

        return self.file.createIfcBuildingElementProxy(
            GlobalId=shape.global_id,
            Name=shape.name or shape.category,
            ObjectType=shape.category,
            ObjectPlacement=self._placement(),
            Representation=representation,
        )

    # ── Small builders ────────────────────────────────────────────────

    def _product_shape(self, kind: str, item) -> ifcopenshell.entity_instance:
        return self.file.createIfcProductDefinitionShape(
            Representations=[
                self.file.createIfcShapeRepresentation(
                    ContextOfItems=self._body,
                    RepresentationIdentifier="Body",
                    RepresentationType=kind,
                    Items=[item],
                )
            ]
        )

    def _axis(self, origin: tuple[float, float, float] = _ORIGIN) -> ifcopenshell.entity_instance:
        return self.file.createIfcAxis2Placement3D(
            Location=self.file.createIfcCartesianPoint(origin),
            Axis=self.file.createIfcDirection(_UP),
            RefDirection=self.file.createIfcDirection((1.0, 0.0, 0.0)),
        )

    def _placement(self, origin: tuple[float, float, float] = _ORIGIN) -> ifcopenshell.entity_instance:
        return self.file.createIfcLocalPlacement(RelativePlacement=self._axis(origin))
