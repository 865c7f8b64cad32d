"""The target model: a document holding levels, floor types, floors and shapes.

Every mutating method requires an open transaction. Transactions are not
reentrant: one is open at a time, and work is only durable (visible to
operations that need committed elements, like cutting openings) after
commit. IDs use IFC-compatible GlobalIds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from storey_builder.config import DEFAULT_CATEGORIES, DEFAULT_FLOOR_TYPE_NAME
from storey_builder.errors import ArgumentError, GeometryError, TransactionError
from storey_builder.models.elements import (
    DirectShape,
    Floor,
    FloorType,
    Level,
    Opening,
    ShapeGeometry,
)
from storey_builder.models.geometry import Polygon2D
from storey_builder.models.ifc_id import generate_ifc_id


@dataclass
class TransactionRecord:
    """What one transaction created and modified, by GlobalId."""

    name: str
    created: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    committed: bool = False


class Document(BaseModel):
    """Top-level model, the single writer-owned session for a run.

    Units are feet. Elements loaded from JSON count as committed.
    """

    global_id: str = Field(default_factory=generate_ifc_id, description="IFC GlobalId")
    name: str = Field(default="Untitled Model", description="Document name")
    units: str = Field(default="feet", description="Model length unit. Only 'feet' supported.")
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    floor_types: list[FloorType] = Field(default_factory=list)
    default_floor_type_id: str | None = None
    levels: list[Level] = Field(default_factory=list)
    floors: list[Floor] = Field(default_factory=list)
    direct_shapes: list[DirectShape] = Field(default_factory=list)

    _transaction: TransactionRecord | None = PrivateAttr(default=None)
    _committed_ids: set[str] = PrivateAttr(default_factory=set)
    _history: list[TransactionRecord] = PrivateAttr(default_factory=list)

    @field_validator("units")
    @classmethod
    def only_feet(cls, v: str) -> str:
        if v != "feet":
            raise ValueError("Only 'feet' model units are currently supported")
        return v

    def model_post_init(self, __context: Any) -> None:
        self._committed_ids = set(self._all_ids())

    def _all_ids(self) -> list[str]:
        ids = [ft.global_id for ft in self.floor_types]
        ids += [lv.global_id for lv in self.levels]
        for floor in self.floors:
            ids.append(floor.global_id)
            ids += [o.global_id for o in floor.openings]
        ids += [s.global_id for s in self.direct_shapes]
        return ids

    @classmethod
    def create(
        cls,
        name: str = "Untitled Model",
        floor_type_name: str = DEFAULT_FLOOR_TYPE_NAME,
        floor_thickness: float = 1.0,
    ) -> Document:
        """New document with one floor type, set as the default."""
        from storey_builder.creation.transactions import TransactionCoordinator

        doc = cls(name=name)
        with TransactionCoordinator(doc).scope("Load floor types"):
            floor_type = doc.add_floor_type(
                FloorType(name=floor_type_name, thickness=floor_thickness)
            )
            doc.default_floor_type_id = floor_type.global_id
        return doc

    # ── File I/O ──────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> Document:
        """Load a document from a JSON file."""
        path = Path(path)
        return cls.model_validate_json(path.read_text())

    def save(self, path: str | Path) -> Path:
        """Save the document to a JSON file. Creates parent dirs if needed."""
        if self.in_transaction:
            raise TransactionError("Cannot save while a transaction is open")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))
        return path

    # ── Transactions ──────────────────────────────────────────────────

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    @property
    def history(self) -> list[TransactionRecord]:
        """Committed transactions, oldest first."""
        return list(self._history)

    def start_transaction(self, name: str) -> TransactionRecord:
        if self._transaction is not None:
            raise TransactionError(
                f"Cannot start '{name}': transaction '{self._transaction.name}' is still open"
            )
        self._transaction = TransactionRecord(name=name)
        return self._transaction

    def commit_transaction(self) -> TransactionRecord:
        record = self._transaction
        if record is None:
            raise TransactionError("No open transaction to commit")
        self._committed_ids.update(record.created)
        record.committed = True
        self._history.append(record)
        self._transaction = None
        return record

    def is_committed(self, global_id: str) -> bool:
        return global_id in self._committed_ids

    def _require_transaction(self, action: str) -> TransactionRecord:
        if self._transaction is None:
            raise TransactionError(f"Cannot {action} outside a transaction")
        return self._transaction

    # ── Lookups ───────────────────────────────────────────────────────

    def get_level(self, name: str) -> Level | None:
        """Find a level by exact name."""
        return next((lv for lv in self.levels if lv.name == name), None)

    def get_level_by_id(self, global_id: str) -> Level | None:
        return next((lv for lv in self.levels if lv.global_id == global_id), None)

    def get_floor_type(self, name: str) -> FloorType | None:
        """Find a floor type by name (case-insensitive)."""
        return next(
            (ft for ft in self.floor_types if ft.name.lower() == name.lower()), None
        )

    def get_floor_type_by_id(self, global_id: str) -> FloorType | None:
        return next((ft for ft in self.floor_types if ft.global_id == global_id), None)

    @property
    def default_floor_type(self) -> FloorType | None:
        if self.default_floor_type_id is None:
            return None
        return self.get_floor_type_by_id(self.default_floor_type_id)

    def get_floor(self, global_id: str) -> Floor | None:
        return next((f for f in self.floors if f.global_id == global_id), None)

    def floors_on_level(self, level: Level) -> list[Floor]:
        return [f for f in self.floors if f.level_id == level.global_id]

    def get_category(self, name: str) -> str | None:
        """Resolve a category name (case-insensitive) to its canonical spelling."""
        return next((c for c in self.categories if c.lower() == name.lower()), None)

    # ── Mutations (transaction required) ──────────────────────────────

    def add_floor_type(self, floor_type: FloorType) -> FloorType:
        """Load a floor type template into the document."""
        record = self._require_transaction("load a floor type")
        if self.get_floor_type(floor_type.name) is not None:
            raise ArgumentError(f"Floor type '{floor_type.name}' already exists")
        self.floor_types.append(floor_type)
        record.created.append(floor_type.global_id)
        return floor_type

    def create_level(self, elevation: float, name: str) -> Level:
        """Create a new level. Names are unique within the document."""
        record = self._require_transaction("create a level")
        if self.get_level(name) is not None:
            raise ArgumentError(f"Level '{name}' already exists")
        level = Level(name=name, elevation=elevation)
        self.levels.append(level)
        record.created.append(level.global_id)
        return level

    def set_level_elevation(self, level: Level, elevation: float) -> Level:
        """Move an existing level. The Level object is updated in place."""
        record = self._require_transaction("modify a level")
        if self.get_level_by_id(level.global_id) is not level:
            raise ArgumentError(f"Level '{level.name}' does not belong to this document")
        level.elevation = elevation
        record.modified.append(level.global_id)
        return level

    def new_floor(
        self,
        outline: Polygon2D,
        floor_type: FloorType,
        level: Level,
        structural: bool = True,
        name: str = "",
    ) -> Floor:
        """Create a floor from a plan outline on a level."""
        record = self._require_transaction("create a floor")
        if self.get_floor_type_by_id(floor_type.global_id) is None:
            raise ArgumentError(f"Floor type '{floor_type.name}' is not loaded in this document")
        if self.get_level_by_id(level.global_id) is None:
            raise ArgumentError(f"Level '{level.name}' does not belong to this document")
        if not outline.to_shapely().is_valid:
            raise GeometryError("Floor outline is not a simple polygon")
        floor = Floor(
            name=name or floor_type.name,
            level_id=level.global_id,
            floor_type_id=floor_type.global_id,
            outline=outline,
            structural=structural,
        )
        self.floors.append(floor)
        record.created.append(floor.global_id)
        return floor

    def new_opening(self, floor: Floor, outline: Polygon2D, name: str = "") -> Opening:
        """Cut an opening into a floor.

        The host floor must already be committed; the opening outline must lie
        inside the floor outline.
        """
        record = self._require_transaction("cut an opening")
        if self.get_floor(floor.global_id) is not floor:
            raise ArgumentError(f"Floor {floor.global_id} does not belong to this document")
        if not self.is_committed(floor.global_id):
            raise TransactionError(
                f"Floor {floor.global_id} must be committed before openings are cut in it"
            )
        hole = outline.to_shapely()
        if not hole.is_valid or hole.area <= 0:
            raise GeometryError("Opening outline is not a simple polygon")
        if not floor.outline.to_shapely().contains(hole):
            raise GeometryError(f"Opening does not lie inside floor {floor.global_id}")
        opening = Opening(name=name, host_id=floor.global_id, outline=outline)
        floor.openings.append(opening)
        record.created.append(opening.global_id)
        return opening

    def create_direct_shape(
        self,
        category: str,
        geometry: ShapeGeometry,
        name: str = "",
    ) -> DirectShape:
        """Create a free-form element in a known category."""
        record = self._require_transaction("create a direct shape")
        resolved = self.get_category(category)
        if resolved is None:
            raise ArgumentError(f"Unknown category '{category}'. Available: {self.categories}")
        shape = DirectShape(name=name, category=resolved, geometry=geometry)
        self.direct_shapes.append(shape)
        record.created.append(shape.global_id)
        return shape

    # ── Export shortcuts ──────────────────────────────────────────────

    def export_ifc(self, path: str | Path) -> Path:
        """Export the document to IFC. Returns the output path."""
        from storey_builder.export.ifc import IFCExporter

        return IFCExporter(self).export(path)

    def render_floorplan(self, level_name: str, path: str | Path, **kwargs) -> Path:
        """Render the floors of one level to PNG. Returns the output path."""
        from storey_builder.export.floorplan import render_floorplan

        level = self.get_level(level_name)
        if level is None:
            available = [lv.name for lv in self.levels]
            raise ArgumentError(f"Level '{level_name}' not found. Available: {available}")
        return render_floorplan(self, level, path, **kwargs)

    def validate(self) -> list:
        """Run document consistency checks. Returns list of errors."""
        from storey_builder.validators.document import validate_document

        return validate_document(self)

    # ── Query helpers ─────────────────────────────────────────────────

    def total_area(self) -> float:
        """Net floor area across all levels (square feet)."""
        return sum(f.area for f in self.floors)

    def summary(self) -> str:
        """Human-readable summary of the document."""
        lines = [self.name]
        lines.append(f"   Levels: {len(self.levels)}")
        lines.append(f"   Floors: {len(self.floors)}")
        lines.append(f"   Total floor area: {self.total_area():.1f} sq ft")
        for level in sorted(self.levels, key=lambda lv: lv.elevation):
            floors = self.floors_on_level(level)
            openings = sum(len(f.openings) for f in floors)
            lines.append(
                f"   {level.name} (elev {level.elevation:.2f} ft): "
                f"{len(floors)} floors, {openings} openings"
            )
        if self.direct_shapes:
            lines.append(f"   Direct shapes: {len(self.direct_shapes)}")
        return "\n".join(lines)
