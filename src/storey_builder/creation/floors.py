"""Floor creation from a single surface.

For each surface:
1. extract boundary loops (outer first, then openings)
2. create the floor from the outer loop
3. commit, because openings can only be cut into a floor that already exists
4. cut one opening per remaining loop
5. release the loops

A surface that cannot be decomposed yields no floor; an opening that does not
fit its floor is skipped. Both are reported, neither raises. What to do about
them is up to the caller (see FloorBatchOrchestrator).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from storey_builder.config import MM_PER_FOOT
from storey_builder.creation.loops import LoopExtractor
from storey_builder.creation.transactions import TransactionCoordinator
from storey_builder.errors import ArgumentError, GeometryError
from storey_builder.models.document import Document
from storey_builder.models.elements import Floor, FloorType, Level
from storey_builder.models.geometry import Polygon2D
from storey_builder.models.surfaces import BoundaryLoop, Surface

logger = logging.getLogger(__name__)


def resolve_floor_type(document: Document, floor_type: object) -> FloorType:
    """Check a floor type argument once, at the boundary.

    Accepts a FloorType loaded in the document, the name of one, or None
    (the document's default floor type). Anything else raises ArgumentError.
    """
    if floor_type is None:
        default = document.default_floor_type
        if default is None:
            raise ArgumentError("floor_type is required: the document has no default floor type")
        return default

    if isinstance(floor_type, str):
        resolved = document.get_floor_type(floor_type)
        if resolved is None:
            available = [ft.name for ft in document.floor_types]
            raise ArgumentError(f"Unknown floor type '{floor_type}'. Available: {available}")
        return resolved

    if not isinstance(floor_type, FloorType):
        kind = getattr(floor_type, "category", None) or type(floor_type).__name__
        raise ArgumentError(f"floor_type must be a floor type, got '{kind}'")

    loaded = document.get_floor_type_by_id(floor_type.global_id)
    if loaded is None:
        raise ArgumentError(f"Floor type '{floor_type.name}' is not loaded in this document")
    return loaded


def to_model_outline(loop: BoundaryLoop) -> Polygon2D:
    """Plan outline of a loop in model units."""
    return loop.plan_polygon(scale=MM_PER_FOOT)


@dataclass
class FloorBuildResult:
    """Outcome of building one surface: the floor (if any) and recoverable errors."""

    floor: Floor | None
    errors: list[GeometryError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.floor is not None


class FloorBuilder:
    """Creates one floor with openings per surface, inside an open scope."""

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        extractor: LoopExtractor | None = None,
    ):
        self.coordinator = coordinator
        self.document = coordinator.document
        self.extractor = extractor or LoopExtractor()

    def build_floor(
        self,
        surface: Surface,
        level: Level,
        floor_type: FloorType,
    ) -> FloorBuildResult:
        """Build the floor for one surface on ``level``."""
        try:
            loops = self.extractor.extract(surface)
        except GeometryError as e:
            logger.warning("Skipping surface %r: %s", surface.name, e)
            return FloorBuildResult(floor=None, errors=[e])

        errors: list[GeometryError] = []
        with loops:
            try:
                floor = self.document.new_floor(
                    to_model_outline(loops.outer),
                    floor_type,
                    level,
                    structural=floor_type.is_structural,
                    name=surface.name,
                )
            except GeometryError as e:
                logger.warning("Skipping surface %r: %s", surface.name, e)
                return FloorBuildResult(floor=None, errors=[e])

            # Openings need the floor to be durable in the model.
            self.coordinator.force_intermediate_commit()

            for index, loop in enumerate(loops.openings, start=1):
                try:
                    self.document.new_opening(floor, to_model_outline(loop))
                except GeometryError as e:
                    e.loop_index = index
                    logger.warning("Skipping opening %d of floor %s: %s", index, floor.global_id, e)
                    errors.append(e)

        return FloorBuildResult(floor=floor, errors=errors)
