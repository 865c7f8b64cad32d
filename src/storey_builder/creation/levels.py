"""Level lookup and creation.

Levels are keyed by name. Asking for an existing name moves that level to
the requested elevation instead of creating a duplicate, so running the same
batch twice reuses the levels of the first run.
"""

from __future__ import annotations

import logging
import math

from storey_builder.config import MM_PER_FOOT
from storey_builder.errors import ArgumentError
from storey_builder.models.document import Document
from storey_builder.models.elements import Level
from storey_builder.models.surfaces import BuildingFloor


logger = logging.getLogger(__name__)


def level_name(prefix: str, index: int) -> str:
    """Name of the level for the 0-based floor index: '<prefix> <index + 1>'."""
    return f"{prefix} {index + 1}"


def requested_elevation(floor: BuildingFloor) -> float:
    """Top of a building floor in model units (feet).

    Highest Z over every surface of the floor, converted from millimetres.
    Surfaces without edges do not contribute. Non-finite coordinates
    raise ArgumentError.
    """
    points = [p for surface in floor for p in surface.points]
    if not points:
        raise ArgumentError("Cannot compute an elevation for a floor without surface geometry")
    if not all(math.isfinite(c) for p in points for c in p.as_tuple()):
        raise ArgumentError("Surface coordinates must be finite numbers")
    return max(p.z for p in points) / MM_PER_FOOT


class LevelDirectory:
    """Find-or-create access to the levels of a document."""

    def __init__(self, document: Document):
        self.document = document

    def find(self, name: str) -> Level | None:
        return self.document.get_level(name)

    def find_or_create(self, name: str, elevation: float) -> Level:
        """Return the level called ``name``, placed at ``elevation``.

        An existing level is moved in place (every holder sees the change);
        otherwise a new level is created.
        """
        level = self.find(name)
        if level is not None:
            if level.elevation != elevation:
                logger.info(
                    "Moving level '%s' from %.3f to %.3f ft", name, level.elevation, elevation
                )
            self.document.set_level_elevation(level, elevation)
            return level

        logger.info("Creating level '%s' at %.3f ft", name, elevation)
        return self.document.create_level(elevation, name)
