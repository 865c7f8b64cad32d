"""Global configuration: units, tolerances, build settings."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

# Input geometry is in millimetres, the model length unit is the foot.
MM_PER_FOOT = 12 * 25.4

# Metres per model foot, used by the IFC exporter (IFC file is SI)
METRES_PER_FOOT = MM_PER_FOOT / 1000.0

DEFAULT_LEVEL_PREFIX = "Dynamo Level"

# Endpoints closer than this (mm) are the same vertex when chaining edges
POINT_TOLERANCE_MM = 1e-3

# Maximum distance (mm) of a boundary point from the surface's best-fit plane
PLANARITY_TOLERANCE_MM = 1.0

# Plan area (mm²) below which a loop is degenerate
MIN_LOOP_AREA_MM2 = 1e-6

DEFAULT_CATEGORIES = ("Mass", "Generic Models", "Floors")

DEFAULT_FLOOR_TYPE_NAME = "Generic 12\""


class FailurePolicy(str, Enum):
    """What the batch does when a surface cannot be decomposed into loops.

    SKIP_SURFACE: record the failure, continue with the next surface
    ABORT_FLOOR: record the failure, continue with the next building floor
    ABORT_BATCH: raise, leaving already committed floors in the model
    """

    SKIP_SURFACE = "skip-surface"
    ABORT_FLOOR = "abort-floor"
    ABORT_BATCH = "abort-batch"


class BuildSettings(BaseModel):
    """Options for a floor creation run. Loadable from a JSON file."""

    level_prefix: str = Field(
        default=DEFAULT_LEVEL_PREFIX,
        description="Prefix for generated level names ('<prefix> <n>')",
    )
    floor_type: str | None = Field(
        default=None,
        description="Floor type name; None uses the document's default type",
    )
    failure_policy: FailurePolicy = FailurePolicy.SKIP_SURFACE

    @classmethod
    def load(cls, path: str | Path) -> BuildSettings:
        """Load settings from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())
