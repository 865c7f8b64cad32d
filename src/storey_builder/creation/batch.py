"""Batch floor creation: building floors → levels → floors with openings.

Floor ``i`` of the input gets the level '<prefix> <i + 1>', placed at the
highest point of its surfaces. Each surface becomes one floor in the i-th
output bucket, in surface order.

All argument checks run before the document is touched. The run then
commits as it goes: the whole batch sits in one scope, split by the
per-surface commits of FloorBuilder, and nothing is rolled back if a later
floor fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from storey_builder.config import DEFAULT_LEVEL_PREFIX, BuildSettings, FailurePolicy
from storey_builder.creation.floors import FloorBuilder, resolve_floor_type
from storey_builder.creation.levels import LevelDirectory, level_name, requested_elevation
from storey_builder.creation.loops import LoopExtractor
from storey_builder.creation.transactions import TransactionCoordinator
from storey_builder.errors import ArgumentError, GeometryError
from storey_builder.models.document import Document
from storey_builder.models.elements import Floor, FloorType, Level
from storey_builder.models.surfaces import BuildingFloor

logger = logging.getLogger(__name__)


@dataclass
class SurfaceFailure:
    """A surface (or one of its openings) that did not make it into the model."""

    floor_index: int
    surface_index: int
    error: GeometryError

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class FloorBatchReport:
    """Everything a batch run produced."""

    buckets: list[list[Floor]] = field(default_factory=list)
    levels: list[Level] = field(default_factory=list)
    failures: list[SurfaceFailure] = field(default_factory=list)

    @property
    def floor_count(self) -> int:
        return sum(len(b) for b in self.buckets)

    @property
    def opening_count(self) -> int:
        return sum(len(f.openings) for b in self.buckets for f in b)


class FloorBatchOrchestrator:
    """Drives LevelDirectory and FloorBuilder over a list of building floors."""

    def __init__(
        self,
        document: Document,
        settings: BuildSettings | None = None,
        extractor: LoopExtractor | None = None,
    ):
        if document is None:
            raise ArgumentError("document is required")
        self.document = document
        self.settings = settings or BuildSettings()
        self.extractor = extractor or LoopExtractor()

    def _check(
        self,
        floors: list[BuildingFloor] | None,
        floor_type: FloorType | str | None,
    ) -> tuple[list[BuildingFloor], FloorType, list[float]]:
        """Validate every input. Raises ArgumentError, never mutates."""
        if floors is None:
            raise ArgumentError("floors is required")
        floors = list(floors)

        if floor_type is None:
            floor_type = self.settings.floor_type
        resolved = resolve_floor_type(self.document, floor_type)

        elevations = []
        for i, floor in enumerate(floors):
            if floor is None:
                raise ArgumentError(f"floors[{i}] is None")
            for j, surface in enumerate(floor):
                if surface is None:
                    raise ArgumentError(f"floors[{i}][{j}] is None")
            try:
                elevations.append(requested_elevation(floor))
            except ArgumentError as e:
                raise ArgumentError(f"floors[{i}]: {e}") from e
        return floors, resolved, elevations

    def run(
        self,
        floors: list[BuildingFloor] | None,
        floor_type: FloorType | str | None = None,
    ) -> FloorBatchReport:
        """Create levels and floors for every building floor.

        Raises:
            ArgumentError: bad input; the document is untouched.
            GeometryError: only with FailurePolicy.ABORT_BATCH, when a surface
                cannot be decomposed. Floors built before it stay committed.
        """
        floors, resolved_type, elevations = self._check(floors, floor_type)
        prefix = self.settings.level_prefix
        policy = self.settings.failure_policy

        coordinator = TransactionCoordinator(self.document)
        directory = LevelDirectory(self.document)
        builder = FloorBuilder(coordinator, self.extractor)
        report = FloorBatchReport()

        logger.info(
            "Creating floors for %d building floors (type '%s', prefix '%s')",
            len(floors), resolved_type.name, prefix,
        )
        with coordinator.scope("Create floors"):
            for i, floor in enumerate(floors):
                bucket: list[Floor] = []
                report.buckets.append(bucket)
                level = directory.find_or_create(level_name(prefix, i), elevations[i])
                report.levels.append(level)

                for j, surface in enumerate(floor):
                    result = builder.build_floor(surface, level, resolved_type)
                    for error in result.errors:
                        error.floor_index = i
                        error.surface_index = j
                        report.failures.append(SurfaceFailure(i, j, error))

                    if result.ok:
                        bucket.append(result.floor)
                        continue
                    if policy is FailurePolicy.ABORT_BATCH:
                        raise result.errors[0]
                    if policy is FailurePolicy.ABORT_FLOOR:
                        logger.warning(
                            "Abandoning remaining %d surfaces of floor %d",
                            len(floor) - j - 1, i,
                        )
                        break

        logger.info(
            "Created %d floors, %d openings, %d failures",
            report.floor_count, report.opening_count, len(report.failures),
        )
        return report


def create_floors(
    document: Document,
    floors: list[BuildingFloor] | None,
    floor_type: FloorType | str | None = None,
    level_prefix: str = DEFAULT_LEVEL_PREFIX,
    failure_policy: FailurePolicy = FailurePolicy.SKIP_SURFACE,
) -> list[list[Floor]]:
    """Create one level per building floor and one floor per surface.

    Returns the created floors grouped per building floor, in input order.
    """
    settings = BuildSettings(level_prefix=level_prefix, failure_policy=failure_policy)
    return FloorBatchOrchestrator(document, settings).run(floors, floor_type).buckets
