"""Element creation against a Document.

- Loop extraction: surface → outer loop + opening loops
- Level directory: find-or-create levels by name
- Transactions: commit scopes, intermediate commits
- Floor builder: one floor (+ openings) per surface
- Batch: building floors → levels → floors
- Mass: solid → direct shape, with conversion fallback
"""

from storey_builder.creation.loops import LoopExtractor, LoopSet, VertexIndex
from storey_builder.creation.levels import LevelDirectory, level_name, requested_elevation
from storey_builder.creation.transactions import TransactionCoordinator
from storey_builder.creation.floors import FloorBuilder, FloorBuildResult, resolve_floor_type
from storey_builder.creation.batch import (
    FloorBatchOrchestrator,
    FloorBatchReport,
    SurfaceFailure,
    create_floors,
)
from storey_builder.creation.mass import (
    BRepConversion,
    ConversionResult,
    ConversionStrategy,
    MeshConversion,
    convert_solid,
    create_mass,
)

__all__ = [
    "LoopExtractor",
    "LoopSet",
    "VertexIndex",
    "LevelDirectory",
    "level_name",
    "requested_elevation",
    "TransactionCoordinator",
    "FloorBuilder",
    "FloorBuildResult",
    "resolve_floor_type",
    "FloorBatchOrchestrator",
    "FloorBatchReport",
    "SurfaceFailure",
    "create_floors",
    "BRepConversion",
    "ConversionResult",
    "ConversionStrategy",
    "MeshConversion",
    "convert_solid",
    "create_mass",
]
