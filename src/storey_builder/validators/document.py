"""Cross-element consistency checks for a Document.

Catches relationships the pydantic models can't check on their own:
level name uniqueness, dangling references, openings outside their host.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from storey_builder.models.document import Document
from storey_builder.models.ifc_id import is_valid_ifc_id


@dataclass
class ValidationError:
    """A single validation issue."""

    severity: str  # "error" | "warning"
    element_type: str
    element_id: str
    message: str


def validate_document(document: Document) -> list[ValidationError]:
    """Validate levels, floors and openings of a document."""
    errors: list[ValidationError] = []

    name_counts = Counter(lv.name for lv in document.levels)
    for level in document.levels:
        if name_counts[level.name] > 1:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Level",
                    element_id=level.global_id,
                    message=f"Duplicate level name '{level.name}'",
                )
            )
        if not is_valid_ifc_id(level.global_id):
            errors.append(
                ValidationError(
                    severity="warning",
                    element_type="Level",
                    element_id=level.global_id,
                    message="Level GlobalId is not a valid IFC GlobalId",
                )
            )

    if document.default_floor_type_id and document.default_floor_type is None:
        errors.append(
            ValidationError(
                severity="error",
                element_type="Document",
                element_id=document.global_id,
                message=f"Default floor type {document.default_floor_type_id} is not loaded",
            )
        )

    for floor in document.floors:
        if document.get_level_by_id(floor.level_id) is None:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Floor",
                    element_id=floor.global_id,
                    message=f"Floor references non-existent level {floor.level_id}",
                )
            )
        if document.get_floor_type_by_id(floor.floor_type_id) is None:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Floor",
                    element_id=floor.global_id,
                    message=f"Floor references non-existent floor type {floor.floor_type_id}",
                )
            )

        outline = floor.outline.to_shapely()
        if not outline.is_valid:
            errors.append(
                ValidationError(
                    severity="error",
                    element_type="Floor",
                    element_id=floor.global_id,
                    message="Floor outline intersects itself",
                )
            )
            continue

        for opening in floor.openings:
            if opening.host_id != floor.global_id:
                errors.append(
                    ValidationError(
                        severity="error",
                        element_type="Opening",
                        element_id=opening.global_id,
                        message=(
                            f"Opening is listed under floor {floor.global_id} "
                            f"but hosted by {opening.host_id}"
                        ),
                    )
                )
            if not outline.contains(opening.outline.to_shapely()):
                errors.append(
                    ValidationError(
                        severity="error",
                        element_type="Opening",
                        element_id=opening.global_id,
                        message="Opening extends past its floor outline",
                    )
                )

        if floor.openings and floor.area <= 0:
            errors.append(
                ValidationError(
                    severity="warning",
                    element_type="Floor",
                    element_id=floor.global_id,
                    message=f"Openings remove the whole floor area ({floor.gross_area:.2f} sq ft)",
                )
            )

    return errors
