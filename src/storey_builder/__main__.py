"""Storey Builder CLI.

Usage:
    python -m storey_builder <command> <document.json> [options]

Mutating commands (init, floors, mass) load the document, run, and save it
back. Read-only commands (list, validate, export, render) leave it alone.
Every command prints JSON to stdout: {"ok": true, ...} or {"ok": false, "error": ...}.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from storey_builder.config import BuildSettings, FailurePolicy
from storey_builder.creation.batch import FloorBatchOrchestrator
from storey_builder.creation.mass import create_mass
from storey_builder.errors import StoreyBuilderError
from storey_builder.models.document import Document
from storey_builder.models.surfaces import BuildingFloor, Solid, Surface

app = typer.Typer(
    name="storey_builder",
    help="Storey Builder — building floor surfaces to levels, floors and openings.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str) -> None:
    _output({"ok": False, "error": message})
    raise typer.Exit(1)


def _load_document(path: str) -> Document:
    """Load a document JSON file."""
    if not Path(path).exists():
        _fail(f"Document not found: {path}")
    return Document.load(path)


def _read_json(path: str, what: str) -> Any:
    if not Path(path).exists():
        _fail(f"{what} not found: {path}")
    try:
        return json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _parse_surface(raw: Any) -> Surface | None:
    """A surface as pydantic JSON ({"edges": ...}) or as rings ({"outer": ..., "holes": ...})."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise TypeError(f"expected a surface object, got {type(raw).__name__}")
    if "outer" in raw:
        return Surface.from_polygon(
            [tuple(p) for p in raw["outer"]],
            holes=[[tuple(p) for p in hole] for hole in raw.get("holes", [])],
            name=raw.get("name", ""),
        )
    return Surface.model_validate(raw)


def _load_floors(path: str) -> list[BuildingFloor | None]:
    """Read a JSON array of building floors (each an array of surfaces). Nulls are kept."""
    raw = _read_json(path, "Floors file")
    if not isinstance(raw, list):
        _fail("Floors file must contain a JSON array of floors")
    building_floors: list[BuildingFloor | None] = []
    for i, floor in enumerate(raw):
        if floor is None:
            building_floors.append(None)
            continue
        if not isinstance(floor, list):
            _fail(f"floors[{i}] must be a JSON array of surfaces")
        try:
            building_floors.append([_parse_surface(s) for s in floor])
        except (ValueError, TypeError, KeyError, IndexError) as e:
            _fail(f"floors[{i}]: invalid surface: {e}")
    return building_floors


def _load_solid(path: str) -> Solid:
    """A solid as pydantic JSON, or {"extrude": {"outline", "base_z", "height"}}."""
    raw = _read_json(path, "Solid file")
    try:
        if not isinstance(raw, dict):
            raise TypeError(f"expected a solid object, got {type(raw).__name__}")
        if "extrude" in raw:
            params = raw["extrude"]
            return Solid.extrude(
                [tuple(p) for p in params["outline"]],
                base_z=params.get("base_z", 0.0),
                height=params["height"],
                name=raw.get("name", ""),
            )
        return Solid.model_validate(raw)
    except (ValueError, TypeError, KeyError, IndexError) as e:
        _fail(f"Invalid solid: {e}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr"),
):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Mutating commands
# ---------------------------------------------------------------------------

@app.command()
def init(
    document: str = typer.Argument(..., help="Path of the document JSON to create"),
    name: str = typer.Option("Untitled Model", "--name", "-n", help="Document name"),
    floor_type: str = typer.Option('Generic 12"', "--floor-type", "-t", help="Default floor type name"),
    thickness: float = typer.Option(1.0, "--thickness", help="Default floor type thickness (ft)"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Create an empty document with one default floor type."""
    if Path(document).exists() and not force:
        _fail(f"Document already exists: {document} (use --force)")
    doc = Document.create(name=name, floor_type_name=floor_type, floor_thickness=thickness)
    path = doc.save(document)
    _output({"ok": True, "document": str(path), "default_floor_type": floor_type})


@app.command()
def floors(
    document: str = typer.Argument(..., help="Document JSON"),
    floors_file: str = typer.Argument(..., help="JSON array of building floors"),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="Level name prefix"),
    floor_type: Optional[str] = typer.Option(None, "--floor-type", "-t", help="Floor type name"),
    policy: Optional[FailurePolicy] = typer.Option(None, "--policy", help="What to do with bad surfaces"),
    settings_file: Optional[str] = typer.Option(None, "--settings", "-s", help="BuildSettings JSON"),
):
    """Create levels and floors (with openings) from building floor surfaces."""
    doc = _load_document(document)
    settings = BuildSettings.load(settings_file) if settings_file else BuildSettings()
    updates: dict[str, Any] = {}
    if prefix is not None:
        updates["level_prefix"] = prefix
    if floor_type is not None:
        updates["floor_type"] = floor_type
    if policy is not None:
        updates["failure_policy"] = policy
    settings = settings.model_copy(update=updates)

    building_floors = _load_floors(floors_file)
    try:
        report = FloorBatchOrchestrator(doc, settings).run(building_floors)
    except StoreyBuilderError as e:
        # Work committed before the failure stays in the model
        if doc.history:
            doc.save(document)
        _fail(str(e))

    doc.save(document)
    _output({
        "ok": True,
        "levels": [{"name": lv.name, "elevation": round(lv.elevation, 4)} for lv in report.levels],
        "floors": [[f.global_id for f in bucket] for bucket in report.buckets],
        "openings": report.opening_count,
        "failures": [
            {"floor": f.floor_index, "surface": f.surface_index, "error": f.message}
            for f in report.failures
        ],
    })


@app.command()
def mass(
    document: str = typer.Argument(..., help="Document JSON"),
    solid_file: str = typer.Argument(..., help="Solid JSON"),
    category: str = typer.Option("Mass", "--category", "-c", help="Category of the shape"),
    name: str = typer.Option("", "--name", "-n", help="Shape name"),
):
    """Create a direct shape from a building solid."""
    doc = _load_document(document)
    solid = _load_solid(solid_file)
    try:
        shape = create_mass(doc, solid, category, name=name)
    except StoreyBuilderError as e:
        _fail(str(e))
    doc.save(document)
    _output({
        "ok": True,
        "id": shape.global_id,
        "category": shape.category,
        "kind": shape.geometry.kind.value,
        "faces": len(shape.geometry.faces),
    })


# ---------------------------------------------------------------------------
# Read-only commands
# ---------------------------------------------------------------------------

@app.command("list")
def list_cmd(
    document: str = typer.Argument(..., help="Document JSON"),
    what: str = typer.Argument(..., help="What to list: levels, floors, types"),
    level: Optional[str] = typer.Option(None, "--level", "-l", help="Filter floors by level"),
):
    """List document elements."""
    doc = _load_document(document)
    result: dict = {"ok": True}

    if what == "levels":
        result["levels"] = [
            {"name": lv.name, "elevation": round(lv.elevation, 4),
             "floors": len(doc.floors_on_level(lv))}
            for lv in sorted(doc.levels, key=lambda lv: lv.elevation)
        ]
    elif what == "floors":
        items = []
        for f in doc.floors:
            lv = doc.get_level_by_id(f.level_id)
            if level and (lv is None or lv.name != level):
                continue
            items.append({
                "id": f.global_id,
                "name": f.name,
                "level": lv.name if lv else None,
                "openings": len(f.openings),
                "area_sqft": round(f.area, 2),
            })
        result["floors"] = items
    elif what == "types":
        result["types"] = [
            {"name": ft.name, "thickness": ft.thickness,
             "default": ft.global_id == doc.default_floor_type_id}
            for ft in doc.floor_types
        ]
    else:
        _fail(f"Unknown list target: {what}. Use: levels, floors, types")

    _output(result)


@app.command()
def validate(document: str = typer.Argument(..., help="Document JSON")):
    """Run consistency checks on a document."""
    doc = _load_document(document)
    errors = doc.validate()
    _output({
        "ok": True,
        "validation": {
            "errors": sum(1 for e in errors if e.severity == "error"),
            "warnings": sum(1 for e in errors if e.severity == "warning"),
            "details": [
                {"severity": e.severity, "element_type": e.element_type, "message": e.message}
                for e in errors
            ],
        },
    })


@app.command("export")
def export_cmd(
    document: str = typer.Argument(..., help="Document JSON"),
    output: str = typer.Argument(..., help="Output .ifc path"),
):
    """Export the document to IFC."""
    doc = _load_document(document)
    path = doc.export_ifc(output)
    _output({"ok": True, "exported": str(path), "format": "ifc"})


@app.command()
def render(
    document: str = typer.Argument(..., help="Document JSON"),
    level: str = typer.Argument(..., help="Level name"),
    output: str = typer.Argument(..., help="Output .png path"),
):
    """Render the floors of one level to PNG."""
    doc = _load_document(document)
    try:
        path = doc.render_floorplan(level, output)
    except StoreyBuilderError as e:
        _fail(str(e))
    _output({"ok": True, "level": level, "path": str(path)})


@app.command()
def version() -> None:
    """Show version."""
    from storey_builder import __version__

    typer.echo(f"storey-builder v{__version__}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
