"""Three-storey tower with a stair void — proof of concept.

Footprint: 12m x 9m, storey height 3.5m
- ground slab at 0, two upper slabs at 3.5m and 7.0m
- upper slabs have a stair void and a lift shaft void
- a rooftop plant room as a Mass

Layout (top view, upper slabs):
   (0,9) ------------------- (12,9)
     |                          |
     |  [stair]       [lift]    |
     |                          |
   (0,0) ------------------- (12,0)

Surfaces are given in millimetres; the document is in feet.
"""

from pathlib import Path

from storey_builder.creation import create_floors, create_mass
from storey_builder.models import Document, Solid, Surface

WIDTH = 12_000   # x-axis (mm)
DEPTH = 9_000    # y-axis (mm)
STOREY = 3_500   # storey height (mm)

STAIR = [(1_000, 2_000), (3_800, 2_000), (3_800, 7_000), (1_000, 7_000)]
LIFT = [(9_000, 5_000), (11_000, 5_000), (11_000, 7_000), (9_000, 7_000)]


def slab(z: float, voids: list[list[tuple[float, float]]], name: str) -> Surface:
    outer = [(0, 0, z), (WIDTH, 0, z), (WIDTH, DEPTH, z), (0, DEPTH, z)]
    return Surface.from_polygon(
        outer,
        holes=[[(x, y, z) for x, y in void] for void in voids],
        name=name,
    )


building_floors = [
    [slab(0, [], "Ground Slab")],
    [slab(STOREY, [STAIR, LIFT], "First Floor Slab")],
    [slab(2 * STOREY, [STAIR, LIFT], "Second Floor Slab")],
]

document = Document.create(name="Three Storey Tower")

# --- Floors ---
buckets = create_floors(document, building_floors, level_prefix="Level")

# --- Rooftop plant room ---
plant = Solid.extrude(
    [(8_000, 4_000), (11_500, 4_000), (11_500, 8_500), (8_000, 8_500)],
    base_z=3 * STOREY,
    height=2_500,
    name="Plant Room",
)
create_mass(document, plant, "Mass")

# --- Validate ---
errors = document.validate()
if errors:
    print("⚠️  Validation errors:")
    for e in errors:
        print(f"  [{e.severity}] {e.element_type}: {e.message}")
else:
    print("✅ Validation passed")

# --- Export ---
output = Path(__file__).parent / "output"
output.mkdir(exist_ok=True)

ifc_file = document.export_ifc(output / "three_storey_tower.ifc")
document.save(output / "three_storey_tower.json")
for level in document.levels:
    document.render_floorplan(level.name, output / f"{level.name.replace(' ', '_')}.png")

print(f"📁 Exported to: {ifc_file}")
print(document.summary())
print(f"   Floors per storey: {[len(b) for b in buckets]}")
