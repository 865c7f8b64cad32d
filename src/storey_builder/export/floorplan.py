"""2D floor plan rendering using matplotlib.

Draws every floor on one level as a filled outline with its openings cut
out, plus optional labels and an info box.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # headless rendering
import matplotlib.pyplot as plt
import matplotlib.patheffects as pe
from matplotlib.patches import PathPatch
from matplotlib.path import Path as MplPath

from storey_builder.models.document import Document
from storey_builder.models.elements import Floor, Level
from storey_builder.models.geometry import Polygon2D

_TEXT_HALO = [pe.withStroke(linewidth=3, foreground="white")]

_FLOOR_COLORS = [
    "#CFD8DC",  # slate
    "#D7CCC8",  # concrete
    "#DCEDC8",  # sage
    "#F0F4C3",  # sand
    "#B3E5FC",  # sky
    "#F8BBD0",  # rose
]


def _ring_path(outline: Polygon2D, ccw: bool) -> tuple[list[tuple[float, float]], list[int]]:
    """Vertices and path codes for one closed ring, in the requested winding."""
    pts = [(v.x, v.y) for v in outline.vertices]
    if outline.is_ccw != ccw:
        pts.reverse()
    codes = [MplPath.MOVETO] + [MplPath.LINETO] * (len(pts) - 1) + [MplPath.CLOSEPOLY]
    return pts + [pts[0]], codes


def _floor_path(floor: Floor) -> MplPath:
    """Compound path: outer ring counter-clockwise, openings clockwise."""
    verts, codes = _ring_path(floor.outline, ccw=True)
    for opening in floor.openings:
        hv, hc = _ring_path(opening.outline, ccw=False)
        verts += hv
        codes += hc
    return MplPath(verts, codes)


def render_floorplan(
    document: Document,
    level: Level,
    output_path: str | Path,
    title: str | None = None,
    dpi: int = 150,
    show_labels: bool = True,
    show_info_box: bool = True,
) -> Path:
    """Render the floors of a level to PNG.

    Args:
        document: Document holding the floors.
        level: The level to render.
        output_path: Output image path.
        title: Plot title (defaults to level name and elevation).
        dpi: Image resolution.
        show_labels: Show floor names at each floor's interior point.
        show_info_box: Show info overlay (floor count, net area).

    Returns:
        Path to the output image.
    """
    output_path = Path(output_path)
    floors = document.floors_on_level(level)

    fig, ax = plt.subplots(1, 1, figsize=(12, 10))
    ax.set_aspect("equal")
    ax.set_facecolor("#FAFAFA")
    fig.patch.set_facecolor("white")

    for i, floor in enumerate(floors):
        color = _FLOOR_COLORS[i % len(_FLOOR_COLORS)]
        ax.add_patch(
            PathPatch(_floor_path(floor), facecolor=color, edgecolor="#424242",
                      linewidth=1.5, zorder=2)
        )
        if show_labels:
            anchor = floor.outline.to_shapely().representative_point()
            ax.text(anchor.x, anchor.y, floor.name or f"Floor {i + 1}",
                    fontsize=9, ha="center", va="center", color="#212121",
                    path_effects=_TEXT_HALO, zorder=4)

    if floors:
        xs = [v.x for f in floors for v in f.outline.vertices]
        ys = [v.y for f in floors for v in f.outline.vertices]
        pad = max(max(xs) - min(xs), max(ys) - min(ys)) * 0.05 or 1.0
        ax.set_xlim(min(xs) - pad, max(xs) + pad)
        ax.set_ylim(min(ys) - pad, max(ys) + pad)
    ax.set_xlabel("x (ft)")
    ax.set_ylabel("y (ft)")

    ax.set_title(title or f"{level.name} (elev {level.elevation:.2f} ft)",
                 fontsize=14, fontweight="bold")

    if show_info_box:
        openings = sum(len(f.openings) for f in floors)
        area = sum(f.area for f in floors)
        info = f"Floors: {len(floors)}\nOpenings: {openings}\nNet area: {area:.1f} sq ft"
        ax.text(0.02, 0.98, info, transform=ax.transAxes, fontsize=9, va="top",
                bbox=dict(boxstyle="round", facecolor="white", alpha=0.8), zorder=5)

    plt.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(str(output_path), dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return output_path
