"""
Instruction manual rendering.

Draws partitioned instruction steps as a sheet of facets, one per step, in
build order. Each brick is a filled rectangle in its own color with its
emphasis as opacity. Two backends: a PNG via matplotlib and an SVG via
svgwrite.
"""
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import svgwrite

from bricks import StepRecord, layout_extent
from build_steps import group_by_step

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstructionStyle:
    """Visual settings shared by every facet."""
    panel_background: str = "#7EC0EE"
    strip_background: str = "#F7F18D"
    strip_text: str = "#333333"
    brick_border: str = "#333333"
    border_width: float = 0.5
    facet_size: float = 240.0       # px per facet edge; PNG facets are facet_size / 100 inches
    facet_gap: float = 8.0          # px between facets (SVG)
    strip_height: float = 22.0      # px (SVG)
    expand: float = 0.05            # panel padding as a fraction of layout extent
    dpi: int = 150


def facet_grid_shape(n_facets: int) -> Tuple[int, int]:
    """(rows, cols) for *n_facets*, following facet_wrap's default layout."""
    if n_facets <= 0:
        return (0, 0)
    if n_facets <= 3:
        return (1, n_facets)
    if n_facets <= 6:
        return (2, (n_facets + 1) // 2)
    if n_facets <= 12:
        return (3, (n_facets + 2) // 3)
    cols = math.ceil(math.sqrt(n_facets))
    return (math.ceil(n_facets / cols), cols)


def _panel_limits(records: Sequence[StepRecord], expand: float) -> Tuple[float, float, float, float]:
    """Shared panel limits (x0, x1, y0, y1) across all facets."""
    x0, x1, y0, y1 = layout_extent([r.brick for r in records])
    pad = max(x1 - x0, y1 - y0, 1.0) * expand
    return (x0 - pad, x1 + pad, y0 - pad, y1 + pad)


def _grouped(records: Sequence[StepRecord]) -> Dict[str, List[StepRecord]]:
    if not records:
        raise ValueError("No instruction steps to render")
    return group_by_step(records)


def render_instructions_png(
    records: Sequence[StepRecord],
    output_path: str,
    style: InstructionStyle = InstructionStyle(),
) -> str:
    """Render instruction facets to a PNG file.

    Uses matplotlib with the Agg backend so it works headless.
    Returns the absolute path of the written file.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from matplotlib.patches import Rectangle

    records = list(records)
    steps = _grouped(records)
    n_rows, n_cols = facet_grid_shape(len(steps))
    x0, x1, y0, y1 = _panel_limits(records, style.expand)

    edge = style.facet_size / 100.0
    fig, axes = plt.subplots(
        n_rows, n_cols,
        figsize=(edge * n_cols, edge * n_rows),
        squeeze=False,
    )
    flat_axes = axes.ravel()

    for ax, (label, group) in zip(flat_axes, steps.items()):
        ax.set_facecolor(style.panel_background)
        for record in group:
            b = record.brick
            ax.add_patch(Rectangle(
                (b.xmin, b.ymin),
                b.xmax - b.xmin,
                b.ymax - b.ymin,
                facecolor=b.color,
                alpha=record.emphasis,
                edgecolor=style.brick_border,
                linewidth=style.border_width,
            ))
        ax.set_xlim(x0, x1)
        ax.set_ylim(y0, y1)
        ax.set_aspect("equal")
        ax.set_xticks([])
        ax.set_yticks([])
        for spine in ax.spines.values():
            spine.set_visible(False)
        ax.set_title(
            label,
            color=style.strip_text,
            fontweight="bold",
            bbox={"facecolor": style.strip_background, "edgecolor": "none", "pad": 3},
        )

    # Unused cells of the last row
    for ax in flat_axes[len(steps):]:
        ax.set_axis_off()

    fig.tight_layout()
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(str(out), dpi=style.dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info("Instruction sheet saved: %s (%d steps)", out, len(steps))
    return str(out.resolve())


def instructions_to_svg(
    records: Sequence[StepRecord],
    filepath: str,
    style: InstructionStyle = InstructionStyle(),
) -> str:
    """
    Export instruction facets to a single SVG sheet.

    Args:
        records: Partitioned steps in build order
        filepath: Output SVG file path
        style: Facet styling

    Returns:
        Path to created SVG file
    """
    records = list(records)
    steps = _grouped(records)
    n_rows, n_cols = facet_grid_shape(len(steps))
    x0, x1, y0, y1 = _panel_limits(records, style.expand)

    # Fixed 1:1 aspect: one scale for both axes.
    size = style.facet_size
    span = max(x1 - x0, y1 - y0)
    scale = size / span
    panel_w = (x1 - x0) * scale
    panel_h = (y1 - y0) * scale
    cell_w = panel_w + style.facet_gap
    cell_h = panel_h + style.strip_height + style.facet_gap

    canvas_width = n_cols * cell_w + style.facet_gap
    canvas_height = n_rows * cell_h + style.facet_gap

    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    dwg = svgwrite.Drawing(
        filepath,
        size=(f"{canvas_width}px", f"{canvas_height}px"),
        viewBox=f"0 0 {canvas_width} {canvas_height}",
    )
    dwg.defs.add(dwg.style(f"""
        .strip {{ fill: {style.strip_background}; }}
        .strip-text {{ font-size: 13px; font-family: Arial, sans-serif; font-weight: bold; fill: {style.strip_text}; }}
        .panel {{ fill: {style.panel_background}; }}
    """))

    for index, (label, group) in enumerate(steps.items()):
        row, col = divmod(index, n_cols)
        left = style.facet_gap + col * cell_w
        top = style.facet_gap + row * cell_h
        panel_top = top + style.strip_height

        dwg.add(dwg.rect(insert=(left, top), size=(panel_w, style.strip_height), class_="strip"))
        dwg.add(dwg.text(
            label,
            insert=(left + panel_w / 2, top + style.strip_height * 0.7),
            class_="strip-text",
            text_anchor="middle",
        ))
        dwg.add(dwg.rect(insert=(left, panel_top), size=(panel_w, panel_h), class_="panel"))

        for record in group:
            b = record.brick
            # SVG y grows downward; layout row 0 sits at the bottom of the panel.
            rx = left + (b.xmin - x0) * scale
            ry = panel_top + (y1 - b.ymax) * scale
            dwg.add(dwg.rect(
                insert=(rx, ry),
                size=((b.xmax - b.xmin) * scale, (b.ymax - b.ymin) * scale),
                fill=b.color,
                fill_opacity=record.emphasis,
                stroke=style.brick_border,
                stroke_width=style.border_width,
            ))

    dwg.save()
    logger.info("Instruction SVG saved: %s (%d steps)", filepath, len(steps))
    return filepath
