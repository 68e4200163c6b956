"""
Shared test fixtures for instruction building tests.
"""
import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bricks import Brick, Model3D, Mosaic


def cell(group_id, x, y, color="#B40000", level=None):
    """A 1x1 brick cell with its lower-left corner at (x, y)."""
    return Brick(
        group_id=group_id,
        xmin=float(x), xmax=float(x) + 1.0,
        ymin=float(y), ymax=float(y) + 1.0,
        color=color,
        level=level,
    )


@pytest.fixture
def three_row_mosaic():
    """Three single-cell bricks at ymin 0, 2, 4 (max ymax 5)."""
    return Mosaic([
        cell("a", 0, 0, "#F2CD37"),
        cell("b", 0, 2, "#0055BF"),
        cell("c", 0, 4, "#237841"),
    ])


@pytest.fixture
def grid_mosaic():
    """A 4 wide, 8 tall mosaic with a few two-row bricks.

    Group "tall_0" covers x=0 rows 2-3, "tall_1" covers x=3 rows 5-6.
    Every other cell is its own brick.
    """
    tall = {(0, 2): "tall_0", (0, 3): "tall_0", (3, 5): "tall_1", (3, 6): "tall_1"}
    colors = ["#F2CD37", "#0055BF", "#237841", "#B40000"]
    bricks = []
    for y in range(8):
        for x in range(4):
            group = tall.get((x, y), f"cell_{x}_{y}")
            bricks.append(cell(group, x, y, colors[(x + y) % 4]))
    return Mosaic(bricks)


@pytest.fixture
def random_mosaic():
    """Seeded mosaic of vertical 1x2 and 1x1 bricks, 12 columns by 30 rows."""
    rng = np.random.default_rng(7)
    bricks = []
    for x in range(12):
        y = 0
        while y < 30:
            height = 2 if (y < 29 and rng.random() < 0.4) else 1
            group = f"b_{x}_{y}"
            for dy in range(height):
                bricks.append(cell(group, x, y + dy, "#A0A5A9"))
            y += height
    return Mosaic(bricks)


@pytest.fixture
def three_level_model():
    """Two bricks on each of levels 1, 2 and 3."""
    bricks = []
    for level in (1, 2, 3):
        bricks.append(cell(f"l{level}_a", 0, 0, "#B40000", level=level))
        bricks.append(cell(f"l{level}_b", 1, 0, "#0055BF", level=level))
    return Model3D(bricks)


@pytest.fixture
def mosaic_layout_file(tmp_path, grid_mosaic):
    """grid_mosaic written with brickr table column names."""
    payload = {
        "brickr_object": "mosaic",
        "Img_bricks": [
            {
                "brick_name": b.group_id,
                "xmin": b.xmin, "xmax": b.xmax,
                "ymin": b.ymin, "ymax": b.ymax,
                "Lego_color": b.color,
            }
            for b in grid_mosaic.bricks
        ],
    }
    path = tmp_path / "grid_mosaic.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


@pytest.fixture
def model_layout_file(tmp_path, three_level_model):
    payload = {
        "kind": "3dmodel",
        "bricks": [
            {
                "group_id": b.group_id,
                "xmin": b.xmin, "xmax": b.xmax,
                "ymin": b.ymin, "ymax": b.ymax,
                "color": b.color,
                "level": b.level,
            }
            for b in three_level_model.bricks
        ],
    }
    path = tmp_path / "model.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)
