"""
Instruction step partitioning.

Splits a finished brick layout into cumulative build steps for a printed
manual. Mosaics are revealed in row bands starting at the bottom of the
image, so each step adds the next few rows and a builder can follow the
picture row by row. 3D models are shown one level at a time, with the level
below drawn ghosted as a reference.
"""
import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np

from bricks import (
    Brick,
    Layout,
    MalformedBrickRecord,
    Model3D,
    Mosaic,
    StepRecord,
    UnsupportedLayoutKind,
    brick_to_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_NUM_STEPS = 6
MAX_MOSAIC_STEPS = 40
GHOST_EMPHASIS = 0.5


@dataclass(frozen=True)
class StepSummary:
    """Brick counts for one instruction step."""
    step: int
    step_label: str
    shown: int      # bricks at full emphasis
    ghosted: int    # bricks drawn as reference only
    added: int      # full-emphasis bricks not shown at full emphasis in the previous step


def step_label(index: int) -> str:
    """Facet label for a 1-based step index, e.g. ``Step 03``."""
    return f"Step {index:02d}"


def clamp_num_steps(num_steps: float) -> int:
    """Normalize a requested mosaic step count.

    Takes the absolute value, rounds half to even, caps at MAX_MOSAIC_STEPS
    and floors at 1 so a non-empty mosaic always ends on the full picture.
    Infinite requests cap at MAX_MOSAIC_STEPS; NaN falls back to
    DEFAULT_NUM_STEPS.
    """
    if math.isnan(num_steps):
        return DEFAULT_NUM_STEPS
    if math.isinf(num_steps):
        return MAX_MOSAIC_STEPS
    steps = min(int(round(abs(num_steps))), MAX_MOSAIC_STEPS)
    return max(steps, 1)


def row_band_height(max_ymax: float, num_steps: int) -> int:
    """Number of layout rows revealed per mosaic step.

    The ``+ 1`` keeps the last banded step short of the full image; the final
    step always shows everything.
    """
    band = math.ceil((max_ymax - 0.5) / (num_steps + 1))
    return max(band, 0)


def _group_floors(bricks: Sequence[Brick], ymins: np.ndarray) -> np.ndarray:
    """Lowest ymin of each brick's physical group, aligned with *bricks*."""
    group_ids = np.array([b.group_id for b in bricks])
    _, inverse = np.unique(group_ids, return_inverse=True)
    inverse = inverse.reshape(-1)
    floors = np.full(int(inverse.max()) + 1, np.inf)
    np.minimum.at(floors, inverse, ymins)
    return floors[inverse]


def partition_mosaic(bricks: Iterable[Brick], num_steps: float = DEFAULT_NUM_STEPS) -> List[StepRecord]:
    """Split a mosaic into cumulative row-band steps.

    A multi-cell brick appears whole at the first step whose row threshold
    reaches its lowest row, and stays in every later step.

    Args:
        bricks: Mosaic bricks in layout order.
        num_steps: Requested step count; clamped with clamp_num_steps.

    Returns:
        StepRecords for every step in build order, all at emphasis 1.
    """
    bricks = list(bricks)
    if not bricks:
        logger.info("Mosaic instructions: no bricks, empty manual")
        return []

    n_steps = clamp_num_steps(num_steps)
    ymins = np.array([b.ymin for b in bricks], dtype=float)
    ymaxs = np.array([b.ymax for b in bricks], dtype=float)

    band = row_band_height(float(ymaxs.max()), n_steps)
    base = float(ymins.min()) + 0.5
    floors = _group_floors(bricks, ymins)
    logger.debug("Row band height %d over %d steps (base %.2f)", band, n_steps, base)

    records: List[StepRecord] = []
    for a in range(1, n_steps + 1):
        label = step_label(a)
        if a < n_steps:
            threshold = a * band + base
            shown = [bricks[i] for i in np.flatnonzero(floors <= threshold)]
            logger.debug("%s: threshold %.2f, %d bricks", label, threshold, len(shown))
        else:
            shown = bricks
        records.extend(StepRecord(brick=b, step=a, step_label=label, emphasis=1.0) for b in shown)

    logger.info("Mosaic instructions: %d steps, %d records", n_steps, len(records))
    return records


def partition_model(bricks: Iterable[Brick]) -> List[StepRecord]:
    """Split a 3D model into one step per level.

    Step k shows the k-th lowest level at full emphasis and the level just
    below it at GHOST_EMPHASIS.

    Levels are ranked, not read as step numbers. For levels 1..n this is the
    same as showing levels a-1 and a at step a. With gaps or a base other
    than 1 (e.g. levels 0, 2, 5) it still gives one step per level: step 2
    shows level 2 over a ghosted level 0, where a literal ``a-1 <= level <= a``
    filter would skip levels and show some only as ghosts.

    Raises:
        MalformedBrickRecord: a brick has no level.
    """
    bricks = list(bricks)
    for i, brick in enumerate(bricks):
        if brick.level is None:
            raise MalformedBrickRecord(
                f"Brick {i} ({brick.group_id}) has no level; 3D models need a level per brick"
            )

    levels = sorted({b.level for b in bricks})
    records: List[StepRecord] = []
    previous = None
    for step, level in enumerate(levels, start=1):
        label = step_label(step)
        for brick in bricks:
            if brick.level == level:
                records.append(StepRecord(brick=brick, step=step, step_label=label, emphasis=1.0))
            elif brick.level == previous:
                records.append(StepRecord(brick=brick, step=step, step_label=label,
                                          emphasis=GHOST_EMPHASIS))
        previous = level

    logger.info("Model instructions: %d levels, %d records", len(levels), len(records))
    return records


def build_instructions(layout: Layout, num_steps: float = DEFAULT_NUM_STEPS) -> List[StepRecord]:
    """Partition a layout into instruction steps.

    Args:
        layout: Mosaic or Model3D.
        num_steps: Step count for mosaics; 3D models always use one step per level.

    Raises:
        UnsupportedLayoutKind: layout is neither variant.
    """
    if isinstance(layout, Mosaic):
        return partition_mosaic(layout.bricks, num_steps)
    if isinstance(layout, Model3D):
        logger.debug("Ignoring num_steps=%s for 3D model", num_steps)
        return partition_model(layout.bricks)
    raise UnsupportedLayoutKind(f"Unsupported layout: {type(layout).__name__}")


def group_by_step(records: Iterable[StepRecord]) -> Dict[str, List[StepRecord]]:
    """Group records by step label, in emission order."""
    groups: Dict[str, List[StepRecord]] = {}
    for record in records:
        groups.setdefault(record.step_label, []).append(record)
    return groups


def summarize_steps(records: Iterable[StepRecord]) -> List[StepSummary]:
    """Per-step brick counts, in build order."""
    summaries: List[StepSummary] = []
    previous: Counter = Counter()
    for label, group in group_by_step(records).items():
        full = Counter(r.brick for r in group if not r.is_ghost)
        added = sum((full - previous).values())
        summaries.append(StepSummary(
            step=group[0].step,
            step_label=label,
            shown=sum(full.values()),
            ghosted=sum(1 for r in group if r.is_ghost),
            added=added,
        ))
        previous = full
    return summaries


def records_to_rows(records: Iterable[StepRecord]) -> List[Dict[str, Any]]:
    """Flatten records into JSON-serializable rows."""
    rows = []
    for record in records:
        row = brick_to_dict(record.brick)
        row["step"] = record.step
        row["step_label"] = record.step_label
        row["emphasis"] = record.emphasis
        rows.append(row)
    return rows
