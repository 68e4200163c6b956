"""
Core data structures for brick layouts and instruction steps.

A layout is a finished table of rectangular bricks produced upstream (from an
image for mosaics, from a 3D design for models). Nothing here computes the
layout; it is only read, validated, and handed to the step partitioner.
"""
import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


class InstructionError(Exception):
    """Base exception for instruction building errors."""
    pass


class UnsupportedLayoutKind(InstructionError):
    """Layout is neither a mosaic nor a 3D model."""
    pass


class MalformedBrickRecord(InstructionError, ValueError):
    """A brick record violates the layout data contract."""
    pass


class LayoutKind(Enum):
    """Supported layout variants."""
    MOSAIC = "mosaic"
    MODEL_3D = "3dmodel"


@dataclass(frozen=True)
class Brick:
    """
    One rectangular unit of a layout.

    Attributes:
        group_id: Identifier shared by every cell of the same physical brick
        xmin, xmax, ymin, ymax: Bounding box in layout coordinates
        color: Fill color, passed through unmodified
        level: Layer index (3D models only)
    """
    group_id: str
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    color: str
    level: Optional[int] = None


@dataclass(frozen=True)
class StepRecord:
    """A brick as shown in one instruction step."""
    brick: Brick
    step: int
    step_label: str
    emphasis: float = 1.0

    @property
    def is_ghost(self) -> bool:
        return self.emphasis < 1.0


@dataclass(frozen=True)
class Mosaic:
    """A single flat layer of bricks forming a 2D picture."""
    bricks: Tuple[Brick, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "bricks", tuple(self.bricks))

    @property
    def kind(self) -> LayoutKind:
        return LayoutKind.MOSAIC


@dataclass(frozen=True)
class Model3D:
    """A leveled brick structure built bottom-up."""
    bricks: Tuple[Brick, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "bricks", tuple(self.bricks))

    @property
    def kind(self) -> LayoutKind:
        return LayoutKind.MODEL_3D

    @property
    def levels(self) -> List[int]:
        """Sorted distinct levels present in the model."""
        return sorted({b.level for b in self.bricks if b.level is not None})


Layout = Union[Mosaic, Model3D]

# Column aliases accepted from upstream brick tables.
_KEY_ALIASES = {
    "group_id": ("group_id", "brick_name"),
    "color": ("color", "Lego_color"),
    "level": ("level", "Level"),
}
_COORD_KEYS = ("xmin", "xmax", "ymin", "ymax")


def _lookup(row: Dict[str, Any], key: str) -> Any:
    for alias in _KEY_ALIASES.get(key, (key,)):
        if alias in row:
            return row[alias]
    return None


def _parse_level(value: Any, index: int) -> Optional[int]:
    if value is None:
        return None
    try:
        level = float(value)
    except (TypeError, ValueError):
        raise MalformedBrickRecord(f"Brick {index}: level {value!r} is not a number")
    if not level.is_integer():
        raise MalformedBrickRecord(f"Brick {index}: level {value!r} is not an integer")
    return int(level)


def brick_from_dict(row: Dict[str, Any], index: int = 0) -> Brick:
    """Build a Brick from one row of an upstream brick table."""
    if not isinstance(row, dict):
        raise MalformedBrickRecord(f"Brick {index}: expected an object, got {type(row).__name__}")

    coords = {}
    for key in _COORD_KEYS:
        value = row.get(key)
        if value is None:
            raise MalformedBrickRecord(f"Brick {index}: missing '{key}'")
        try:
            coords[key] = float(value)
        except (TypeError, ValueError):
            raise MalformedBrickRecord(f"Brick {index}: '{key}' = {value!r} is not a number")
        if not math.isfinite(coords[key]):
            raise MalformedBrickRecord(f"Brick {index}: '{key}' = {value!r} is not finite")

    group_id = _lookup(row, "group_id")
    if group_id is None:
        # Single-cell bricks own their group.
        group_id = f"brick_{index}"

    color = _lookup(row, "color")
    if color is None:
        raise MalformedBrickRecord(f"Brick {index}: missing 'color'")

    return Brick(
        group_id=str(group_id),
        color=str(color),
        level=_parse_level(_lookup(row, "level"), index),
        **coords,
    )


def layout_from_dict(payload: Dict[str, Any]) -> Layout:
    """
    Build a Mosaic or Model3D from a decoded layout payload.

    Accepts ``{"kind": ..., "bricks": [...]}`` as well as the
    ``brickr_object`` / ``Img_bricks`` naming used by brickr brick tables.

    Raises:
        UnsupportedLayoutKind: kind is not "mosaic" or "3dmodel".
        MalformedBrickRecord: a row is missing fields, or a 3D brick has no level.
    """
    raw_kind = payload.get("kind", payload.get("brickr_object"))
    try:
        kind = LayoutKind(raw_kind)
    except ValueError:
        raise UnsupportedLayoutKind(f"Unsupported layout kind: {raw_kind!r}")

    rows = payload.get("bricks", payload.get("Img_bricks"))
    if rows is None:
        rows = []
    if not isinstance(rows, (list, tuple)):
        raise MalformedBrickRecord("Layout 'bricks' must be a list of records")

    bricks = [brick_from_dict(row, i) for i, row in enumerate(rows)]

    if kind == LayoutKind.MODEL_3D:
        for i, brick in enumerate(bricks):
            if brick.level is None:
                raise MalformedBrickRecord(f"Brick {i}: 3D model brick has no level")
        return Model3D(bricks)
    return Mosaic(bricks)


def layout_to_dict(layout: Layout) -> Dict[str, Any]:
    """Serialize a layout back to the JSON payload accepted by layout_from_dict."""
    return {
        "kind": layout.kind.value,
        "bricks": [brick_to_dict(b) for b in layout.bricks],
    }


def brick_to_dict(brick: Brick) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "group_id": brick.group_id,
        "xmin": brick.xmin,
        "xmax": brick.xmax,
        "ymin": brick.ymin,
        "ymax": brick.ymax,
        "color": brick.color,
    }
    if brick.level is not None:
        row["level"] = brick.level
    return row


def load_layout(path: Union[str, Path]) -> Layout:
    """Load a layout JSON file written by the upstream layout builder."""
    layout_path = Path(path)
    if not layout_path.is_file():
        raise FileNotFoundError(f"Layout file not found: {layout_path}")

    try:
        with layout_path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except UnicodeDecodeError as exc:
        raise MalformedBrickRecord(f"{layout_path}: not UTF-8 text ({exc.reason})") from exc
    except json.JSONDecodeError as exc:
        raise MalformedBrickRecord(f"{layout_path}: invalid JSON ({exc})") from exc
    if not isinstance(payload, dict):
        raise MalformedBrickRecord(f"{layout_path}: expected a JSON object")

    layout = layout_from_dict(payload)
    logger.info("Loaded %s layout with %d bricks from %s",
                layout.kind.value, len(layout.bricks), layout_path)
    return layout


def layout_extent(bricks: Sequence[Brick]) -> Tuple[float, float, float, float]:
    """Bounding box (xmin, xmax, ymin, ymax) over all bricks."""
    if not bricks:
        return (0.0, 0.0, 0.0, 0.0)
    return (
        min(b.xmin for b in bricks),
        max(b.xmax for b in bricks),
        min(b.ymin for b in bricks),
        max(b.ymax for b in bricks),
    )
