#!/usr/bin/env python3
"""
Build a step-by-step instruction manual from a finished brick layout.

Usage:
    python scripts/build_instructions.py --layout mosaic.json
    python scripts/build_instructions.py --layout mosaic.json --steps 9 --name portrait
    python scripts/build_instructions.py --layout castle.json --no-svg

The layout file is a JSON object {"kind": "mosaic" | "3dmodel", "bricks": [...]}.
--steps only applies to mosaics; 3D models get one step per level.
"""
import sys
import argparse
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bricks import InstructionError
from build_steps import DEFAULT_NUM_STEPS
from pipeline import PipelineConfig, run_instructions_from_file


def main():
    parser = argparse.ArgumentParser(
        description="Build an instruction manual from a brick mosaic or 3D model layout"
    )
    parser.add_argument("--layout", type=str, required=True, help="Path to layout JSON")
    parser.add_argument(
        "--steps", type=float, default=DEFAULT_NUM_STEPS,
        help=f"Number of mosaic steps, clamped to 1-40 (default: {DEFAULT_NUM_STEPS})",
    )
    parser.add_argument("--name", type=str, default="manual", help="Manual name")
    parser.add_argument("--runs-dir", type=str, default="runs", help="Runs directory")
    parser.add_argument("--no-png", action="store_true", help="Skip PNG sheet")
    parser.add_argument("--no-svg", action="store_true", help="Skip SVG sheet")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = PipelineConfig(
        runs_dir=args.runs_dir,
        num_steps=args.steps,
        export_png=not args.no_png,
        export_svg=not args.no_svg,
    )

    try:
        result = run_instructions_from_file(args.layout, args.name, config)
    except (InstructionError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nRun ID: {result.run_id}")
    print(f"Run dir: {result.run_dir}")
    print(f"Layout: {result.layout_kind}")
    print(f"Steps: {len(result.summaries)}")
    for s in result.summaries:
        ghost = f", {s.ghosted} ghosted" if s.ghosted else ""
        print(f"  {s.step_label}: {s.shown} bricks (+{s.added}){ghost}")
    if result.png_path:
        print(f"PNG: {result.png_path}")
    if result.svg_path:
        print(f"SVG: {result.svg_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
