"""Single-path pipeline: layout JSON -> instruction steps -> run artifacts."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from bricks import Layout, load_layout
from build_steps import (
    DEFAULT_NUM_STEPS,
    StepSummary,
    build_instructions,
    records_to_rows,
    summarize_steps,
)
from instruction_renderer import InstructionStyle, instructions_to_svg, render_instructions_png
from run_protocol import ManualRun

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    runs_dir: str = "runs"
    num_steps: float = DEFAULT_NUM_STEPS
    export_png: bool = True
    export_svg: bool = True
    style: InstructionStyle = field(default_factory=InstructionStyle)


@dataclass
class PipelineResult:
    run_id: str
    run_dir: str
    layout_kind: str
    steps_path: str
    manifest_path: str
    summary_path: str
    layout_input_path: str
    summaries: List[StepSummary] = field(default_factory=list)
    png_path: Optional[str] = None
    svg_path: Optional[str] = None


def run_instructions_from_file(
    layout_path: str,
    manual_name: str = "manual",
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    if not os.path.isfile(layout_path):
        raise FileNotFoundError(f"Layout file not found: {layout_path}")

    if config is None:
        config = PipelineConfig()

    started = time.perf_counter()

    # Load and partition before creating the run folder so a failure leaves nothing behind.
    layout = load_layout(layout_path)
    records = build_instructions(layout, config.num_steps)
    summaries = summarize_steps(records)

    run = ManualRun.create(config.runs_dir, manual_name)
    copied_layout = run.copy_layout(layout_path)
    steps_path = run.dump_json(run.steps_path, records_to_rows(records))

    png_path: Optional[str] = None
    svg_path: Optional[str] = None
    if records and config.export_png:
        png_path = render_instructions_png(records, str(run.png_path), config.style)
    if records and config.export_svg:
        svg_path = instructions_to_svg(records, str(run.svg_path), config.style)
    if not records:
        logger.warning("Layout %s produced no steps; skipping rendering", layout_path)

    elapsed = time.perf_counter() - started
    summary_path = run.dump_text(
        run.summary_path, _build_summary(layout, run.run_id, elapsed, summaries)
    )

    manifest: Dict[str, object] = {
        "run_id": run.run_id,
        "manual_name": manual_name,
        "layout_kind": layout.kind.value,
        "input_layout": str(copied_layout),
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "elapsed_s": round(elapsed, 3),
        "config": asdict(config),
        "counts": {
            "bricks": len(layout.bricks),
            "steps": len(summaries),
            "records": len(records),
        },
        "artifacts": {
            "steps": steps_path,
            "summary": summary_path,
            "png": png_path,
            "svg": svg_path,
        },
    }
    manifest_path = run.dump_json(run.manifest_path, manifest)
    run.mark_latest()
    logger.info("Run %s: %d steps written to %s", run.run_id, len(summaries), run.run_dir)

    return PipelineResult(
        run_id=run.run_id,
        run_dir=str(run.run_dir),
        layout_kind=layout.kind.value,
        steps_path=steps_path,
        manifest_path=manifest_path,
        summary_path=summary_path,
        layout_input_path=str(copied_layout),
        summaries=summaries,
        png_path=png_path,
        svg_path=svg_path,
    )


def _build_summary(
    layout: Layout,
    run_id: str,
    elapsed_s: float,
    summaries: List[StepSummary],
) -> str:
    lines = [
        f"# Run {run_id}",
        "",
        f"- Layout: **{layout.kind.value}**",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Bricks: {len(layout.bricks)}",
        f"- Steps: {len(summaries)}",
        "",
        "## Steps",
    ]

    if not summaries:
        lines.append("- None")
    else:
        lines.append("")
        lines.append("| Step | Shown | Added | Ghosted |")
        lines.append("|------|-------|-------|---------|")
        for s in summaries:
            lines.append(f"| {s.step_label} | {s.shown} | {s.added} | {s.ghosted} |")

    return "\n".join(lines) + "\n"
