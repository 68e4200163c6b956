"""Run-folder layout for instruction manual builds.

Each build gets ``<runs_root>/<UTC stamp>_<slug>/`` holding the copied
layout under ``input/``, rendered sheets and ``steps.json`` under
``artifacts/``, plus ``manifest.json`` and ``summary.md`` at the top.
``<runs_root>/latest`` points at the most recent run.
"""

from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-") or "manual"


@dataclass
class ManualRun:
    run_id: str
    runs_root: Path
    run_dir: Path

    @classmethod
    def create(cls, runs_root: str, manual_name: str) -> "ManualRun":
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        run_id = f"{stamp}_{slugify(manual_name)}"
        run = cls(run_id=run_id, runs_root=Path(runs_root), run_dir=Path(runs_root) / run_id)
        run.input_dir.mkdir(parents=True, exist_ok=True)
        run.artifacts_dir.mkdir(parents=True, exist_ok=True)
        return run

    @property
    def input_dir(self) -> Path:
        return self.run_dir / "input"

    @property
    def artifacts_dir(self) -> Path:
        return self.run_dir / "artifacts"

    @property
    def steps_path(self) -> Path:
        return self.artifacts_dir / "steps.json"

    @property
    def png_path(self) -> Path:
        return self.artifacts_dir / "manual.png"

    @property
    def svg_path(self) -> Path:
        return self.artifacts_dir / "manual.svg"

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.md"

    def copy_layout(self, layout_path: str) -> Path:
        """Keep the layout the manual was built from next to its artifacts."""
        dst = self.input_dir / Path(layout_path).name
        shutil.copy2(layout_path, dst)
        return dst

    def dump_json(self, path: Path, payload: Any) -> str:
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return str(path)

    def dump_text(self, path: Path, content: str) -> str:
        path.write_text(content, encoding="utf-8")
        return str(path)

    def mark_latest(self) -> None:
        """Point ``<runs_root>/latest`` at this run."""
        latest = self.runs_root / "latest"
        if latest.is_symlink() or latest.is_file():
            latest.unlink()
        elif latest.is_dir():
            shutil.rmtree(latest)

        try:
            latest.symlink_to(os.path.relpath(self.run_dir, self.runs_root))
        except OSError:
            # No symlink support: leave the run id in a marker file.
            latest.mkdir(parents=True, exist_ok=True)
            (latest / "latest_run.txt").write_text(self.run_id, encoding="utf-8")
