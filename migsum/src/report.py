"""
Run reports for migsum commands.

Every ``verify`` / ``update`` / ``hash`` run can produce a JSON record of
what was checked, which steps ran and the final verdict with all findings.
CI jobs keep these files as build artifacts so a failed check can be
reviewed without re-running it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class RunReport:
    """Record of one migsum command execution."""

    def __init__(self, command: str, migrations_dir: str, sum_file: str) -> None:
        self.command = command
        self.migrations_dir = migrations_dir
        self.sum_file = sum_file
        self.run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.finished_at: Optional[str] = None
        self.status: str = "running"
        self.steps: list[dict[str, Any]] = []
        self.result: Optional[dict[str, Any]] = None

    # ── recording helpers ──────────────────────────────────────────────

    def record_step(
        self,
        step_name: str,
        status: str = "success",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Log a step execution."""
        self.steps.append({
            "step": step_name,
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **(details or {}),
        })

    def record_result(self, result: dict[str, Any]) -> None:
        """Attach a serialised verification result."""
        self.result = result

    def finish(self, status: str = "success") -> None:
        self.finished_at = datetime.now(timezone.utc).isoformat()
        self.status = status

    # ── serialisation ──────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "run_id": self.run_id,
            "migrations_dir": self.migrations_dir,
            "sum_file": self.sum_file,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "status": self.status,
            "steps": self.steps,
            "result": self.result,
        }


def save_report(report: RunReport, output_dir: str = "reports") -> str:
    """Persist a run report as JSON.

    Returns
    -------
    str
        Path to the saved JSON file.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    filename = f"migsum_{report.command}_{report.run_id}.json"
    filepath = out / filename
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(report.to_dict(), fh, indent=2, ensure_ascii=False)
    logger.info("[report] Run report saved → %s", filepath)
    return str(filepath)
