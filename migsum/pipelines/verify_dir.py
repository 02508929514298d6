"""
Pipeline step - Verify a migration directory against its sum file.

Reads the live directory, decodes (and self-checks) the recorded sum file
and classifies every difference.  Used by CI and pre-commit hooks.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

_project_root = str(Path(__file__).resolve().parents[2])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from migsum.src.config_loader import load_config, sum_file_path
from migsum.src.directory import read_directory
from migsum.src.report import RunReport
from migsum.src.sumfile import load_sum_file
from migsum.src.verifier import VerificationResult, verify

logger = logging.getLogger(__name__)


def verify_migrations(
    cfg: dict[str, Any],
    report: Optional[RunReport] = None,
) -> VerificationResult:
    """Verify the configured migration directory.

    Parameters
    ----------
    cfg : dict[str, Any]
        Output of :func:`load_config`.
    report : RunReport | None
        Receives one step per stage when given.

    Returns
    -------
    VerificationResult
        The classified verdict; callers decide how to exit.

    Raises
    ------
    FileNotFoundError
        If the directory or its sum file does not exist.
    CorruptSumFileError
        If the sum file fails to decode or self-check.
    """
    mig = cfg["migrations"]
    sum_path = sum_file_path(cfg)

    recorded = load_sum_file(sum_path)
    if report:
        report.record_step("load_sum_file", details={"entries": len(recorded)})

    live = read_directory(mig["dir"], pattern=mig["pattern"], exclude=[mig["sum_file"]])
    if report:
        report.record_step("read_directory", details={"files": len(live)})

    result = verify(live, recorded)
    if report:
        report.record_step("verify", status=result.status.value)
        report.record_result(result.to_dict())
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify a migration directory.")
    parser.add_argument("--config", type=str, default=None)
    args = parser.parse_args()
    outcome = verify_migrations(load_config(args.config))
    print(outcome.summary())
    sys.exit(1 if outcome.is_error else 0)
