"""
Pipeline step - Record new migrations in the sum file.

``update_sum`` appends the unrecorded tail of the directory after
verifying that everything already recorded is untouched.  ``rehash_sum``
rebuilds the sum file from scratch; it refuses to replace an existing sum
file that does not verify unless forced, since that would launder a
rewritten history.
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
from migsum.src.sumfile import SumFile, load_sum_file, save_sum_file
from migsum.src.verifier import IntegrityError, verify
from migsum.src.writer import generate, update_directory

logger = logging.getLogger(__name__)


def _read_live(cfg: dict[str, Any]):
    mig = cfg["migrations"]
    return read_directory(mig["dir"], pattern=mig["pattern"], exclude=[mig["sum_file"]])


def update_sum(
    cfg: dict[str, Any],
    report: Optional[RunReport] = None,
) -> tuple[SumFile, list[str]]:
    """Append unrecorded migrations to the sum file.

    Returns
    -------
    tuple[SumFile, list[str]]
        The resulting sum file and the names that were appended (empty
        when the sum file was already up to date; nothing is written then).

    Raises
    ------
    IntegrityError
        If recorded migrations were edited, removed or reordered.
    OrderingViolationError
        If a new file would sort before an already recorded one.
    """
    sum_path = sum_file_path(cfg)
    current = load_sum_file(sum_path, missing_ok=True)
    live = _read_live(cfg)
    if report:
        report.record_step("read_directory", details={"files": len(live)})

    updated = update_directory(live, current)
    appended = updated.names[len(current):]
    if report:
        report.record_step("update", details={"appended": appended})

    if appended or not sum_path.exists():
        save_sum_file(updated, sum_path)
    else:
        logger.info("[update] %s is already up to date.", sum_path)
    return updated, appended


def rehash_sum(
    cfg: dict[str, Any],
    force: bool = False,
    report: Optional[RunReport] = None,
) -> SumFile:
    """Rebuild the sum file from the directory contents.

    Without *force* an existing sum file must verify cleanly (new files
    are fine); a corrupt or contradicted sum file raises instead.
    """
    sum_path = sum_file_path(cfg)
    live = _read_live(cfg)

    if sum_path.exists() and not force:
        result = verify(live, load_sum_file(sum_path))
        if result.is_error:
            logger.error("[hash] Existing sum file does not match; use --force to overwrite.")
            raise IntegrityError(result)
    elif sum_path.exists():
        logger.warning("[hash] Forcing regeneration of %s", sum_path)

    rebuilt = generate(live)
    if report:
        report.record_step("hash", details={"files": len(live), "forced": force})
    save_sum_file(rebuilt, sum_path)
    return rebuilt


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Record new migrations in the sum file.")
    parser.add_argument("--config", type=str, default=None)
    args = parser.parse_args()
    _, names = update_sum(load_config(args.config))
    print("\n".join(names) if names else "up to date")
