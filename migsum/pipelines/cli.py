"""
migsum - command line entry point.

Commands:
  verify  Check the migration directory against its sum file (CI, hooks)
  update  Record newly added migrations in the sum file
  hash    Rebuild the sum file from scratch

Exit codes: 0 ok, 1 integrity error, 2 unusable input (corrupt sum file,
ordering violation, missing directory), 3 unrecorded migrations when
``verify.allow_unrecorded`` is false.

Usage
-----
    migsum verify --config migsum/config/migsum_config.yaml --format json
    migsum update --dir db/migrations
    migsum hash --force
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

_project_root = str(Path(__file__).resolve().parents[2])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from migsum.pipelines.update_sum import rehash_sum, update_sum
from migsum.pipelines.verify_dir import verify_migrations
from migsum.src.config_loader import load_config, sum_file_path
from migsum.src.hasher import encode_digest
from migsum.src.logging_config import configure_logging
from migsum.src.report import RunReport, save_report
from migsum.src.sumfile import CorruptSumFileError
from migsum.src.verifier import IntegrityError, IntegrityStatus, VerificationResult
from migsum.src.versions import InvalidMigrationNameError, OrderingViolationError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INTEGRITY = 1
EXIT_UNUSABLE = 2
EXIT_NEEDS_UPDATE = 3


def _emit(payload: dict[str, Any], text: str, fmt: str) -> None:
    if fmt == "json":
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        print(text)


def _render_result(result: VerificationResult) -> str:
    lines = [result.summary()]
    for f in result.findings:
        lines.append(f"  [{f.kind.value}] {f.message}")
    return "\n".join(lines)


def _run_verify(cfg: dict[str, Any], args: argparse.Namespace, report: Optional[RunReport]) -> int:
    result = verify_migrations(cfg, report=report)
    _emit(result.to_dict(), _render_result(result), args.format)
    allow_unrecorded = cfg["verify"]["allow_unrecorded"] and not args.strict
    if result.is_error:
        return EXIT_INTEGRITY
    if result.status == IntegrityStatus.NEEDS_UPDATE and not allow_unrecorded:
        return EXIT_NEEDS_UPDATE
    return EXIT_OK


def _run_update(cfg: dict[str, Any], args: argparse.Namespace, report: Optional[RunReport]) -> int:
    updated, appended = update_sum(cfg, report=report)
    text = (
        f"Recorded {len(appended)} new migration(s): {', '.join(appended)}"
        if appended else "Sum file is up to date"
    )
    _emit(
        {"appended": appended, "digest": encode_digest(updated.digest), "entries": len(updated)},
        text,
        args.format,
    )
    return EXIT_OK


def _run_hash(cfg: dict[str, Any], args: argparse.Namespace, report: Optional[RunReport]) -> int:
    rebuilt = rehash_sum(cfg, force=args.force, report=report)
    _emit(
        {"digest": encode_digest(rebuilt.digest), "entries": len(rebuilt)},
        f"Wrote {sum_file_path(cfg)} ({len(rebuilt)} migration(s))",
        args.format,
    )
    return EXIT_OK


_COMMANDS = {
    "verify": _run_verify,
    "update": _run_update,
    "hash": _run_hash,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="migsum",
        description="Tamper and ordering checks for a versioned migration directory.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to the YAML configuration file.",
    )
    common.add_argument(
        "--dir",
        type=str,
        default=None,
        help="Migration directory (overrides migrations.dir).",
    )
    common.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format for the command result.",
    )
    common.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    sub = parser.add_subparsers(dest="command", required=True)
    verify_parser = sub.add_parser("verify", parents=[common], help="Verify the directory.")
    verify_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when migrations are not recorded in the sum file yet.",
    )
    sub.add_parser("update", parents=[common], help="Record new migrations.")
    hash_parser = sub.add_parser("hash", parents=[common], help="Rebuild the sum file.")
    hash_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite a sum file that does not match the directory.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the command and return its exit code."""
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    cfg = load_config(args.config)
    if args.dir:
        cfg["migrations"]["dir"] = args.dir

    report: Optional[RunReport] = None
    if cfg["report"]["enabled"]:
        report = RunReport(
            command=args.command,
            migrations_dir=str(cfg["migrations"]["dir"]),
            sum_file=str(sum_file_path(cfg)),
        )

    code = EXIT_UNUSABLE
    try:
        code = _COMMANDS[args.command](cfg, args, report)
    except IntegrityError as exc:
        logger.error("[migsum] %s", exc)
        if report:
            report.record_result(exc.result.to_dict())
        _emit(exc.result.to_dict(), _render_result(exc.result), args.format)
        code = EXIT_INTEGRITY
    except CorruptSumFileError as exc:
        logger.error("[migsum] Corrupt sum file: %s", exc)
        _emit({"error": "corrupt_sum_file", "message": str(exc)}, f"Corrupt sum file: {exc}", args.format)
    except (OrderingViolationError, InvalidMigrationNameError) as exc:
        logger.error("[migsum] %s", exc)
        _emit({"error": "ordering_violation", "message": str(exc)}, str(exc), args.format)
    except FileNotFoundError as exc:
        logger.error("[migsum] %s", exc)
        _emit({"error": "not_found", "message": str(exc)}, str(exc), args.format)
    finally:
        if report:
            report.finish(status="success" if code == EXIT_OK else f"exit_{code}")
            save_report(report, output_dir=cfg["report"]["output_dir"])
    return code


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
