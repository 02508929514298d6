"""
Integrity verification of a live migration directory against its sum file.

The verifier never repairs anything.  Every anomaly comes back as a
:class:`Finding` inside a :class:`VerificationResult` so that CLI and CI
callers can say *which* file changed rather than just "failed".

Detection rules:
  1. Recorded names missing from the live directory  → ``missing_file``
  2. Name at a position differs from the recorded one → ``order_mismatch``
     (the walk stops here; later positions are meaningless)
  3. Same name, different checkpoint                  → ``content_tampered``
  4. Live entries beyond the recorded ones            → ``unrecorded_file``

Rule 3 re-folds each live file onto the *recorded* previous checkpoint,
so one edited file is reported alone instead of poisoning every later
position.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

from migsum.src.chain import INITIAL_DIGEST, fold
from migsum.src.directory import MigrationFile
from migsum.src.hasher import encode_digest, leaf_hash
from migsum.src.sumfile import CorruptSumFileError, SumFile, decode

logger = logging.getLogger(__name__)


# ── classification ────────────────────────────────────────────────────────

class FindingKind(str, Enum):
    """What went wrong with one position of the directory."""
    ORDER_MISMATCH = "order_mismatch"
    CONTENT_TAMPERED = "content_tampered"
    MISSING_FILE = "missing_file"
    UNRECORDED_FILE = "unrecorded_file"


class IntegrityStatus(str, Enum):
    """Overall verdict, listed from most to least severe."""
    MISSING_FILES = "missing_files"
    ORDER_MISMATCH = "order_mismatch"
    CONTENT_TAMPERED = "content_tampered"
    NEEDS_UPDATE = "needs_update"
    CONSISTENT = "consistent"


_STATUS_FOR_KIND = {
    FindingKind.MISSING_FILE: IntegrityStatus.MISSING_FILES,
    FindingKind.ORDER_MISMATCH: IntegrityStatus.ORDER_MISMATCH,
    FindingKind.CONTENT_TAMPERED: IntegrityStatus.CONTENT_TAMPERED,
    FindingKind.UNRECORDED_FILE: IntegrityStatus.NEEDS_UPDATE,
}

_SEVERITY = list(IntegrityStatus)


@dataclass(frozen=True)
class Finding:
    """A single classified anomaly."""
    kind: FindingKind
    position: int
    name: str
    expected: Optional[str] = None
    actual: Optional[str] = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "position": self.position,
            "name": self.name,
            "expected": self.expected,
            "actual": self.actual,
            "message": self.message,
        }


class IntegrityError(Exception):
    """Raised when a directory must not be trusted or appended to."""

    def __init__(self, result: "VerificationResult") -> None:
        self.result = result
        super().__init__(result.summary())


@dataclass
class VerificationResult:
    """Outcome of :func:`verify`."""
    status: IntegrityStatus
    recorded_count: int
    live_count: int
    recorded_digest: str
    prefix_digest: str
    findings: list[Finding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == IntegrityStatus.CONSISTENT

    @property
    def is_error(self) -> bool:
        """Whether the directory has been rewritten (not merely extended)."""
        return self.status not in (IntegrityStatus.CONSISTENT, IntegrityStatus.NEEDS_UPDATE)

    def _names(self, kind: FindingKind) -> list[str]:
        return [f.name for f in self.findings if f.kind == kind]

    @property
    def tampered_files(self) -> list[str]:
        return self._names(FindingKind.CONTENT_TAMPERED)

    @property
    def missing_files(self) -> list[str]:
        return self._names(FindingKind.MISSING_FILE)

    @property
    def unrecorded_files(self) -> list[str]:
        return self._names(FindingKind.UNRECORDED_FILE)

    def summary(self) -> str:
        if self.ok:
            return f"{self.live_count} migration file(s) match the sum file"
        if self.status == IntegrityStatus.NEEDS_UPDATE:
            return (
                f"{len(self.unrecorded_files)} new migration file(s) not yet "
                f"recorded: {', '.join(self.unrecorded_files)}"
            )
        return f"{self.status.value}: " + "; ".join(
            f.message for f in self.findings if f.kind != FindingKind.UNRECORDED_FILE
        )

    def raise_for_status(self, allow_unrecorded: bool = True) -> None:
        """Raise :class:`IntegrityError` unless the directory can be trusted."""
        if self.is_error:
            raise IntegrityError(self)
        if self.status == IntegrityStatus.NEEDS_UPDATE and not allow_unrecorded:
            raise IntegrityError(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "recorded_count": self.recorded_count,
            "live_count": self.live_count,
            "recorded_digest": self.recorded_digest,
            "prefix_digest": self.prefix_digest,
            "findings": [f.to_dict() for f in self.findings],
        }


def _overall_status(findings: list[Finding]) -> IntegrityStatus:
    statuses = {_STATUS_FOR_KIND[f.kind] for f in findings}
    for status in _SEVERITY:
        if status in statuses:
            return status
    return IntegrityStatus.CONSISTENT


# ── verification ──────────────────────────────────────────────────────────

def verify(
    live_entries: Sequence[MigrationFile],
    recorded: SumFile | str,
) -> VerificationResult:
    """Compare the live directory with a recorded sum file.

    Parameters
    ----------
    live_entries : Sequence[MigrationFile]
        Migration files in version order.
    recorded : SumFile | str
        A decoded sum file, or its text (decoded and self-checked here).

    Returns
    -------
    VerificationResult
        Classified result; ``status`` is the most severe finding.

    Raises
    ------
    CorruptSumFileError
        If *recorded* fails to decode, or its header is not the fold over
        its entries.
    """
    sum_file = decode(recorded) if isinstance(recorded, str) else recorded
    if not sum_file.is_self_consistent():
        raise CorruptSumFileError(
            "Sum file header does not match its entries; refusing to verify"
        )
    entries = sum_file.entries
    findings: list[Finding] = []

    live_names = {f.name for f in live_entries}
    for pos, rec in enumerate(entries):
        if rec.name not in live_names:
            findings.append(Finding(
                kind=FindingKind.MISSING_FILE,
                position=pos,
                name=rec.name,
                expected=encode_digest(rec.digest),
                message=f"Migration file {rec.name} was removed",
            ))

    recorded_prev = INITIAL_DIGEST
    live_prev = INITIAL_DIGEST
    diverged = False
    for pos, (live, rec) in enumerate(zip(live_entries, entries)):
        if live.name != rec.name:
            findings.append(Finding(
                kind=FindingKind.ORDER_MISMATCH,
                position=pos,
                name=live.name,
                expected=rec.name,
                actual=live.name,
                message=(
                    f"Position {pos + 1} holds {live.name} but {rec.name} "
                    "was recorded there; history was rewritten"
                ),
            ))
            diverged = True
            break

        leaf = leaf_hash(live.content)
        actual = fold(recorded_prev, live.name, leaf)
        if actual != rec.digest:
            findings.append(Finding(
                kind=FindingKind.CONTENT_TAMPERED,
                position=pos,
                name=live.name,
                expected=encode_digest(rec.digest),
                actual=encode_digest(actual),
                message=f"Migration file {live.name} was modified",
            ))
        live_prev = fold(live_prev, live.name, leaf)
        recorded_prev = rec.digest

    if not diverged:
        for pos in range(len(entries), len(live_entries)):
            findings.append(Finding(
                kind=FindingKind.UNRECORDED_FILE,
                position=pos,
                name=live_entries[pos].name,
                message=f"Migration file {live_entries[pos].name} is not recorded yet",
            ))

    # With no content finding, live_prev equals recorded_prev by induction
    # over the walk, so the prefix digest cross-check needs no finding kind.
    result = VerificationResult(
        status=_overall_status(findings),
        recorded_count=len(entries),
        live_count=len(live_entries),
        recorded_digest=encode_digest(sum_file.digest),
        prefix_digest=encode_digest(live_prev),
        findings=findings,
    )

    if result.is_error:
        for f in findings:
            logger.error("[verify] %s", f.message)
    elif result.status == IntegrityStatus.NEEDS_UPDATE:
        logger.warning("[verify] %s", result.summary())
    else:
        logger.info("[verify] %s", result.summary())
    return result
